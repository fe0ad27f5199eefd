"""psshell: single-shot PowerShell command runner."""

__version__ = "0.1.0"
