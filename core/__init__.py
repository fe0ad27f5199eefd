"""Helpers shared across command-line tools."""
