#!/usr/bin/env python3
"""
psshell - run one PowerShell command, print its output, wait, exit.
"""
import sys
from pathlib import Path

# Add project root to path to allow importing core
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from psshell.src.cli import main


if __name__ == "__main__":  # pragma: no cover - exercised via psshell.src.cli tests
    raise SystemExit(main())
