"""
Main entry point for the kfmt CLI when run as a module.

This allows the CLI to be executed using:
    python -m kfmt
"""

import sys

from kfmt.cli import main

if __name__ == "__main__":
    sys.exit(main())
