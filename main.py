"""
Outlook Exporter - Main Entry Point

Usage:
    python main.py --help
"""

import sys

from outlook_exporter.cli import cli

if __name__ == "__main__":
    sys.exit(cli())
