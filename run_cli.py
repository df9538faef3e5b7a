#!/usr/bin/env python3
"""
Convenient entry point for the Shipdesk CLI without installing the package.

Usage:
    python run_cli.py [--base-url URL] [--data-dir DIR] [--debug]
"""
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from shipdesk.clients.cli.main import run

if __name__ == "__main__":
    run()
