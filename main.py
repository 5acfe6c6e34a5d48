"""
Entry point for running from a source checkout: python main.py <url> [options]
"""

import sys

from sitepdf.cli import main

if __name__ == "__main__":
    sys.exit(main())
