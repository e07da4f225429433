"""
cdnfix CLI entry point.

Usage:
    python -m cdnfix.cli fix <dir> [--dry-run] [--verbose]
    python -m cdnfix.cli explain <file>
    python -m cdnfix.cli decode <value>
    python -m cdnfix.cli encode <url>
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
