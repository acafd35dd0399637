"""
Main entry point for the personal calendar application.
"""

import sys
from pcal.cli import main

if __name__ == "__main__":
    sys.exit(main())
