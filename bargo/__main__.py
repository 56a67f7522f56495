"""
Entry point for running bargo as a module: python -m bargo
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
