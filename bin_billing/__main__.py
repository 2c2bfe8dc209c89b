"""
Main entry point for running bin_billing as a module.

Usage:
    python -m bin_billing [quote|schedule|rates] [options]
"""
import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
