"""
Run the parley CLI.

Usage:
    python -m parley list
    python -m parley new "The Countess"
"""

import sys

from .interface.cli import main

sys.exit(main())
