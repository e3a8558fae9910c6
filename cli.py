"""CLI entry point - wrapper so the CLI can run as ``python cli.py``

Imports and runs the main CLI from the cli package.
"""

import sys

from cli.main import main

if __name__ == "__main__":
    sys.exit(main())
