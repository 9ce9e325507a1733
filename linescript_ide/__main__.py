"""Package entry point — allows ``python -m linescript_ide``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
