"""Entry point for ``python -m gestum.cli``."""

import sys

from .gestum_metrics import main

if __name__ == "__main__":
    sys.exit(main())
