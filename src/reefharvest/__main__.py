"""Allow ``python -m reefharvest``."""

import sys

from reefharvest.cli import main

if __name__ == "__main__":
    sys.exit(main())
