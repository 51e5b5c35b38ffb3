# Allows the package to be run as a script using `python -m aeo_engine`

from __future__ import annotations

import sys

from aeo_engine.cli import main

if __name__ == "__main__":
    sys.exit(main())
