"""Allow ``python -m git_vendor``."""
from __future__ import annotations

import sys

from git_vendor.cli._dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
