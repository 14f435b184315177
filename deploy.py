#!/usr/bin/env python3
"""Order Management System deployment entry point."""

import sys

from deployer.cli import main


if __name__ == "__main__":
    sys.exit(main())
