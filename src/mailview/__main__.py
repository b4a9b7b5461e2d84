#!/usr/bin/env python3
"""
Allow running mailview as a module: python -m mailview

This enables the following usage:
    python -m mailview COMMAND [OPTIONS]

Which is equivalent to:
    mailview COMMAND [OPTIONS]
"""

from mailview.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
