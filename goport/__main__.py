#!/usr/bin/env python3
# CUI // SP-CTI
"""Allow ``python -m goport``."""

from goport.cli.convert import main

if __name__ == "__main__":
    raise SystemExit(main())
