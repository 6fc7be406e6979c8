#!/usr/bin/env python3
"""
Source-checkout entrypoint.

Allows running the tool without installing it:
  python3 cap_builder.py android --build
"""

import os
import sys

_HERE = os.path.dirname(os.path.abspath(__file__))
_SRC = os.path.join(_HERE, "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

# Imported as `cap_builder` from the checkout root this file must not shadow
# `src/cap_builder/`.
__path__ = [os.path.join(_SRC, "cap_builder")]


def main(argv: list[str] | None = None) -> int:
    from cap_builder.cli import main as _main

    return _main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
