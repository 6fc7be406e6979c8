"""
`python -m cap_builder` entrypoint.

The installed console script `cap-builder` calls the same `cap_builder.cli:main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
