"""Allow running the package with: `python -m img_hash_linker`.

This delegates to :func:`img_hash_linker.cli.main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
