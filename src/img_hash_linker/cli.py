"""img-hash-linker CLI.

This is the entry point used by:
- `python -m img_hash_linker`
- the console script `img-hash-linker` (installed via pyproject.toml)

Examples
--------
img-hash-linker screenshot.png                  # print the fingerprint
img-hash-linker screenshot.png links.csv        # open the linked page
img-hash-linker screenshot.png links.csv --add "https://example.com"
img-hash-linker ./screenshots                   # fingerprint a whole folder

Defaults for --hash-size, --threshold and border trimming come from the
IMG_HASH_LINKER_* environment variables (see :mod:`img_hash_linker.config`).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from tqdm import tqdm

from .config import LinkerConfig
from .errors import HashLinkerError, NotFoundError
from .hashing import iter_images
from .io_utils import append_dictionary_entries, is_valid_url
from .linker import (
    compute_fingerprint,
    load_dictionary,
    open_url,
    resolve_link,
    resolve_similar_link,
)

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _parse_args(config: LinkerConfig, argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = _ArgumentParser(
        prog="img-hash-linker",
        description=(
            "Compute a perceptual average hash for an image and open the link "
            "stored for it (or for the most similar hash) in a CSV dictionary."
        ),
    )
    p.add_argument(
        "image",
        type=Path,
        help="Image to fingerprint, or a folder of images (scanned recursively).",
    )
    p.add_argument(
        "dictionary",
        nargs="?",
        type=Path,
        default=None,
        help="CSV/TSV dictionary with 'hash' and 'link' columns.",
    )
    p.add_argument(
        "--hash-size",
        type=int,
        default=config.hash_size,
        help=f"Side of the hash grid; hash_size^2 must be <= 64 (default: {config.hash_size}).",
    )
    p.add_argument(
        "--threshold",
        type=float,
        default=config.threshold,
        help=(
            f"Minimum proximity for a similar match, 0..1 (default: {config.threshold}). "
            "Lower => more matches, more false positives."
        ),
    )
    p.add_argument(
        "--no-trim",
        dest="remove_border",
        action="store_false",
        default=config.remove_border,
        help="Do not crop near-white borders before hashing.",
    )
    p.add_argument(
        "--no-open",
        action="store_true",
        help="Print the resolved link instead of opening it.",
    )
    p.add_argument(
        "--add",
        metavar="LINK",
        default=None,
        help="Append the image's hash with LINK to the dictionary instead of looking it up.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    args = p.parse_args(argv)

    if args.add is not None and args.dictionary is None:
        p.error("--add requires a dictionary path")
    if args.image.is_dir() and args.dictionary is not None:
        p.error("a dictionary can only be used with a single image")
    return args


def _hash_folder(folder: Path, config: LinkerConfig) -> int:
    """Print `path,fingerprint` for every readable image under *folder*."""
    paths = list(iter_images(folder))
    if not paths:
        print(f"No images found under {folder}", file=sys.stderr)
        return 1

    failed = 0
    for p in tqdm(paths, desc="Hashing", unit="img"):
        try:
            h = compute_fingerprint(p, remove_border=config.remove_border, hash_size=config.hash_size)
        except HashLinkerError as e:
            failed += 1
            tqdm.write(f"Skipped: {e}", file=sys.stderr)
            continue
        tqdm.write(f"{p},{h}")

    if failed:
        print(f"{failed} of {len(paths)} images could not be hashed", file=sys.stderr)
    return 0


def _lookup(fingerprint: str, dictionary: Path, config: LinkerConfig, no_open: bool) -> int:
    """Resolve *fingerprint* against *dictionary*: exact first, then similar."""
    entries = load_dictionary(dictionary)

    note = ""
    try:
        link = resolve_link(entries, fingerprint)
    except NotFoundError:
        logger.debug("No exact entry for %s, trying similar hashes", fingerprint)
        try:
            match = resolve_similar_link(entries, fingerprint, threshold=config.threshold)
        except NotFoundError:
            print(f"No link found for hash {fingerprint}", file=sys.stderr)
            return 1
        link = match.link
        note = f" (Proximity: {match.proximity * 100:.2f}%)"

    if no_open:
        print(f"{link}{note}")
        return 0

    print(f"Opening: {link}{note}")
    open_url(link)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run img-hash-linker.

    Returns
    -------
    int
        Process exit code (0 success, 1 on any error or when nothing matched).
    """
    try:
        env_config = LinkerConfig.from_env()
    except HashLinkerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    args = _parse_args(env_config, argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = LinkerConfig(
            hash_size=args.hash_size,
            threshold=args.threshold,
            remove_border=args.remove_border,
        )

        image: Path = args.image.expanduser()
        if image.is_dir():
            return _hash_folder(image, config)

        fingerprint = compute_fingerprint(
            image, remove_border=config.remove_border, hash_size=config.hash_size
        )

        if args.dictionary is None:
            print(f"Image hash: {fingerprint}")
            return 0

        dictionary: Path = args.dictionary.expanduser()
        if args.add is not None:
            link = args.add.strip()
            if not is_valid_url(link):
                print(f"Error: not an absolute URL: {args.add!r}", file=sys.stderr)
                return 1
            append_dictionary_entries(dictionary, [(fingerprint, link)])
            print(f"Added: {fingerprint} -> {link}")
            return 0

        return _lookup(fingerprint, dictionary, config, no_open=args.no_open)
    except HashLinkerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
