"""Public API: fingerprint an image and resolve it to a dictionary link."""

from __future__ import annotations

import logging
import webbrowser
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from PIL import Image

from .errors import LinkOpenError, NotFoundError
from .hashing import (
    DEFAULT_HASH_SIZE,
    compute_image_hash,
    open_image,
    remove_white_borders,
    validate_hash_size,
)
from .io_utils import DictionaryEntry, append_dictionary_entries, load_dictionary
from .matching import DEFAULT_THRESHOLD, Match, find_best_match

logger = logging.getLogger(__name__)

__all__ = [
    "DictionaryEntry",
    "Match",
    "append_dictionary_entries",
    "compute_fingerprint",
    "load_dictionary",
    "open_url",
    "resolve_link",
    "resolve_similar_link",
]


def compute_fingerprint(
    image: Union[str, Path, Image.Image],
    remove_border: bool = True,
    hash_size: Optional[int] = None,
) -> str:
    """Fingerprint an image file or an already decoded Pillow image.

    ``hash_size=None`` uses the default 8x8 grid (16 hex characters).
    """

    hash_size = validate_hash_size(DEFAULT_HASH_SIZE if hash_size is None else hash_size)

    img = image if isinstance(image, Image.Image) else open_image(image)
    if remove_border:
        img = remove_white_borders(img)
    return compute_image_hash(img, hash_size)


def resolve_link(dictionary: Sequence[Tuple[str, str]], fingerprint: str) -> str:
    """Return the link stored for exactly *fingerprint* (case-insensitive).

    Raises NotFoundError when no entry has this fingerprint.
    """

    wanted = fingerprint.strip().lower()
    for h, link in dictionary:
        if h.strip().lower() == wanted:
            return link
    raise NotFoundError(f"No link found for hash {fingerprint}")


def resolve_similar_link(
    dictionary: Sequence[Tuple[str, str]],
    fingerprint: str,
    threshold: Optional[float] = None,
) -> Match:
    """Return the closest dictionary entry with proximity >= *threshold*.

    ``threshold=None`` means 0.95.
    """

    return find_best_match(
        fingerprint,
        dictionary,
        threshold=DEFAULT_THRESHOLD if threshold is None else threshold,
    )


def open_url(url: str) -> None:
    """Open *url* with the system's default handler.

    Raises LinkOpenError if no handler accepted it.
    """

    logger.info("Opening %s", url)
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        raise LinkOpenError(f"Failed to open link {url}: {e}") from e
    if not opened:
        raise LinkOpenError(f"Failed to open link {url}: no browser available")
