"""Matching logic for img-hash-linker.

Given:
- a target fingerprint, and
- the (fingerprint, link) entries of a dictionary

we score every entry with :func:`hash_proximity` and keep the closest one
that reaches the threshold. This is a linear scan, fine for dictionaries of
a few thousand entries.
"""

from __future__ import annotations

import logging
import string
from dataclasses import astuple, dataclass
from typing import Iterable, Iterator, Tuple, Union

from .errors import FormatError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.95

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True)
class Match:
    """Best similar entry for a target fingerprint."""

    fingerprint: str
    link: str
    proximity: float  # in [0, 1]

    def __iter__(self) -> Iterator[Union[str, float]]:
        return iter(astuple(self))


def hash_proximity(hash1: str, hash2: str) -> float:
    """Score how close two hex fingerprints are.

    Both strings are cut to the length of the shorter one, rounded down to
    an even number of characters. Each pair of hex digits is read as a byte
    and the absolute byte differences are summed.

    Parameters
    ----------
    hash1, hash2:
        Hex strings (either case).

    Returns
    -------
    float
        ``1 - total_difference / (255 * n_bytes)``; 1.0 for identical
        prefixes and also when there is nothing to compare.

    Raises
    ------
    FormatError
        If the compared prefix of either string is not hexadecimal.
    """

    n = min(len(hash1), len(hash2))
    n -= n % 2
    a = hash1[:n]
    b = hash2[:n]

    if not _HEX_DIGITS.issuperset(a):
        raise FormatError(f"First hash contains invalid hex characters: {hash1!r}")
    if not _HEX_DIGITS.issuperset(b):
        raise FormatError(f"Second hash contains invalid hex characters: {hash2!r}")

    if n == 0:
        return 1.0

    bytes_a = bytes.fromhex(a)
    bytes_b = bytes.fromhex(b)
    total = sum(abs(x - y) for x, y in zip(bytes_a, bytes_b))
    return 1.0 - total / (255 * len(bytes_a))


def find_best_match(
    target: str,
    candidates: Iterable[Tuple[str, str]],
    threshold: float = DEFAULT_THRESHOLD,
) -> Match:
    """Find the candidate closest to *target* with proximity >= *threshold*.

    Parameters
    ----------
    target:
        Fingerprint to look up.
    candidates:
        (fingerprint, link) pairs, e.g. a loaded dictionary.
    threshold:
        Minimum proximity a candidate must reach.

    Returns
    -------
    Match
        The highest-scoring candidate. On ties the earliest one wins.

    Raises
    ------
    NotFoundError
        If no candidate reaches the threshold (or there are none).
    FormatError
        If a fingerprint is not hexadecimal.
    """

    best = None
    for fingerprint, link in candidates:
        p = hash_proximity(target, fingerprint)
        if p < threshold:
            continue
        if best is None or p > best.proximity:
            best = Match(fingerprint=fingerprint, link=link, proximity=p)

    if best is None:
        raise NotFoundError(f"No similar hash found for {target} (threshold {threshold:.2%})")

    logger.debug("Best match for %s: %s (%.4f)", target, best.fingerprint, best.proximity)
    return best
