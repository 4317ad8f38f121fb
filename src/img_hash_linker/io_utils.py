"""I/O helpers for img-hash-linker.

This module handles the dictionary file:
- loading and validating (fingerprint, link) rows
- appending new rows without disturbing existing columns

Dictionary schema (CSV, or TSV for ``.tsv`` files):
    hash, link[, any other columns]

A file with exactly two columns is read positionally, whatever its header
says. Otherwise the header must name a "hash" and a "link" column
(case-insensitive, any position).
"""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import Iterable, List, NamedTuple, Sequence, Tuple, Union
from urllib.parse import urlsplit

from .errors import FormatError, StorageError

logger = logging.getLogger(__name__)

DELIMITERS = {".csv": ",", ".tsv": "\t"}
HEADER = ["hash", "link"]

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
# Schemes whose URLs are meaningless without a host.
_HOST_SCHEMES = {"http", "https", "ws", "wss", "ftp"}

PathLike = Union[str, Path]


class DictionaryEntry(NamedTuple):
    """One fingerprint -> link association."""

    fingerprint: str
    link: str


def is_valid_url(value: str) -> bool:
    """Return True if *value* parses as an absolute URL."""

    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    rest = value[len(parts.scheme) + 1:]
    if not rest or any(c.isspace() for c in value):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES and not parts.hostname:
        return False
    return True


def _delimiter_for(path: Path) -> str:
    try:
        return DELIMITERS[path.suffix.lower()]
    except KeyError:
        raise FormatError(
            f"File is not a CSV/TSV dictionary: {path} (expected one of {', '.join(DELIMITERS)})"
        ) from None


def resolve_columns(header: Sequence[str]) -> Tuple[int, int]:
    """Find the (hash, link) column indices in a header row.

    Named "hash"/"link" columns win; a two-column header without them is
    taken positionally.

    Raises
    ------
    FormatError
        If neither rule applies.
    """

    names = [h.strip().lower() for h in header]
    if "hash" in names and "link" in names:
        return names.index("hash"), names.index("link")
    if len(names) == 2:
        return 0, 1
    raise FormatError(
        "Dictionary must have either exactly two columns or columns named 'hash' and 'link'"
    )


def _read_header(path: Path, delimiter: str) -> List[str]:
    try:
        with path.open("r", newline="", encoding="utf-8-sig") as f:
            header = next(csv.reader(f, delimiter=delimiter), None)
    except UnicodeDecodeError as e:
        raise FormatError(f"Dictionary is not valid UTF-8: {path}: {e}") from e
    except OSError as e:
        raise StorageError(f"Failed to read dictionary {path}: {e}") from e
    if header is None:
        raise FormatError(f"Dictionary has no header row: {path}")
    return header


def load_dictionary(path: PathLike) -> List[DictionaryEntry]:
    """Load (fingerprint, link) entries from a dictionary file.

    Rows with an empty fingerprint, an empty link, a link that is not an
    absolute URL, or too few columns are skipped. The load fails only when
    no row survives.

    Parameters
    ----------
    path:
        A ``.csv`` or ``.tsv`` file with a header row.

    Returns
    -------
    list[DictionaryEntry]
        Entries in file order.

    Raises
    ------
    StorageError
        The file is missing or unreadable.
    FormatError
        Wrong extension, unusable header, bad encoding, or no valid rows.
    """

    path = Path(path)
    if not path.is_file():
        raise StorageError(f"File does not exist: {path}")
    delimiter = _delimiter_for(path)

    entries: List[DictionaryEntry] = []
    try:
        with path.open("r", newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f, delimiter=delimiter)
            header = next(reader, None)
            if header is None:
                raise FormatError(f"Dictionary has no header row: {path}")
            hash_idx, link_idx = resolve_columns(header)

            for row in reader:
                if not row:
                    continue
                if len(row) <= max(hash_idx, link_idx):
                    logger.debug("%s:%d: too few columns, skipped", path, reader.line_num)
                    continue
                fingerprint = row[hash_idx].strip()
                link = row[link_idx].strip()
                if not fingerprint or not link:
                    logger.debug("%s:%d: empty field, skipped", path, reader.line_num)
                    continue
                if not is_valid_url(link):
                    logger.debug("%s:%d: invalid link %r, skipped", path, reader.line_num, link)
                    continue
                entries.append(DictionaryEntry(fingerprint, link))
    except UnicodeDecodeError as e:
        raise FormatError(f"Dictionary is not valid UTF-8: {path}: {e}") from e
    except csv.Error as e:
        raise FormatError(f"Failed to parse dictionary {path}: {e}") from e
    except OSError as e:
        raise StorageError(f"Failed to read dictionary {path}: {e}") from e

    if not entries:
        raise FormatError(f"Dictionary contains no valid entries: {path}")

    logger.debug("Loaded %d entries from %s", len(entries), path)
    return entries


def _ensure_trailing_newline(path: Path) -> None:
    """Append a newline if the file is non-empty and doesn't end with one."""

    with path.open("rb+") as f:
        f.seek(0, 2)
        if f.tell() == 0:
            return
        f.seek(-1, 2)
        if f.read(1) != b"\n":
            f.seek(0, 2)
            f.write(b"\n")


def append_dictionary_entries(path: PathLike, entries: Iterable[Tuple[str, str]]) -> None:
    """Append (fingerprint, link) rows to a dictionary file.

    A missing (or zero-byte) file is created with a ``hash,link`` header
    first. Each row has as many columns as the existing header, with the
    fingerprint and link in their columns and the rest left blank.

    Not safe for concurrent writers.

    Raises
    ------
    StorageError
        The file can't be read or written.
    FormatError
        Wrong extension or the header lacks usable columns.
    """

    rows = list(entries)
    if not rows:
        return

    path = Path(path)
    delimiter = _delimiter_for(path)

    try:
        if not path.exists() or path.stat().st_size == 0:
            with path.open("w", newline="", encoding="utf-8") as f:
                csv.writer(f, delimiter=delimiter, lineterminator="\n").writerow(HEADER)
            logger.info("Created dictionary %s", path)

        header = _read_header(path, delimiter)
        hash_idx, link_idx = resolve_columns(header)
        n_columns = len(header)

        _ensure_trailing_newline(path)

        with path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter=delimiter, lineterminator="\n")
            for fingerprint, link in rows:
                row = [""] * n_columns
                row[hash_idx] = fingerprint
                row[link_idx] = link
                writer.writerow(row)
    except StorageError:
        raise
    except OSError as e:
        raise StorageError(f"Failed to write dictionary {path}: {e}") from e

    logger.debug("Appended %d entries to %s", len(rows), path)
