"""img-hash-linker package.

Computes a perceptual average hash (aHash) for an image and resolves it to a
link stored in a CSV dictionary, either by exact fingerprint or by the
closest fingerprint above a proximity threshold.
"""

from .errors import (
    ConfigError,
    FormatError,
    HashLinkerError,
    LinkOpenError,
    NotFoundError,
    StorageError,
)
from .linker import (
    append_dictionary_entries,
    compute_fingerprint,
    load_dictionary,
    open_url,
    resolve_link,
    resolve_similar_link,
)

__all__ = [
    "append_dictionary_entries",
    "compute_fingerprint",
    "load_dictionary",
    "open_url",
    "resolve_link",
    "resolve_similar_link",
    "ConfigError",
    "FormatError",
    "HashLinkerError",
    "LinkOpenError",
    "NotFoundError",
    "StorageError",
]
__version__ = "0.1.0"
