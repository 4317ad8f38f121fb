"""Exception types raised by img-hash-linker.

Every error derives from :class:`HashLinkerError` so callers can catch the
whole family at once. Each one also derives from the closest builtin, so code
that already handles ``OSError`` or ``ValueError`` keeps working.
"""

from __future__ import annotations


class HashLinkerError(Exception):
    """Base class for all img-hash-linker errors."""


class StorageError(HashLinkerError, OSError):
    """A file is missing, unreadable or unwritable."""


class FormatError(HashLinkerError, ValueError):
    """Malformed input: dictionary columns, hex fingerprints or image bytes."""


class ConfigError(HashLinkerError, ValueError):
    """Invalid configuration value (hash size, threshold, env override)."""


class NotFoundError(HashLinkerError, LookupError):
    """No dictionary entry matches a fingerprint."""


class LinkOpenError(HashLinkerError, OSError):
    """The operating system refused to open a link."""
