"""Runtime configuration for img-hash-linker.

A frozen dataclass holding the tunables that change fingerprints or matches.
Defaults are documented on the fields; environment variables may override
them for the CLI:

- ``IMG_HASH_LINKER_HASH_SIZE``     (int, default 8)
- ``IMG_HASH_LINKER_THRESHOLD``     (float in [0, 1], default 0.95)
- ``IMG_HASH_LINKER_REMOVE_BORDER`` (bool, default true)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError
from .hashing import DEFAULT_HASH_SIZE, validate_hash_size
from .matching import DEFAULT_THRESHOLD

ENV_PREFIX = "IMG_HASH_LINKER_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LinkerConfig:
    """Immutable hashing and matching settings."""

    hash_size: int = DEFAULT_HASH_SIZE  # side of the N x N sample grid
    threshold: float = DEFAULT_THRESHOLD  # minimum proximity for a similar match
    remove_border: bool = True  # trim near-white margins before hashing

    def __post_init__(self) -> None:
        validate_hash_size(self.hash_size)
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise ConfigError(f"threshold must be a number, got {self.threshold!r}")
        if math.isnan(self.threshold) or not 0.0 <= self.threshold <= 1.0:
            raise ConfigError(f"threshold must be between 0 and 1, got {self.threshold!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LinkerConfig":
        """Build a config from ``IMG_HASH_LINKER_*`` environment variables.

        Unset or blank variables keep the field default.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        raw = _get(env, "HASH_SIZE")
        if raw is not None:
            try:
                kwargs["hash_size"] = int(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}HASH_SIZE must be an integer, got {raw!r}") from None

        raw = _get(env, "THRESHOLD")
        if raw is not None:
            try:
                kwargs["threshold"] = float(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}THRESHOLD must be a number, got {raw!r}") from None

        raw = _get(env, "REMOVE_BORDER")
        if raw is not None:
            kwargs["remove_border"] = _parse_bool(f"{ENV_PREFIX}REMOVE_BORDER", raw)

        return cls(**kwargs)


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(ENV_PREFIX + name, "").strip()
    return value or None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {raw!r}")
