"""Hashing utilities for img-hash-linker.

Images are fingerprinted with a perceptual **average hash** (aHash). It is
robust to re-encoding and mild resizing, and paired with border trimming it
also survives white padding and letterboxing.

Implementation notes
--------------------
The aHash algorithm:

1) Convert to grayscale (Pillow "L", ITU-R 601-2 luma)
2) Resize to N x N pixels with a fixed LANCZOS filter
3) Compute the integer mean of the N*N samples (floor division)
4) For each sample in raster order, set bit i = 1 if sample >= mean
5) Format the bits as a zero-padded lowercase hex string of ceil(N*N / 4) chars

Bit 0 is the top-left sample and lands in the least-significant hex digit.
The resampling filter is part of the hash definition: changing it changes
every fingerprint already stored in a dictionary.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence, Union

from PIL import Image, ImageChops, UnidentifiedImageError

from .errors import ConfigError, FormatError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_HASH_SIZE = 8
MAX_HASH_BITS = 64
RESAMPLE_FILTER = Image.Resampling.LANCZOS

# A pixel is background when every RGB channel is at or above this value.
BORDER_THRESHOLD = 240

# Common extensions in real-world screenshot folders. Add more if you need.
DEFAULT_EXTS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".bmp",
    ".gif",
    ".tiff",
    ".tif",
    ".webp",
    ".jfif",
}


def iter_images(root: Path, exts: Sequence[str] = tuple(DEFAULT_EXTS)) -> Iterator[Path]:
    """Recursively yield image file paths under *root*, in sorted order.

    Parameters
    ----------
    root:
        Folder to scan.
    exts:
        File extensions to include. Compared case-insensitively.

    Yields
    ------
    Path
        Paths to image files.
    """

    root = root.expanduser().resolve()
    exts_lc = {e.lower() for e in exts}
    for folder, dirs, files in os.walk(root):
        dirs.sort()
        for name in sorted(files):
            if Path(name).suffix.lower() in exts_lc:
                yield Path(folder) / name


def open_image(path: Union[str, Path]) -> Image.Image:
    """Decode an image file into a fully loaded Pillow image.

    Raises
    ------
    StorageError
        The file is missing or can't be read.
    FormatError
        The bytes are not a decodable image.
    """

    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except FileNotFoundError:
        raise StorageError(f"Image does not exist: {path}") from None
    except (IsADirectoryError, PermissionError) as e:
        raise StorageError(f"Failed to read image {path}: {e}") from e
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise FormatError(f"Failed to decode image {path}: {e}") from e
    except OSError as e:
        # Pillow reports truncated/corrupt data as a plain OSError.
        raise FormatError(f"Failed to decode image {path}: {e}") from e


def remove_white_borders(img: Image.Image) -> Image.Image:
    """Crop near-white margins from *img*.

    A pixel is background if its R, G and B channels are all >= 240; alpha
    is ignored. The bounding box of the remaining pixels is grown by one
    pixel per side (clamped to the image) and cropped out.

    The input is returned as-is when nothing is non-white or when the grown
    box already covers the whole image. The input is never modified.
    """

    width, height = img.size
    rgb = img if img.mode == "RGB" else img.convert("RGB")

    # 255 where a channel is below the threshold, then OR the three bands:
    # the mask is non-zero exactly on content pixels.
    bands = [b.point(lambda v: 255 if v < BORDER_THRESHOLD else 0) for b in rgb.split()]
    mask = ImageChops.lighter(ImageChops.lighter(bands[0], bands[1]), bands[2])
    bbox = mask.getbbox()
    if bbox is None:
        return img

    left, upper, right, lower = bbox  # right/lower are exclusive
    box = (
        max(left - 1, 0),
        max(upper - 1, 0),
        min(right + 1, width),
        min(lower + 1, height),
    )
    if box == (0, 0, width, height):
        return img

    logger.debug("Trimming border: %sx%s -> box %s", width, height, box)
    return img.crop(box)


def validate_hash_size(hash_size: int) -> int:
    """Check that *hash_size* yields between 1 and 64 hash bits.

    Raises
    ------
    ConfigError
        If hash_size is not a positive integer or hash_size**2 > 64.
    """

    if isinstance(hash_size, bool) or not isinstance(hash_size, int):
        raise ConfigError(f"hash_size must be an integer, got {hash_size!r}")
    if hash_size < 1:
        raise ConfigError(f"hash_size must be at least 1, got {hash_size}")
    if hash_size * hash_size > MAX_HASH_BITS:
        raise ConfigError(
            f"hash_size {hash_size} needs {hash_size * hash_size} bits; "
            f"at most {MAX_HASH_BITS} are supported"
        )
    return hash_size


def hex_width(hash_size: int) -> int:
    """Number of hex characters in a fingerprint for *hash_size*."""
    return (hash_size * hash_size + 3) // 4


def compute_image_hash(img: Image.Image, hash_size: int = DEFAULT_HASH_SIZE) -> str:
    """Compute the average hash of *img* as a lowercase hex string.

    Parameters
    ----------
    img:
        Any Pillow image.
    hash_size:
        Side of the sample grid. ``hash_size ** 2`` bits are produced.

    Returns
    -------
    str
        Exactly ``ceil(hash_size ** 2 / 4)`` hex characters.
    """

    validate_hash_size(hash_size)
    n_bits = hash_size * hash_size

    small = img.convert("L").resize((hash_size, hash_size), resample=RESAMPLE_FILTER)
    # One byte per sample in "L" mode, row-major.
    px = list(small.tobytes())

    avg = sum(px) // n_bits

    h = 0
    for i, value in enumerate(px):
        if value >= avg:
            h |= 1 << i

    return f"{h:0{hex_width(hash_size)}x}"
