"""
Name: Cache Path Resolver

Responsibilities:
  - Map (cache root, collection, item, dimensions, format) to the output path
  - Derive the file extension from the format name

Constraints:
  - Pure and deterministic: no I/O, no clock
  - Must be called the same way at job submission and at every resume

Notes:
  - Layout: {root}/cache/{collection_id}/{item_id}_cache_{W}x{H}{ext}
  - Paths are built with posixpath so they are identical on every host
"""

from __future__ import annotations

import posixpath
from typing import Final, Mapping

CACHE_DIR_NAME: Final[str] = "cache"
DEFAULT_EXTENSION: Final[str] = ".jpg"

_EXTENSIONS: Final[Mapping[str, str]] = {
    "jpeg": ".jpg",
    "jpg": ".jpg",
    "png": ".png",
    "webp": ".webp",
}


def extension_for_format(fmt: str | None) -> str:
    """R: Unknown or empty formats fall back to the jpeg extension."""
    key = (fmt or "").strip().lower()
    return _EXTENSIONS.get(key, DEFAULT_EXTENSION)


def resolve_cache_path(
    cache_root: str | None,
    collection_id: str,
    item_id: str,
    width: int,
    height: int,
    fmt: str | None,
) -> str:
    filename = f"{item_id}_cache_{width}x{height}{extension_for_format(fmt)}"
    return posixpath.join(cache_root or "", CACHE_DIR_NAME, collection_id, filename)
