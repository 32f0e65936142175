"""
Name: Cache Path Resolver Tests

Responsibilities:
  - Validate the on-disk layout and the format -> extension mapping
"""

import pytest

from cache_recovery.domain.cache_paths import extension_for_format, resolve_cache_path

pytestmark = pytest.mark.unit


def test_resolve_cache_path_layout():
    path = resolve_cache_path("/var/cache", "col-1", "img-7", 1920, 1080, "jpeg")
    assert path == "/var/cache/cache/col-1/img-7_cache_1920x1080.jpg"


@pytest.mark.parametrize(
    "fmt,expected",
    [
        ("jpeg", ".jpg"),
        ("JPG", ".jpg"),
        ("png", ".png"),
        ("WebP", ".webp"),
        ("tiff", ".jpg"),
        ("", ".jpg"),
        (None, ".jpg"),
    ],
)
def test_extension_for_format(fmt, expected):
    assert extension_for_format(fmt) == expected


def test_empty_root_yields_relative_path():
    assert (
        resolve_cache_path("", "c", "i", 10, 20, "png") == "cache/c/i_cache_10x20.png"
    )
    assert (
        resolve_cache_path(None, "c", "i", 10, 20, "png") == "cache/c/i_cache_10x20.png"
    )


def test_resolution_is_deterministic():
    args = ("/root", "c", "i", 300, 200, "webp")
    assert resolve_cache_path(*args) == resolve_cache_path(*args)
