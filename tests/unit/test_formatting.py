"""Unit tests for resource-name and description helpers."""

import pytest

from core.services.formatting import (
    extract_version_from_resource_name,
    humanize_bytes,
    package_url,
    replace_size,
    versioned_name,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("CityGML（v3）", 3),
        ("3D Tiles, MVT（v4）", 4),
        ("Foo (v12)", 12),
        ("Foo（v1)", 1),
        ("Foo v3", None),
        ("Foo (v3) bar", None),
        ("Foo (version 3)", None),
        ("", None),
    ],
)
def test_extract_version_from_resource_name(name, expected):
    assert extract_version_from_resource_name(name) == expected


def test_versioned_name_round_trips_through_extraction():
    name = versioned_name("関連データセット", 4)
    assert name == "関連データセット（v4）"
    assert extract_version_from_resource_name(name) == 4


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (9, "9 B"),
        (999, "999 B"),
        (1000, "1.0 kB"),
        (1500, "1.5 kB"),
        (82854982, "83 MB"),
        (1_000_000_000, "1.0 GB"),
        (12_345_678_901, "12 GB"),
    ],
)
def test_humanize_bytes(size, expected):
    assert humanize_bytes(size) == expected


def test_humanize_bytes_rejects_negative():
    with pytest.raises(ValueError):
        humanize_bytes(-1)


def test_replace_size_substitutes_placeholder():
    assert replace_size("容量: ${{ZIP_SIZE}}", 82854982) == "容量: 83 MB"
    assert replace_size("size ${{SIZE  }}", 1500) == "size 1.5 kB"
    assert replace_size("size {{ZIP_SIZE}}", 1500) == "size {{ZIP_SIZE}}"
    assert replace_size("size ${{ZIP_SIZE}", 1500) == "size ${{ZIP_SIZE}"


def test_replace_size_without_placeholder_is_identity():
    text = "説明のみ"
    assert replace_size(text, 100) == text


def test_package_url_strips_trailing_slash():
    assert package_url("https://ckan.example.com/", "13100-tokyo23-ku-2023") == (
        "https://ckan.example.com/dataset/13100-tokyo23-ku-2023"
    )
