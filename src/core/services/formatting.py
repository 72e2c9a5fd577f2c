"""String helpers for CKAN resource names and descriptions."""

from __future__ import annotations

import re

_RE_RESOURCE_VERSION = re.compile(r"(?:\(|（)v(\d+)(?:\)|）)$")
_RE_SIZE = re.compile(r"\$\{\{.*_?SIZE *\}\}")

_SI_UNITS = ("B", "kB", "MB", "GB", "TB", "PB", "EB")


def versioned_name(label: str, version: int) -> str:
    """`CityGML`, 3 -> `CityGML（v3）` (full-width parentheses)."""

    return f"{label}（v{version}）"


def extract_version_from_resource_name(name: str) -> int | None:
    """Version embedded as a trailing `(vN)`/`（vN）`; None when absent."""

    m = _RE_RESOURCE_VERSION.search(name)
    if not m:
        return None
    return int(m.group(1))


def humanize_bytes(size: int) -> str:
    """SI byte count: `999 B`, `1.5 kB`, `83 MB`.

    One decimal below 10 units, none above; matches the sizes shown on the
    existing G空間情報センター pages.
    """

    if size < 0:
        raise ValueError("size must be non-negative")
    if size < 10:
        return f"{size} B"

    exp = 0
    while exp < len(_SI_UNITS) - 1 and size >= 1000 ** (exp + 1):
        exp += 1

    value = int(size / 1000**exp * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {_SI_UNITS[exp]}"
    return f"{value:.0f} {_SI_UNITS[exp]}"


def replace_size(text: str, size: int) -> str:
    """Substitute `${{..._SIZE}}` placeholders with the humanized size."""

    return _RE_SIZE.sub(humanize_bytes(size), text)


def package_url(ckan_base: str, package_name: str) -> str:
    return f"{ckan_base.rstrip('/')}/dataset/{package_name}"
