"""Processing status values stored on CMS items.

The CMS select fields hold the Japanese labels, so the enum values are the
labels themselves and round-trip without translation.
"""

from __future__ import annotations

from enum import Enum


class ItemStatus(str, Enum):
    """Status of a preparation step as shown in the CMS."""

    NOT_STARTED = "未実行"
    RUNNING = "実行中"
    SUCCESS = "完了"
    ERROR = "エラー"

    @classmethod
    def parse(cls, value: object) -> "ItemStatus | None":
        """Map a raw CMS value to a status; unknown or empty values yield None."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None

    def label(self) -> str:
        """English label for logs."""

        return self.name.lower()
