"""Error hierarchy shared by the core and the adapters.

Every exception carries a message that is safe to show to CMS users, because
the pipelines post failures as comments on the originating items.
"""

from __future__ import annotations


class GspatialError(Exception):
    """Base error for the publication worker."""


class ConfigurationError(GspatialError):
    """Missing or invalid settings/options."""


class ExternalServiceError(GspatialError):
    """A CMS/CKAN call returned a non-success response."""

    service = "external"

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        prefix = f"{self.service} error"
        if status_code is not None:
            prefix = f"{prefix} (HTTP {status_code})"
        super().__init__(f"{prefix}: {detail}")


class CMSError(ExternalServiceError):
    service = "CMS"


class CKANError(ExternalServiceError):
    service = "CKAN"


class InvalidItemError(GspatialError):
    """The city item cannot be processed (missing fields, bad year/spec/update count)."""


class NoCommandError(GspatialError):
    """Every preparation step is disabled."""

    def __init__(self, message: str = "no command to run") -> None:
        super().__init__(message)


class PreparationError(GspatialError):
    """A preparation collaborator failed or is not registered."""


class PublishError(GspatialError):
    """A publication step failed; the message is user-facing."""
