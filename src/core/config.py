"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into the CLI.
- Lets adapters (CMS/CKAN/HTTP) read the same settings consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError

_SENSITIVE_FIELDS = {"cms_token", "ckan_token"}


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "plateau-gspatial"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "plateau-gspatial"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "plateau-gspatial"
    return Path.home() / ".config" / "plateau-gspatial"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Write or update variables in the user's global .env."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# plateau-gspatial user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typing and validation at the edge (env vars) without polluting the core.
    - A single configuration contract for the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLATEAU_GSPATIAL_",
        extra="ignore",
        case_sensitive=False,
        # Project .env first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    cms_base_url: str | None = Field(
        default=None,
        description="Base URL of the CMS integration API.",
    )
    cms_token: str | None = Field(
        default=None,
        description="CMS integration token (sent as Bearer).",
    )
    cms_project_id: str | None = Field(
        default=None,
        description="CMS project that receives uploaded assets.",
    )

    ckan_base_url: str | None = Field(
        default=None,
        description="Base URL of the CKAN site (G空間情報センター).",
    )
    ckan_token: str | None = Field(
        default=None,
        description="CKAN API token.",
    )
    ckan_org: str | None = Field(
        default=None,
        description="CKAN organization that owns created packages.",
    )
    ckan_private: bool = Field(
        default=False,
        description="Create new packages as private.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout per API request (seconds).",
    )
    download_timeout_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Timeout for artifact downloads (seconds).",
    )
    user_agent: str = Field(
        default="plateau-gspatial/0.1",
        min_length=1,
        description="User-Agent for outgoing requests.",
    )

    tmp_dir_base: Path = Field(
        default=Path("plateau-api-worker-tmp"),
        description="Base directory for per-run work directories.",
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR).",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of the console renderer.",
    )

    def require_cms(self) -> tuple[str, str]:
        if not self.cms_base_url or not self.cms_token:
            raise ConfigurationError(
                "CMS is not configured: set PLATEAU_GSPATIAL_CMS_BASE_URL and PLATEAU_GSPATIAL_CMS_TOKEN"
            )
        return self.cms_base_url, self.cms_token

    def require_ckan(self) -> tuple[str, str]:
        if not self.ckan_base_url or not self.ckan_token:
            raise ConfigurationError(
                "CKAN is not configured: set PLATEAU_GSPATIAL_CKAN_BASE_URL and PLATEAU_GSPATIAL_CKAN_TOKEN"
            )
        return self.ckan_base_url, self.ckan_token


def redact_settings(settings: AppSettings) -> dict[str, Any]:
    """Loggable view of the settings; tokens are never emitted."""

    data = settings.model_dump(mode="json")
    for key in _SENSITIVE_FIELDS:
        if data.get(key):
            data[key] = "[REDACTED]"
    return data
