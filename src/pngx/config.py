from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import platformdirs
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidUrl, MissingCredentials

logger = logging.getLogger(__name__)

APP_NAME = "pngx"

DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT_S = 30.0


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


class Settings(BaseSettings):
    """Values taken from ``PNGX_*`` environment variables.

    Every field is optional: the environment is one layer among flags and the
    credential file, see :func:`resolve_session` and :func:`resolve_options`.
    """

    model_config = SettingsConfigDict(env_prefix="PNGX_", case_sensitive=False)

    url: Optional[str] = None
    token: Optional[str] = None
    output_format: Optional[OutputFormat] = None
    page_size: Optional[int] = Field(None, ge=1, le=100_000)
    timeout: Optional[float] = Field(None, ge=1.0, le=600.0, description="HTTP timeout (seconds)")
    config_file: Optional[Path] = None

    def layer(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"config_file"})


class Session(BaseModel):
    """Resolved server URL and API token for one invocation."""

    model_config = ConfigDict(frozen=True)

    base_url: AnyHttpUrl
    token: SecretStr

    @property
    def root(self) -> str:
        return str(self.base_url).rstrip("/")


class RuntimeOptions(BaseModel):
    output_format: OutputFormat = OutputFormat.TABLE
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=100_000)
    timeout: float = Field(DEFAULT_TIMEOUT_S, ge=1.0, le=600.0)


def config_dir() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME))


def config_file_path(settings: Optional[Settings] = None) -> Path:
    if settings is not None and settings.config_file is not None:
        return settings.config_file.expanduser()
    return config_dir() / "config.toml"


def _first(key: str, layers: tuple[Mapping[str, Any], ...]) -> Any:
    for layer in layers:
        value = layer.get(key)
        if value is not None and value != "":
            return value
    return None


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge key/value layers, earlier layers winning independently per key."""
    keys: list[str] = []
    for layer in layers:
        keys.extend(k for k in layer if k not in keys)
    merged = {k: _first(k, layers) for k in keys}
    return {k: v for k, v in merged.items() if v is not None}


def resolve_session(
    flags: Mapping[str, Any],
    env: Mapping[str, Any],
    stored: Mapping[str, Any],
) -> Session:
    """Build the effective session with flag > environment > file precedence."""
    merged = merge_layers(flags, env, stored)
    url = str(merged.get("url") or "").strip()
    token = str(merged.get("token") or "").strip()
    if not url or not token:
        missing = [name for name, v in (("server URL", url), ("API token", token)) if not v]
        raise MissingCredentials(
            f"{' and '.join(missing)} not configured. Run `pngx auth login` or pass --url/--token"
        )
    try:
        session = Session(base_url=url, token=token)
    except ValidationError as e:
        raise InvalidUrl(f"invalid server URL '{url}': {e.errors()[0]['msg']}") from e
    if session.base_url.scheme == "http":
        logger.warning("using insecure HTTP connection to %s", session.root)
    return session


def resolve_options(
    flags: Mapping[str, Any],
    env: Mapping[str, Any],
    stored: Mapping[str, Any],
) -> RuntimeOptions:
    merged = merge_layers(flags, env, stored)
    return RuntimeOptions(**{k: v for k, v in merged.items() if k in RuntimeOptions.model_fields})
