from __future__ import annotations

import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from .errors import IoFailure

logger = logging.getLogger(__name__)


class CredentialStore:
    """Key/value credential file (TOML) holding the server URL and API token."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return tomllib.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise IoFailure(f"failed to read config file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self.read().get(key)
        return str(value) if value is not None else None

    def set(self, url: str, token: str) -> Path:
        # TOML basic strings accept JSON string escapes
        content = f"url = {json.dumps(url)}\ntoken = {json.dumps(token)}\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise IoFailure(f"failed to write config file {self.path}: {e}") from e
        logger.info("credentials saved to %s", self.path)
        return self.path

    def clear(self) -> bool:
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as e:
            raise IoFailure(f"failed to remove config file {self.path}: {e}") from e
        return True

    def masked_lines(self) -> list[str]:
        """File contents with the token value hidden."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise IoFailure(f"failed to read config file {self.path}: {e}") from e
        lines = []
        for line in text.splitlines():
            if line.lstrip().startswith("token"):
                lines.append('token = "***"')
            else:
                lines.append(line)
        return lines
