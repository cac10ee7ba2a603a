"""Credential backends: in-memory session tier and durable YAML file tier."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from tfupload.core.exceptions import CredentialBackendUnavailable

log = logging.getLogger(__name__)


class MemoryBackend:
    """Session-scoped credential tier; lives as long as the owning object."""

    name = "memory"

    def __init__(self) -> None:
        self._values: dict[tuple[str, str, str], str] = {}

    def get(self, project_id: str, owner: str, key: str) -> str | None:
        return self._values.get((project_id, owner, key))

    def store(self, project_id: str, owner: str, key: str, value: str) -> None:
        self._values[(project_id, owner, key)] = value


class FileBackend:
    """Durable credential tier backed by a YAML file readable only by the user.

    Layout: ``{project_id: {owner: {key: value}}}``.
    """

    name = "file"

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CredentialBackendUnavailable(f"Cannot read credentials file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise CredentialBackendUnavailable(f"Credentials file {self._path} is not a mapping")
        return data

    def _section(self, data: dict[str, Any], *keys: str) -> dict[str, Any]:
        """Walk nested mappings, failing if a level holds something else."""
        for key in keys:
            data = data.get(key, {})
            if not isinstance(data, dict):
                raise CredentialBackendUnavailable(
                    f"Credentials file {self._path} has a malformed entry under {key!r}"
                )
        return data

    def get(self, project_id: str, owner: str, key: str) -> str | None:
        value = self._section(self._read(), project_id, owner).get(key)
        return str(value) if value is not None else None

    def store(self, project_id: str, owner: str, key: str, value: str) -> None:
        data = self._read()
        entries = self._section(data, project_id, owner)
        entries[key] = value
        data.setdefault(project_id, {}).setdefault(owner, entries)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except OSError as e:
            raise CredentialBackendUnavailable(f"Cannot write credentials file {self._path}: {e}") from e
        log.debug("Stored credential %s for %s in %s", key, project_id, self._path)
