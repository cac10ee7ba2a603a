"""Two-tier API key storage scoped to one project."""

from __future__ import annotations

import logging
from pathlib import Path

from tfupload.core.exceptions import CredentialBackendUnavailable
from tfupload.core.schema import BuildFileConfig, ProjectHandle
from tfupload.credentials.build_file import BuildFilePatcher
from tfupload.protocols import CredentialBackend

log = logging.getLogger(__name__)

#: Fixed key name under which the TestFairy API key is stored.
API_KEY_NAME = "TESTFAIRY_API_KEY"


class CredentialStore:
    """Stores the TestFairy API key for one project in a memory tier and a durable tier.

    Reads try the memory tier first and fall back to the durable tier. Writes go to
    both; if the durable tier is unavailable the key is kept in memory for this
    session only. Every successful write invalidates the cached BuildFileConfig.
    """

    def __init__(
        self,
        project: ProjectHandle,
        memory: CredentialBackend,
        durable: CredentialBackend,
        build_file: str = "app/build.gradle",
    ) -> None:
        self._project = project
        self._memory = memory
        self._durable = durable
        self._build_file = build_file
        self._config: BuildFileConfig | None = None

    @property
    def owner(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def project(self) -> ProjectHandle:
        return self._project

    def _key(self) -> tuple[str, str, str]:
        return self._project.identity, self.owner, API_KEY_NAME

    def get(self) -> str | None:
        """Return the stored API key, or None if neither tier has one."""
        value = self._memory.get(*self._key())
        if value:
            return value
        try:
            value = self._durable.get(*self._key())
        except CredentialBackendUnavailable as e:
            log.warning("Durable credential storage unavailable: %s", e)
            return None
        if not value:
            return None
        self._memory.store(*self._key(), value)
        return value

    def set(self, secret: str) -> bool:
        """Store ``secret`` in both tiers.

        Returns False when only the memory tier could be written.
        """
        self._memory.store(*self._key(), secret)
        self._config = None
        try:
            self._durable.store(*self._key(), secret)
        except CredentialBackendUnavailable as e:
            log.warning("API key kept in memory for this session only: %s", e)
            return False
        return True

    def is_configured(self) -> bool:
        return bool(self.get())

    def get_config(self) -> BuildFileConfig:
        """Return the derived build-file configuration, cached until the next set()."""
        if self._config is None:
            self._config = BuildFileConfig(api_key=self.get())
        return self._config

    def build_file_path(self) -> Path:
        return self._project.build_file(self._build_file)

    def patch_build_file(self, path: Path | str | None = None, secret: str | None = None) -> bool:
        """Declare the API key in the build file; defaults to the project's file and stored key."""
        target = Path(path) if path is not None else self.build_file_path()
        if secret is None:
            secret = self.get_config().api_key or ""
        return BuildFilePatcher(target).patch(secret)

    def is_build_file_patched(self, project: ProjectHandle | None = None) -> bool:
        project = project or self._project
        return BuildFilePatcher(project.build_file(self._build_file)).is_patched()
