"""Shared pytest fixtures for tfupload tests.

Factory functions live in ``_helpers.py``; this module re-exports them as
pytest fixtures so tests can receive them via dependency injection.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tfupload.core.schema import ProjectHandle
from tfupload.credentials import CredentialStore

from _helpers import (  # noqa: F401 — re-export for fixture use
    SAMPLE_API_KEY,
    make_android_project,
    make_credential_store,
    write_fake_gradle,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's real Gradle and credentials settings out of tests."""
    for key in ("GRADLE_BIN", "TFUPLOAD_CREDENTIALS_FILE", "TFUPLOAD_BUILD_FILE", "TFUPLOAD_LAUNCH_BROWSER"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def project(tmp_path: Path) -> ProjectHandle:
    """An Android project with an unpatched app/build.gradle."""
    return make_android_project(tmp_path / "MyApp")


@pytest.fixture()
def credential_store(project: ProjectHandle, tmp_path: Path) -> CredentialStore:
    """A CredentialStore for ``project`` with a durable tier under tmp_path."""
    return make_credential_store(project, tmp_path / "credentials.yaml")


@pytest.fixture()
def patched_store(credential_store: CredentialStore) -> CredentialStore:
    """A CredentialStore whose project build file already declares SAMPLE_API_KEY."""
    credential_store.set(SAMPLE_API_KEY)
    credential_store.patch_build_file()
    return credential_store


@pytest.fixture()
def fake_gradle(tmp_path: Path) -> Path:
    """A fake Gradle executable that lists tasks and prints an upload URL."""
    return write_fake_gradle(tmp_path / "fake-gradle")
