"""Tests for CredentialStore and its backends."""

from __future__ import annotations

import logging
import stat
from pathlib import Path

import pytest
import yaml

from tfupload.core.exceptions import CredentialBackendUnavailable
from tfupload.core.schema import ProjectHandle
from tfupload.credentials import API_KEY_NAME, CredentialStore, FileBackend, MemoryBackend

from _helpers import SAMPLE_API_KEY, make_android_project


class _LockedBackend:
    """Durable tier that behaves like a locked vault."""

    name = "locked"

    def get(self, project_id: str, owner: str, key: str) -> str | None:
        raise CredentialBackendUnavailable("vault locked")

    def store(self, project_id: str, owner: str, key: str, value: str) -> None:
        raise CredentialBackendUnavailable("vault locked")


def test_get_returns_none_when_nothing_stored(credential_store: CredentialStore) -> None:
    assert credential_store.get() is None
    assert credential_store.is_configured() is False


def test_set_writes_both_tiers(project: ProjectHandle, tmp_path: Path) -> None:
    memory = MemoryBackend()
    durable = FileBackend(tmp_path / "creds.yaml")
    store = CredentialStore(project, memory=memory, durable=durable)
    assert store.set(SAMPLE_API_KEY) is True
    assert memory.get(project.identity, store.owner, API_KEY_NAME) == SAMPLE_API_KEY
    assert durable.get(project.identity, store.owner, API_KEY_NAME) == SAMPLE_API_KEY
    assert store.get() == SAMPLE_API_KEY


def test_get_falls_back_to_durable_tier(project: ProjectHandle, tmp_path: Path) -> None:
    """A fresh session (new memory tier) still finds the key written earlier."""
    creds = tmp_path / "creds.yaml"
    CredentialStore(project, memory=MemoryBackend(), durable=FileBackend(creds)).set("firstkey1")
    memory = MemoryBackend()
    store = CredentialStore(project, memory=memory, durable=FileBackend(creds))
    assert store.get() == "firstkey1"
    assert memory.get(project.identity, store.owner, API_KEY_NAME) == "firstkey1"


def test_set_overwrites(credential_store: CredentialStore) -> None:
    credential_store.set("firstkey1")
    credential_store.set("secondkey2")
    assert credential_store.get() == "secondkey2"


def test_keys_are_scoped_per_project(tmp_path: Path) -> None:
    creds = FileBackend(tmp_path / "creds.yaml")
    one = CredentialStore(make_android_project(tmp_path / "one"), memory=MemoryBackend(), durable=creds)
    two = CredentialStore(make_android_project(tmp_path / "two"), memory=MemoryBackend(), durable=creds)
    one.set("keyforone1")
    assert two.get() is None


def test_set_invalidates_cached_config(credential_store: CredentialStore) -> None:
    credential_store.set("firstkey1")
    first = credential_store.get_config()
    assert first.api_key == "firstkey1"
    assert credential_store.get_config() is first
    credential_store.set("secondkey2")
    assert credential_store.get_config().api_key == "secondkey2"


def test_locked_durable_tier_degrades_to_memory(project: ProjectHandle, caplog: pytest.LogCaptureFixture) -> None:
    store = CredentialStore(project, memory=MemoryBackend(), durable=_LockedBackend())
    with caplog.at_level(logging.WARNING):
        assert store.set(SAMPLE_API_KEY) is False
    assert "session only" in caplog.text
    assert store.get() == SAMPLE_API_KEY


def test_locked_durable_tier_read_is_absent(project: ProjectHandle) -> None:
    store = CredentialStore(project, memory=MemoryBackend(), durable=_LockedBackend())
    assert store.get() is None


def test_file_backend_file_is_private(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "creds.yaml"
    FileBackend(path).store("proj", "owner", "KEY", "value1")
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert yaml.safe_load(path.read_text()) == {"proj": {"owner": {"KEY": "value1"}}}


def test_file_backend_malformed_file_is_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "creds.yaml"
    path.write_text("proj: [unterminated\n")
    with pytest.raises(CredentialBackendUnavailable):
        FileBackend(path).get("proj", "owner", "KEY")


@pytest.mark.parametrize("content", ["proj: null\n", "proj: [a, b]\n", "proj:\n  owner: plain\n"])
def test_file_backend_non_mapping_entry_is_unavailable(tmp_path: Path, content: str) -> None:
    path = tmp_path / "creds.yaml"
    path.write_text(content)
    with pytest.raises(CredentialBackendUnavailable):
        FileBackend(path).get("proj", "owner", "KEY")
    with pytest.raises(CredentialBackendUnavailable):
        FileBackend(path).store("proj", "owner", "KEY", "value1")


def test_file_backend_adds_owner_to_existing_project(tmp_path: Path) -> None:
    path = tmp_path / "creds.yaml"
    path.write_text("proj:\n  other: {KEY: kept}\n")
    FileBackend(path).store("proj", "owner", "KEY", "value1")
    assert yaml.safe_load(path.read_text()) == {
        "proj": {"other": {"KEY": "kept"}, "owner": {"KEY": "value1"}}
    }


def test_null_project_entry_degrades_to_memory(
    project: ProjectHandle, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "creds.yaml"
    path.write_text(yaml.safe_dump({project.identity: None}))
    store = CredentialStore(project, memory=MemoryBackend(), durable=FileBackend(path))
    assert store.get() is None
    with caplog.at_level(logging.WARNING):
        assert store.set(SAMPLE_API_KEY) is False
    assert store.get() == SAMPLE_API_KEY


def test_patch_build_file_uses_stored_key(credential_store: CredentialStore) -> None:
    credential_store.set(SAMPLE_API_KEY)
    assert credential_store.is_build_file_patched() is False
    assert credential_store.patch_build_file() is True
    assert credential_store.is_build_file_patched() is True
    assert SAMPLE_API_KEY in credential_store.build_file_path().read_text()


def test_patch_build_file_explicit_path_and_secret(credential_store: CredentialStore, tmp_path: Path) -> None:
    other = tmp_path / "other.gradle"
    other.write_text("android {\n}\n")
    credential_store.patch_build_file(other, "explicitkey9")
    assert 'apiKey = "explicitkey9"' in other.read_text()
