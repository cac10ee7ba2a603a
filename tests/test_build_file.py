"""Tests for BuildFilePatcher."""

from __future__ import annotations

from pathlib import Path

import pytest

from tfupload.core.exceptions import BuildFileNotFoundError
from tfupload.credentials.build_file import APPLY_LINE, BuildFilePatcher, looks_like_api_key

from _helpers import SAMPLE_API_KEY, SAMPLE_BUILD_GRADLE


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "build.gradle"
    path.write_bytes(text.encode("utf-8"))
    return path


def test_patch_inserts_one_apply_line_and_one_key(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    assert BuildFilePatcher(path).patch(SAMPLE_API_KEY) is True
    text = path.read_text()
    assert text.count(APPLY_LINE) == 1
    assert text.count("apiKey") == 1
    assert f'apiKey = "{SAMPLE_API_KEY}"' in text
    # apply line goes right after the existing apply line
    lines = text.splitlines()
    assert lines[0] == "apply plugin: 'com.android.application'"
    assert lines[1] == APPLY_LINE
    # unrelated content survives
    assert "implementation 'androidx.appcompat:appcompat:1.6.1'" in text
    assert 'applicationId "com.example.app"' in text


def test_patch_nests_key_inside_android_block(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    BuildFilePatcher(path).patch(SAMPLE_API_KEY)
    lines = path.read_text().splitlines()
    i = lines.index("android {")
    assert lines[i + 1] == "    testfairyConfig {"
    assert lines[i + 2] == f'        apiKey = "{SAMPLE_API_KEY}"'
    assert lines[i + 3] == "    }"


def test_patch_twice_is_byte_identical(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    patcher = BuildFilePatcher(path)
    patcher.patch(SAMPLE_API_KEY)
    once = path.read_bytes()
    assert patcher.patch(SAMPLE_API_KEY) is False
    assert path.read_bytes() == once


def test_patch_rewrites_existing_key_in_place(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    patcher = BuildFilePatcher(path)
    patcher.patch("oldkey123")
    assert patcher.patch("newkey456") is True
    text = path.read_text()
    assert "oldkey123" not in text
    assert text.count("apiKey") == 1
    assert text.count(APPLY_LINE) == 1
    assert patcher.declared_api_key() == "newkey456"


def test_patch_reuses_existing_testfairy_block(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "apply plugin: 'com.android.application'\n"
        "apply plugin: 'testfairy'\n"
        "android {\n"
        "    testfairyConfig {\n"
        "        video \"wifi\"\n"
        "    }\n"
        "}\n",
    )
    BuildFilePatcher(path).patch(SAMPLE_API_KEY)
    lines = path.read_text().splitlines()
    assert lines.count("apply plugin: 'testfairy'") == 1
    i = lines.index("    testfairyConfig {")
    assert lines[i + 1] == f'        apiKey = "{SAMPLE_API_KEY}"'
    assert '        video "wifi"' in lines


def test_patch_recognises_groovy_call_syntax(tmp_path: Path) -> None:
    """An existing `apiKey "..."` (no equals sign) is rewritten, not duplicated."""
    path = _write(
        tmp_path,
        "apply plugin: \"testfairy\"\nandroid {\n    testfairyConfig {\n        apiKey \"abc\"\n    }\n}\n",
    )
    BuildFilePatcher(path).patch("def456")
    text = path.read_text()
    assert text.count("apiKey") == 1
    assert 'apiKey = "def456"' in text
    assert APPLY_LINE not in text  # double-quoted apply line already present


def test_patch_after_plugins_block(tmp_path: Path) -> None:
    path = _write(tmp_path, "plugins {\n    id 'com.android.application'\n}\n\nandroid {\n}\n")
    BuildFilePatcher(path).patch(SAMPLE_API_KEY)
    lines = path.read_text().splitlines()
    assert lines[:4] == ["plugins {", "    id 'com.android.application'", "}", APPLY_LINE]


def test_patch_appends_android_block_when_missing(tmp_path: Path) -> None:
    path = _write(tmp_path, "")
    BuildFilePatcher(path).patch(SAMPLE_API_KEY)
    text = path.read_text()
    assert text.startswith(APPLY_LINE + "\n")
    assert "android {\n    testfairyConfig {\n" in text
    assert text.endswith("}\n")


def test_patch_preserves_crlf(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE.replace("\n", "\r\n"))
    BuildFilePatcher(path).patch(SAMPLE_API_KEY)
    raw = path.read_bytes()
    assert b"\r\n" in raw
    assert b"\n" not in raw.replace(b"\r\n", b"")


def test_patch_rejects_invalid_key(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    with pytest.raises(ValueError):
        BuildFilePatcher(path).patch('bad"key')
    assert path.read_text() == SAMPLE_BUILD_GRADLE


def test_patch_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(BuildFileNotFoundError) as excinfo:
        BuildFilePatcher(tmp_path / "app" / "build.gradle").patch(SAMPLE_API_KEY)
    assert excinfo.value.path == tmp_path / "app" / "build.gradle"


def test_is_patched(tmp_path: Path) -> None:
    path = _write(tmp_path, SAMPLE_BUILD_GRADLE)
    patcher = BuildFilePatcher(path)
    assert patcher.is_patched() is False
    patcher.patch(SAMPLE_API_KEY)
    assert patcher.is_patched() is True


def test_is_patched_requires_valid_looking_key(tmp_path: Path) -> None:
    path = _write(tmp_path, "apply plugin: 'testfairy'\nandroid {\n    testfairyConfig {\n        apiKey = \"\"\n    }\n}\n")
    assert BuildFilePatcher(path).is_patched() is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [(SAMPLE_API_KEY, True), ("abc123", True), ("", False), (None, False), ("has space", False), ("key-1", False)],
)
def test_looks_like_api_key(value: str | None, expected: bool) -> None:
    assert looks_like_api_key(value) is expected
