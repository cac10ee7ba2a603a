"""Patch the Android module build file so the TestFairy Gradle plugin gets the API key."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from tfupload.core.exceptions import BuildFileNotFoundError

log = logging.getLogger(__name__)

APPLY_LINE = "apply plugin: 'testfairy'"

INDENT = "    "

_RE_APPLY_TESTFAIRY = re.compile(r"""^\s*apply\s+plugin\s*:\s*(['"])testfairy\1\s*;?\s*$""")
_RE_APPLY_ANY = re.compile(r"^\s*apply\s+plugin\s*:")
_RE_PLUGINS_BLOCK = re.compile(r"^\s*plugins\s*\{\s*$")
_RE_CLOSING_BRACE = re.compile(r"^\}\s*$")
_RE_API_KEY = re.compile(r"""^(?P<indent>\s*)apiKey\s*=?\s*(['"])(?P<value>[^'"]*)\2\s*$""")
_RE_TESTFAIRY_BLOCK = re.compile(r"^(?P<indent>\s*)testfairyConfig\s*\{\s*$")
_RE_ANDROID_BLOCK = re.compile(r"^(?P<indent>\s*)android\s*\{\s*$")
_RE_VALID_KEY = re.compile(r"^[A-Za-z0-9]+$")


def looks_like_api_key(value: str | None) -> bool:
    """True for a non-empty key made of ASCII letters and digits only."""
    return bool(value) and _RE_VALID_KEY.match(value) is not None


def _api_key_line(indent: str, secret: str) -> str:
    return f'{indent}apiKey = "{secret}"'


def _ensure_apply_line(lines: list[str]) -> bool:
    """Insert the plugin-apply line if missing. Returns True if lines changed."""
    if any(_RE_APPLY_TESTFAIRY.match(line) for line in lines):
        return False
    last_apply = None
    for i, line in enumerate(lines):
        if _RE_APPLY_ANY.match(line):
            last_apply = i
    if last_apply is not None:
        lines.insert(last_apply + 1, APPLY_LINE)
        return True
    # `apply plugin` must follow a top-level plugins { } block
    for i, line in enumerate(lines):
        if _RE_PLUGINS_BLOCK.match(line):
            for j in range(i + 1, len(lines)):
                if _RE_CLOSING_BRACE.match(lines[j]):
                    lines.insert(j + 1, APPLY_LINE)
                    return True
            break
    lines.insert(0, APPLY_LINE)
    return True


def _ensure_api_key(lines: list[str], secret: str) -> bool:
    """Insert or rewrite the apiKey property. Returns True if lines changed."""
    for i, line in enumerate(lines):
        m = _RE_API_KEY.match(line)
        if m:
            wanted = _api_key_line(m.group("indent"), secret)
            if line == wanted:
                return False
            lines[i] = wanted
            return True
    for i, line in enumerate(lines):
        m = _RE_TESTFAIRY_BLOCK.match(line)
        if m:
            lines.insert(i + 1, _api_key_line(m.group("indent") + INDENT, secret))
            return True
    for i, line in enumerate(lines):
        m = _RE_ANDROID_BLOCK.match(line)
        if m:
            indent = m.group("indent") + INDENT
            lines[i + 1 : i + 1] = [
                f"{indent}testfairyConfig {{",
                _api_key_line(indent + INDENT, secret),
                f"{indent}}}",
            ]
            return True
    if lines and lines[-1].strip():
        lines.append("")
    lines.extend(
        [
            "android {",
            f"{INDENT}testfairyConfig {{",
            _api_key_line(INDENT * 2, secret),
            f"{INDENT}}}",
            "}",
        ]
    )
    return True


class BuildFilePatcher:
    """Idempotently declares the TestFairy plugin and API key in a Gradle build file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> str:
        if not self._path.is_file():
            raise BuildFileNotFoundError(self._path)
        with open(self._path, encoding="utf-8", newline="") as f:
            return f.read()

    def patch(self, secret: str) -> bool:
        """Ensure the build file applies the plugin and declares ``secret``.

        Returns True if the file was rewritten, False if it already matched.
        """
        if not looks_like_api_key(secret):
            raise ValueError("API key must be non-empty and contain only letters and digits")
        text = self._read()
        newline = "\r\n" if "\r\n" in text else "\n"
        lines = text.split(newline)
        had_trailing_newline = lines[-1] == ""
        if had_trailing_newline:
            lines.pop()

        changed = _ensure_apply_line(lines)
        changed = _ensure_api_key(lines, secret) or changed
        if not changed:
            log.debug("Build file %s already declares the API key", self._path)
            return False

        patched = newline.join(lines)
        if had_trailing_newline:
            patched += newline
        with open(self._path, "w", encoding="utf-8", newline="") as f:
            f.write(patched)
        log.info("Patched build file %s", self._path)
        return True

    def declared_api_key(self) -> str | None:
        """Return the apiKey value declared in the build file, if any."""
        for line in self._read().splitlines():
            m = _RE_API_KEY.match(line)
            if m:
                return m.group("value")
        return None

    def is_patched(self) -> bool:
        """True if the file applies the plugin and declares a valid-looking API key."""
        text = self._read()
        applied = any(_RE_APPLY_TESTFAIRY.match(line) for line in text.splitlines())
        return applied and looks_like_api_key(self.declared_api_key())
