"""Pydantic models and data structures for the upload workflow."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

_RE_LINE_BREAK = re.compile(r"\r?\n")


class ProjectHandle(BaseModel):
    """Identifies the Android project by its root directory."""

    model_config = ConfigDict(frozen=True)

    root: Path

    @classmethod
    def from_path(cls, path: Path | str) -> ProjectHandle:
        return cls(root=Path(path).resolve())

    @property
    def identity(self) -> str:
        """Stable key used to scope stored credentials to this project."""
        return str(self.root)

    @property
    def name(self) -> str:
        return self.root.name

    def build_file(self, relative: str = "app/build.gradle") -> Path:
        return self.root / relative


class TaskFamily(str, Enum):
    """Kind of TestFairy task, decided by a name prefix."""

    VARIANT = "variant"
    SYMBOLS = "symbols"


class TaskDescriptor(BaseModel):
    """A discovered TestFairy Gradle task and its human-readable explanation."""

    name: str
    family: TaskFamily = TaskFamily.VARIANT
    suffix: str = ""
    explanation: str = ""


class BuildFileConfig(BaseModel):
    """Configuration written into the build file (derived from the stored API key)."""

    api_key: str | None = None


class UploadResult(BaseModel):
    """Outcome of one build-and-upload operation."""

    success: bool = True
    task_name: str = ""
    url: str | None = None
    message: str = ""
    build_log_file: str | None = None


class BuildOutput:
    """Append-only text buffer for the combined output of one Gradle invocation.

    Works as a file-like sink (``write``/``flush``). An optional listener receives
    every chunk as it arrives, e.g. to echo Gradle output to the terminal.
    """

    def __init__(self, listener: Callable[[str], None] | None = None) -> None:
        self._chunks: list[str] = []
        self._listener = listener

    def write(self, text: str) -> int:
        self._chunks.append(text)
        if self._listener is not None:
            self._listener(text)
        return len(text)

    def flush(self) -> None:
        pass

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def lines(self) -> list[str]:
        text = self.text
        if not text:
            return []
        return _RE_LINE_BREAK.split(text)

    def __len__(self) -> int:
        return sum(len(c) for c in self._chunks)

    def __str__(self) -> str:
        return self.text
