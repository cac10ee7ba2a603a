"""Protocol for user-facing notifications."""

from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    """Surface for info, warning, and error messages shown to the user."""

    def info(self, message: str) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...
