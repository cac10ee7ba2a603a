"""Protocol for credential storage backends."""

from __future__ import annotations

from typing import Protocol


class CredentialBackend(Protocol):
    """Key/value storage for secrets, keyed by (project, owner, key name).

    Implementations raise CredentialBackendUnavailable when their storage
    cannot be read or written.
    """

    name: str

    def get(self, project_id: str, owner: str, key: str) -> str | None:
        """Return the stored secret, or None if there is none."""
        ...

    def store(self, project_id: str, owner: str, key: str, value: str) -> None:
        """Store or overwrite a secret."""
        ...
