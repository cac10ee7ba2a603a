"""Protocol interfaces for pluggable components."""

from tfupload.protocols.credential_backend import CredentialBackend
from tfupload.protocols.notifier import Notifier

__all__ = [
    "CredentialBackend",
    "Notifier",
]
