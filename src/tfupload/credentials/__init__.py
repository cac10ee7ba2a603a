"""API key storage and build file patching."""

from tfupload.credentials.backends import FileBackend, MemoryBackend
from tfupload.credentials.build_file import BuildFilePatcher, looks_like_api_key
from tfupload.credentials.store import API_KEY_NAME, CredentialStore

__all__ = [
    "API_KEY_NAME",
    "BuildFilePatcher",
    "CredentialStore",
    "FileBackend",
    "MemoryBackend",
    "looks_like_api_key",
]
