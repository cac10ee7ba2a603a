"""Custom exception hierarchy for tfupload."""

from __future__ import annotations

from pathlib import Path


class TfUploadError(Exception):
    """Base exception for tfupload."""

    pass


class ConfigError(TfUploadError):
    """Raised when configuration loading or validation fails."""

    pass


class ConfigurationMissingError(TfUploadError):
    """Raised when the build file is not patched or no API key is stored."""

    pass


class BuildFileNotFoundError(TfUploadError):
    """Raised when the Android module build file does not exist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Android module build file not found: {self.path}")


class CredentialBackendUnavailable(TfUploadError):
    """Raised by a credential backend that cannot read or write its storage."""

    pass


class NoTasksFoundError(TfUploadError):
    """Raised when task discovery yields no TestFairy tasks."""

    pass


class BuildFailure(TfUploadError):
    """Raised when a Gradle invocation fails."""

    pass


class InvalidCredentialError(BuildFailure):
    """Raised when Gradle output shows the TestFairy API key was rejected."""

    pass


class OperationCancelledError(TfUploadError):
    """Raised when a background operation observes its cancellation token."""

    pass


class GradleConnectionError(TfUploadError):
    """Raised when Gradle cannot be started or exits with a failure."""

    pass


class LauncherStateError(TfUploadError):
    """Raised when a build launcher or connection is used in an invalid state."""

    pass


class GradleBuildOutput(Exception):
    """Captured Gradle output, attached as the cause of a GradleConnectionError."""

    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(output)
