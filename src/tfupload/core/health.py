"""Health checks for Gradle, the build file, and the stored API key."""

from __future__ import annotations

from dataclasses import dataclass

from tfupload.core.config import ConfigManager
from tfupload.core.exceptions import BuildFileNotFoundError
from tfupload.core.schema import ProjectHandle
from tfupload.credentials.store import CredentialStore
from tfupload.gradle.connector import resolve_gradle_command


@dataclass
class HealthCheckResult:
    """Result of a single health check."""

    name: str
    ok: bool
    message: str = ""
    suggestion: str = ""


class HealthChecker:
    """Run health checks for one Android project."""

    def __init__(
        self,
        config: ConfigManager,
        project: ProjectHandle,
        credentials: CredentialStore,
    ) -> None:
        self._config = config
        self._project = project
        self._credentials = credentials

    def check_gradle(self) -> HealthCheckResult:
        """Check that a Gradle executable (wrapper, configured binary, or PATH) is available."""
        command = resolve_gradle_command(self._project.root, self._config.config.gradle.gradle_bin)
        if command is None:
            return HealthCheckResult(
                name="gradle",
                ok=False,
                message=f"No gradlew in {self._project.root} and no 'gradle' on PATH.",
                suggestion="Run from the Android project root, or set GRADLE_BIN in .env.",
            )
        return HealthCheckResult(name="gradle", ok=True, message=" ".join(command))

    def check_build_file(self) -> HealthCheckResult:
        path = self._project.build_file(self._config.config.build_file)
        if not path.is_file():
            return HealthCheckResult(
                name="build_file",
                ok=False,
                message=f"Android module build file not found: {path}",
                suggestion="Set build_file in .tfupload.yaml if the app module is not 'app/'.",
            )
        return HealthCheckResult(name="build_file", ok=True, message=str(path))

    def check_patched(self) -> HealthCheckResult:
        try:
            patched = self._credentials.is_build_file_patched(self._project)
        except BuildFileNotFoundError as e:
            return HealthCheckResult(name="patched", ok=False, message=str(e))
        if not patched:
            return HealthCheckResult(
                name="patched",
                ok=False,
                message="Build file does not apply the testfairy plugin with a valid apiKey.",
                suggestion="Run `tfupload configure` to store the API key and patch the build file.",
            )
        return HealthCheckResult(name="patched", ok=True, message="testfairy plugin and apiKey declared")

    def check_credential(self) -> HealthCheckResult:
        if not self._credentials.is_configured():
            return HealthCheckResult(
                name="credential",
                ok=False,
                message="No TestFairy API key stored for this project.",
                suggestion="Run `tfupload configure`.",
            )
        return HealthCheckResult(name="credential", ok=True, message="API key stored")

    def check_all(self) -> list[HealthCheckResult]:
        return [
            self.check_gradle(),
            self.check_build_file(),
            self.check_patched(),
            self.check_credential(),
        ]
