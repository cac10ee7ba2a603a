"""Gradle connection, build launching, and build logging."""

from tfupload.gradle.build_log import build_log_context, get_logger
from tfupload.gradle.connector import (
    BuildLauncher,
    GradleConnector,
    ProjectConnection,
    resolve_gradle_command,
)

__all__ = [
    "BuildLauncher",
    "GradleConnector",
    "ProjectConnection",
    "build_log_context",
    "get_logger",
    "resolve_gradle_command",
]
