"""Framework core: config, schema, exceptions, background tasks, health."""

from tfupload.core.config import AppConfig, ConfigManager
from tfupload.core.health import HealthChecker, HealthCheckResult
from tfupload.core.schema import (
    BuildFileConfig,
    BuildOutput,
    ProjectHandle,
    TaskDescriptor,
    TaskFamily,
    UploadResult,
)
from tfupload.core.tasks import BackgroundRunner, BackgroundTask, CancellationToken

__all__ = [
    "AppConfig",
    "BackgroundRunner",
    "BackgroundTask",
    "BuildFileConfig",
    "BuildOutput",
    "CancellationToken",
    "ConfigManager",
    "HealthCheckResult",
    "HealthChecker",
    "ProjectHandle",
    "TaskDescriptor",
    "TaskFamily",
    "UploadResult",
]
