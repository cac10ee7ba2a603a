"""Configuration loading from .env and YAML."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from tfupload.core.exceptions import ConfigError

log = logging.getLogger(__name__)

#: Files that mark the root of a Gradle project.
PROJECT_MARKERS = ("settings.gradle", "settings.gradle.kts", "gradlew")

CONFIG_FILE_NAME = ".tfupload.yaml"

#: Environment variables that override YAML values.
ENV_KEYS = ("GRADLE_BIN", "TFUPLOAD_CREDENTIALS_FILE", "TFUPLOAD_BUILD_FILE", "TFUPLOAD_LAUNCH_BROWSER")

DEFAULT_CREDENTIALS_FILE = Path.home() / ".config" / "tfupload" / "credentials.yaml"


def _find_project_root(start: Path | None = None) -> Path:
    """Find the Gradle project root by looking for settings.gradle or gradlew upward."""
    current = Path(start or Path.cwd()).resolve()
    for _ in range(10):
        if any((current / marker).exists() for marker in PROJECT_MARKERS):
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent
    return Path(start or Path.cwd()).resolve()


def _parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


class GradleConfigModel(BaseModel):
    """Gradle section of config."""

    gradle_bin: str | None = None
    list_tasks_args: list[str] = Field(default_factory=lambda: [":tasks"])
    fixed_args: list[str] = Field(default_factory=lambda: ["-Pinstrumentation=off"])


class TaskNamingModel(BaseModel):
    """Task name prefixes used to find and classify TestFairy tasks."""

    task_prefix: str = "testfairy"
    symbols_prefix: str = "testfairyNdk"


class UploadConfigModel(BaseModel):
    """Upload section of config."""

    url_scheme: str = "http"
    url_domain: str = ".testfairy."
    launch_browser: bool | None = None


class AppConfig(BaseModel):
    """Full application configuration."""

    service_name: str = "TestFairy"
    build_file: str = "app/build.gradle"
    credentials_file: str | None = None
    gradle: GradleConfigModel = Field(default_factory=GradleConfigModel)
    tasks: TaskNamingModel = Field(default_factory=TaskNamingModel)
    upload: UploadConfigModel = Field(default_factory=UploadConfigModel)

    @property
    def credentials_path(self) -> Path:
        if self.credentials_file:
            return Path(self.credentials_file).expanduser()
        return DEFAULT_CREDENTIALS_FILE


class ConfigManager:
    """Load and merge configuration from .env and YAML."""

    def __init__(
        self,
        project_root: Path | None = None,
        env_path: Path | None = None,
        config_path: Path | None = None,
    ) -> None:
        self._root = Path(project_root or _find_project_root()).resolve()
        self._env_path = Path(env_path) if env_path else self._root / ".env"
        self._config_path = Path(config_path) if config_path else self._root / CONFIG_FILE_NAME
        self._config: AppConfig | None = None
        self._env: dict[str, str] = {}

    def load_env(self) -> dict[str, str]:
        """Load .env file into a dict (without modifying os.environ)."""
        if not self._env_path.exists():
            self._env = {}
            return self._env
        try:
            self._env = {k: v for k, v in dotenv_values(self._env_path).items() if v is not None}
            return self._env
        except (OSError, PermissionError) as e:
            log.warning("Failed to read .env file %s: %s", self._env_path, e)
            self._env = {}
            return self._env

    def load_yaml(self) -> dict[str, Any]:
        """Load YAML config file if it exists."""
        if not self._config_path.exists():
            return {}
        try:
            with open(self._config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, PermissionError) as e:
            log.warning("Failed to read config file %s: %s", self._config_path, e)
            return {}
        except yaml.YAMLError as e:
            log.warning("Malformed YAML in %s: %s", self._config_path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring config file %s: top level is not a mapping", self._config_path)
            return {}
        return data

    def load(self) -> AppConfig:
        """Load .env and YAML, merge with defaults, return AppConfig."""
        # Process environment wins over .env
        env = {**self.load_env(), **{k: os.environ[k] for k in ENV_KEYS if os.environ.get(k)}}
        yaml_data = self.load_yaml()

        # YAML first, then env overrides
        config_dict: dict[str, Any] = {
            key: yaml_data[key]
            for key in ("service_name", "build_file", "credentials_file")
            if yaml_data.get(key) is not None
        }
        gradle = dict(yaml_data.get("gradle") or {})
        tasks = dict(yaml_data.get("tasks") or {})
        upload = dict(yaml_data.get("upload") or {})

        if env.get("GRADLE_BIN"):
            gradle["gradle_bin"] = env["GRADLE_BIN"]
        if env.get("TFUPLOAD_CREDENTIALS_FILE"):
            config_dict["credentials_file"] = env["TFUPLOAD_CREDENTIALS_FILE"]
        if env.get("TFUPLOAD_BUILD_FILE"):
            config_dict["build_file"] = env["TFUPLOAD_BUILD_FILE"]
        if env.get("TFUPLOAD_LAUNCH_BROWSER"):
            flag = _parse_bool(env["TFUPLOAD_LAUNCH_BROWSER"])
            if flag is None:
                log.warning("Ignoring TFUPLOAD_LAUNCH_BROWSER=%r (expected true/false)", env["TFUPLOAD_LAUNCH_BROWSER"])
            else:
                upload["launch_browser"] = flag

        try:
            config_dict["gradle"] = GradleConfigModel(**gradle)
            config_dict["tasks"] = TaskNamingModel(**tasks)
            config_dict["upload"] = UploadConfigModel(**upload)
            self._config = AppConfig(**config_dict)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self._config_path}: {e}") from e
        return self._config

    @property
    def config(self) -> AppConfig:
        """Return loaded config; load if not yet loaded."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("ConfigManager.load() failed to produce a config")
        return self._config

    @property
    def env(self) -> dict[str, str]:
        """Return loaded env dict."""
        if not self._env and self._env_path.exists():
            self.load_env()
        return self._env

    @property
    def project_root(self) -> Path:
        return self._root
