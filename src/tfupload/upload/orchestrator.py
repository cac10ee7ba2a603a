"""Discover TestFairy Gradle tasks, run one, and classify the outcome."""

from __future__ import annotations

import traceback
from typing import Callable, Sequence

from tfupload import TOOL_NAME, __version__
from tfupload.core.config import AppConfig
from tfupload.core.exceptions import (
    BuildFailure,
    GradleConnectionError,
    InvalidCredentialError,
    LauncherStateError,
)
from tfupload.core.schema import (
    BuildOutput,
    ProjectHandle,
    TaskDescriptor,
    TaskFamily,
    UploadResult,
)
from tfupload.core.tasks import CancellationToken
from tfupload.gradle.build_log import get_logger
from tfupload.gradle.connector import GradleConnector
from tfupload.upload.scraper import extract_result_url

#: Substring the TestFairy plugin puts in its failure when the key is rejected.
INVALID_API_KEY_MARKER = "Invalid API key"

INVALID_API_KEY_MESSAGE = "Invalid API key. Please run `tfupload configure` to fix."


def uploaded_by() -> str:
    """Attribution string passed to the TestFairy plugin."""
    return f"{TOOL_NAME} v{__version__}"


def diagnostic_text(error: BaseException) -> str:
    """Render an exception with its whole cause/context chain."""
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def is_invalid_api_key(error: BaseException) -> bool:
    return INVALID_API_KEY_MARKER in diagnostic_text(error)


def parse_task_names(lines: Sequence[str], prefix: str) -> list[str]:
    """Return the first token of each line whose first token starts with ``prefix``.

    Discovery order is kept and repeated names are dropped.
    """
    names: list[str] = []
    for line in lines:
        tokens = line.split()
        if tokens and tokens[0].startswith(prefix) and tokens[0] not in names:
            names.append(tokens[0])
    return names


class BuildOrchestrator:
    """Drives Gradle for one project: task discovery, upload runs, and output scraping.

    Every Gradle call opens a fresh connection; nothing is pooled.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        connector_factory: Callable[[], GradleConnector] | None = None,
    ) -> None:
        self._config = config or AppConfig()
        self._connector_factory = connector_factory or (
            lambda: GradleConnector(gradle_bin=self._config.gradle.gradle_bin)
        )

    @property
    def config(self) -> AppConfig:
        return self._config

    def describe(self, name: str) -> TaskDescriptor:
        """Classify a task name and build its explanation."""
        naming = self._config.tasks
        service = self._config.service_name
        if name.startswith(naming.symbols_prefix):
            suffix = name[len(naming.symbols_prefix):]
            return TaskDescriptor(
                name=name,
                family=TaskFamily.SYMBOLS,
                suffix=suffix,
                explanation=f"Send '{suffix}' symbols to {service} to symbolicate native crashes",
            )
        suffix = name[len(naming.task_prefix):] if name.startswith(naming.task_prefix) else name
        return TaskDescriptor(
            name=name,
            family=TaskFamily.VARIANT,
            suffix=suffix,
            explanation=f"Build '{suffix}' variant and send package to {service}",
        )

    def explain(self, tasks: Sequence[TaskDescriptor | str]) -> list[str]:
        """Return one explanation per task, in the same order."""
        return [self.describe(t if isinstance(t, str) else t.name).explanation for t in tasks]

    def _launch(
        self,
        project: ProjectHandle,
        tasks: Sequence[str],
        arguments: Sequence[str],
        output: BuildOutput,
        token: CancellationToken | None,
    ) -> BuildOutput:
        log = get_logger()
        try:
            with self._connector_factory().for_project_directory(project.root).connect() as connection:
                (
                    connection.new_build()
                    .for_tasks(*tasks)
                    .with_arguments(*arguments)
                    .set_standard_output(output)
                    .set_standard_error(output)
                    .with_cancellation_token(token)
                    .run()
                )
        except GradleConnectionError as e:
            if is_invalid_api_key(e):
                log.error("TestFairy rejected the API key")
                raise InvalidCredentialError(INVALID_API_KEY_MESSAGE) from e
            raise BuildFailure(str(e)) from e
        except LauncherStateError as e:
            raise BuildFailure(str(e)) from e
        return output

    def discover_tasks(
        self,
        project: ProjectHandle,
        token: CancellationToken | None = None,
    ) -> list[TaskDescriptor]:
        """List the project's Gradle tasks and keep the TestFairy ones.

        Tasks come back in the order Gradle lists them. A name that Gradle prints more
        than once yields a single descriptor.
        """
        log = get_logger()
        log.info("Discovering TestFairy tasks in %s", project.root)
        output = BuildOutput()
        self._launch(project, self._config.gradle.list_tasks_args, [], output, token)
        names = parse_task_names(output.lines(), self._config.tasks.task_prefix)
        log.info("Found %d TestFairy task(s): %s", len(names), ", ".join(names) or "(none)")
        return [self.describe(name) for name in names]

    def run(
        self,
        project: ProjectHandle,
        task_name: str,
        fixed_args: Sequence[str] | None = None,
        output: BuildOutput | None = None,
        token: CancellationToken | None = None,
    ) -> BuildOutput:
        """Run one task with the fixed arguments and return its captured output."""
        if fixed_args is None:
            fixed_args = [
                *self._config.gradle.fixed_args,
                f"-PtestfairyUploadedBy={uploaded_by()}",
            ]
        get_logger().info("Running task %s", task_name)
        if output is None:
            output = BuildOutput()
        return self._launch(project, [task_name], fixed_args, output, token)

    def upload(
        self,
        project: ProjectHandle,
        task_name: str,
        output: BuildOutput | None = None,
        token: CancellationToken | None = None,
    ) -> UploadResult:
        """Run ``task_name`` and scrape the TestFairy URL from its output."""
        captured = self.run(project, task_name, output=output, token=token)
        url = extract_result_url(
            captured,
            domain=self._config.upload.url_domain,
            scheme=self._config.upload.url_scheme,
        )
        if url:
            get_logger().info("TestFairy URL: %s", url)
        return UploadResult(
            success=True,
            task_name=task_name,
            url=url,
            message="" if url else "TestFairy result URL not found in build output",
        )
