"""Build-and-upload workflow: configure check, discovery, selection, upload, browser."""

from __future__ import annotations

import webbrowser
from functools import partial
from typing import Callable, Sequence

from tfupload.core.exceptions import (
    BuildFailure,
    BuildFileNotFoundError,
    ConfigurationMissingError,
    InvalidCredentialError,
    NoTasksFoundError,
    OperationCancelledError,
)
from tfupload.core.schema import BuildOutput, ProjectHandle, TaskDescriptor, UploadResult
from tfupload.core.tasks import BackgroundRunner, CancellationToken
from tfupload.credentials.store import CredentialStore
from tfupload.gradle.build_log import get_logger
from tfupload.protocols import Notifier
from tfupload.upload.orchestrator import BuildOrchestrator

NOT_CONFIGURED_MESSAGE = "TestFairy is not configured for this project."
NO_TASKS_MESSAGE = "No TestFairy build tasks found."
INVALID_KEY_NOTICE = "Invalid TestFairy API key. Please run `tfupload configure` to fix."

#: Shortest string treated as a URL worth opening.
MIN_URL_LENGTH = 5

TaskSelector = Callable[[Sequence[TaskDescriptor]], "int | None"]
BrowserPrompt = Callable[[str], bool]


class UploadWorkflow:
    """One user-initiated build-and-upload operation.

    Background stages run on ``runner``; task selection and the browser prompt run on
    the calling thread. Errors never escape a stage: they become notifications and a
    failed UploadResult.
    """

    def __init__(
        self,
        orchestrator: BuildOrchestrator,
        credentials: CredentialStore,
        notifier: Notifier,
        runner: BackgroundRunner,
        token: CancellationToken | None = None,
        output_listener: Callable[[str], None] | None = None,
        open_url: Callable[[str], object] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._credentials = credentials
        self._notifier = notifier
        self._runner = runner
        self._token = token or CancellationToken()
        self._output_listener = output_listener
        self._open_url = open_url or webbrowser.open

    @property
    def token(self) -> CancellationToken:
        return self._token

    def _fail(self, message: str, task_name: str = "") -> UploadResult:
        self._notifier.error(message)
        return UploadResult(success=False, task_name=task_name, message=message)

    def ensure_configured(
        self,
        project: ProjectHandle,
        configure: Callable[[ProjectHandle], object] | None = None,
    ) -> None:
        """Raise ConfigurationMissingError unless the build file declares the API key."""
        if self._credentials.is_build_file_patched(project):
            return
        if configure is not None:
            configure(project)
        if not self._credentials.is_build_file_patched(project):
            raise ConfigurationMissingError(NOT_CONFIGURED_MESSAGE)

    def discover(self, project: ProjectHandle) -> list[TaskDescriptor]:
        """Discovery stage; raises NoTasksFoundError when nothing matches."""
        task = self._runner.submit(
            "Preparing Gradle wrapper",
            partial(self._orchestrator.discover_tasks, project, token=self._token),
            token=self._token,
        )
        self._notifier.info("Preparing Gradle wrapper")
        tasks = task.await_result()
        if not tasks:
            raise NoTasksFoundError(NO_TASKS_MESSAGE)
        return tasks

    def run(
        self,
        project: ProjectHandle,
        select_task: TaskSelector,
        confirm_browser: BrowserPrompt,
        configure: Callable[[ProjectHandle], object] | None = None,
        launch_browser: bool | None = None,
    ) -> UploadResult:
        log = get_logger()
        log.info("=== Upload started: %s ===", project.root)

        try:
            self.ensure_configured(project, configure)
        except (BuildFileNotFoundError, ConfigurationMissingError) as e:
            return self._fail(str(e))

        try:
            tasks = self.discover(project)
        except NoTasksFoundError as e:
            return self._fail(str(e))
        except InvalidCredentialError:
            return self._fail(INVALID_KEY_NOTICE)
        except BuildFailure as e:
            return self._fail(str(e))
        except OperationCancelledError:
            return self._fail("Cancelled")
        except Exception as e:
            log.exception("Task discovery failed unexpectedly")
            return self._fail(f"Task discovery failed: {e}")

        selection = select_task(tasks)
        if selection is None or not 0 <= selection < len(tasks):
            log.info("No task selected; upload cancelled")
            return UploadResult(success=False, message="Cancelled")
        task_name = tasks[selection].name

        output = BuildOutput(self._output_listener)
        upload = self._runner.submit(
            "Uploading to TestFairy",
            partial(self._orchestrator.upload, project, task_name, output=output, token=self._token),
            token=self._token,
        )
        try:
            result = upload.await_result()
        except InvalidCredentialError:
            return self._fail(INVALID_KEY_NOTICE, task_name)
        except BuildFailure as e:
            return self._fail(str(e), task_name)
        except OperationCancelledError:
            return self._fail("Cancelled", task_name)
        except Exception as e:
            log.exception("Upload of %s failed unexpectedly", task_name)
            return self._fail(f"Upload failed: {e}", task_name)

        if not result.url:
            self._notifier.warning(result.message)
        elif len(result.url) >= MIN_URL_LENGTH:
            should_open = launch_browser if launch_browser is not None else confirm_browser(result.url)
            if should_open:
                log.info("Launching browser: %s", result.url)
                self._notifier.info(f"Launching browser: {result.url}")
                self._open_url(result.url)

        log.info("=== Upload finished: %s ===", task_name)
        self._notifier.info("Done")
        return result
