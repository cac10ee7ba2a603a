"""Connect to Gradle for a project directory and launch builds with streamed output.

Mirrors the Gradle Tooling API flow: connect, configure a launcher, run it while
streaming stdout/stderr into caller-owned sinks, then close the connection.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol

from tfupload.core.exceptions import (
    GradleBuildOutput,
    GradleConnectionError,
    LauncherStateError,
    OperationCancelledError,
)
from tfupload.gradle.build_log import get_logger, log_transcript

if TYPE_CHECKING:
    from tfupload.core.tasks import CancellationToken

#: Arguments added to every Gradle invocation.
BASE_ARGS = ["--console=plain"]


class OutputSink(Protocol):
    def write(self, text: str) -> int:
        ...


def _wrapper_name() -> str:
    return "gradlew.bat" if sys.platform.startswith("win") else "gradlew"


def resolve_gradle_command(project_dir: Path, gradle_bin: str | None = None) -> list[str] | None:
    """Return the command prefix used to run Gradle for project_dir, or None if not found.

    Order: explicit gradle_bin, the project's Gradle wrapper, then ``gradle`` on PATH.
    """
    if gradle_bin:
        return [gradle_bin]
    wrapper = project_dir / _wrapper_name()
    if wrapper.is_file():
        if os.access(wrapper, os.X_OK):
            return [str(wrapper)]
        return ["sh", str(wrapper)]
    found = shutil.which("gradle")
    if found:
        return [found]
    return None


def _pump(stream: IO[str], sink: OutputSink, transcript: list[str]) -> None:
    for line in stream:
        transcript.append(line)
        sink.write(line)


def _stop(proc: subprocess.Popen, timeout: float = 10) -> None:
    """Terminate ``proc`` and reap it, killing it if it ignores SIGTERM."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


class _Discard:
    def write(self, text: str) -> int:
        return len(text)


class BuildLauncher:
    """Configures and runs one Gradle invocation on a ProjectConnection."""

    def __init__(self, connection: ProjectConnection) -> None:
        self._connection = connection
        self._tasks: list[str] = []
        self._arguments: list[str] = []
        self._stdout: OutputSink | None = None
        self._stderr: OutputSink | None = None
        self._token: CancellationToken | None = None

    def for_tasks(self, *tasks: str) -> BuildLauncher:
        self._tasks.extend(tasks)
        return self

    def with_arguments(self, *arguments: str) -> BuildLauncher:
        self._arguments.extend(arguments)
        return self

    def set_standard_output(self, sink: OutputSink) -> BuildLauncher:
        self._stdout = sink
        return self

    def set_standard_error(self, sink: OutputSink) -> BuildLauncher:
        self._stderr = sink
        return self

    def with_cancellation_token(self, token: CancellationToken | None) -> BuildLauncher:
        self._token = token
        return self

    @property
    def command(self) -> list[str]:
        return [*self._connection.command, *BASE_ARGS, *self._tasks, *self._arguments]

    def run(self) -> None:
        """Run Gradle and block until it exits.

        Raises LauncherStateError when misconfigured, GradleConnectionError when Gradle
        cannot start or exits non-zero (captured output chained as the cause), and
        OperationCancelledError when the cancellation token is set.
        """
        if not self._tasks:
            raise LauncherStateError("No tasks specified for the build launcher")
        if self._connection.closed:
            raise LauncherStateError("Project connection is closed")
        if self._token is not None:
            self._token.raise_if_cancelled()

        log = get_logger()
        stdout_sink = self._stdout if self._stdout is not None else _Discard()
        merge = self._stderr is None or self._stderr is self._stdout
        cmd = self.command
        log.info("Running Gradle: %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(self._connection.project_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge else subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise GradleConnectionError(f"Could not start Gradle ({cmd[0]}): {e}") from e

        self._connection._attach(proc)
        transcript: list[str] = []
        err_thread = None
        if not merge:
            err_thread = threading.Thread(
                target=_pump, args=(proc.stderr, self._stderr, transcript), daemon=True
            )
            err_thread.start()

        cancelled = False
        try:
            for line in proc.stdout:
                transcript.append(line)
                stdout_sink.write(line)
                if self._token is not None and self._token.is_cancelled:
                    cancelled = True
                    break
            if cancelled:
                _stop(proc)
            returncode = proc.wait()
        except BaseException:
            log.warning("Stopping Gradle after an error while streaming its output")
            _stop(proc)
            raise
        finally:
            if err_thread is not None:
                err_thread.join(timeout=10)
            proc.stdout.close()
            self._connection._detach(proc)
            log_transcript("".join(transcript), f"Gradle output: {' '.join(self._tasks)}")

        if cancelled or (self._token is not None and self._token.is_cancelled):
            log.warning("Gradle run cancelled: %s", " ".join(self._tasks))
            raise OperationCancelledError("Build cancelled")
        if returncode != 0:
            log.warning("Gradle exited with code %s", returncode)
            raise GradleConnectionError(
                f"Could not execute build using Gradle: tasks {self._tasks} exited with code {returncode}"
            ) from GradleBuildOutput("".join(transcript))
        log.info("Gradle finished (exit 0)")


class ProjectConnection:
    """An open connection to Gradle for one project directory. Not reused across runs."""

    def __init__(self, project_dir: Path, command: list[str]) -> None:
        self._project_dir = project_dir
        self._command = command
        self._closed = False
        self._active: subprocess.Popen | None = None
        self._lock = threading.Lock()

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def closed(self) -> bool:
        return self._closed

    def new_build(self) -> BuildLauncher:
        if self._closed:
            raise LauncherStateError("Project connection is closed")
        return BuildLauncher(self)

    def _attach(self, proc: subprocess.Popen) -> None:
        with self._lock:
            self._active = proc

    def _detach(self, proc: subprocess.Popen) -> None:
        with self._lock:
            if self._active is proc:
                self._active = None

    def close(self) -> None:
        """Close the connection, terminating a Gradle process that is still running."""
        with self._lock:
            proc, self._active = self._active, None
            self._closed = True
        if proc is not None and proc.poll() is None:
            get_logger().warning("Terminating running Gradle process on close")
            _stop(proc)

    def __enter__(self) -> ProjectConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GradleConnector:
    """Builds ProjectConnection objects for a project directory."""

    def __init__(self, gradle_bin: str | None = None) -> None:
        self._gradle_bin = gradle_bin
        self._project_dir: Path | None = None

    def for_project_directory(self, project_dir: Path | str) -> GradleConnector:
        self._project_dir = Path(project_dir)
        return self

    def connect(self) -> ProjectConnection:
        if self._project_dir is None:
            raise GradleConnectionError("No project directory specified")
        if not self._project_dir.is_dir():
            raise GradleConnectionError(f"Project directory does not exist: {self._project_dir}")
        command = resolve_gradle_command(self._project_dir, self._gradle_bin)
        if command is None:
            raise GradleConnectionError(
                f"Gradle not found: no {_wrapper_name()} in {self._project_dir} and no 'gradle' on PATH"
            )
        get_logger().debug("Connected to %s using %s", self._project_dir, command)
        return ProjectConnection(self._project_dir, command)
