"""CLI entry point for tfupload."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import click

from tfupload import __version__
from tfupload.core.config import ConfigManager
from tfupload.core.exceptions import BuildFailure, BuildFileNotFoundError, ConfigError, TfUploadError
from tfupload.core.health import HealthChecker
from tfupload.core.schema import ProjectHandle, TaskDescriptor
from tfupload.core.tasks import BackgroundRunner
from tfupload.credentials import CredentialStore, FileBackend, MemoryBackend, looks_like_api_key
from tfupload.gradle.build_log import build_log_context
from tfupload.upload.orchestrator import BuildOrchestrator
from tfupload.upload.workflow import UploadWorkflow


class ConsoleNotifier:
    """Notifier that writes to the terminal; errors and warnings go to stderr."""

    def info(self, message: str) -> None:
        click.echo(message)

    def warning(self, message: str) -> None:
        click.echo(f"Warning: {message}", err=True)

    def error(self, message: str) -> None:
        click.echo(f"Error: {message}", err=True)


def _is_interactive(no_interactive: bool) -> bool:
    """True if commands may prompt. Used so tests can override."""
    return sys.stdin.isatty() and not no_interactive


def _load_session(project_dir: Path | None) -> tuple[ConfigManager, ProjectHandle, CredentialStore]:
    """Load config for the project and build its credential store."""
    try:
        config = ConfigManager(project_root=project_dir)
        config.load()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    project = ProjectHandle.from_path(config.project_root)
    cfg = config.config
    store = CredentialStore(
        project,
        memory=MemoryBackend(),
        durable=FileBackend(cfg.credentials_path),
        build_file=cfg.build_file,
    )
    return config, project, store


def _save_api_key(store: CredentialStore, api_key: str, notifier: ConsoleNotifier) -> bool:
    """Store the key and patch the build file; report problems through notifier."""
    api_key = api_key.strip()
    if not api_key:
        notifier.warning("No API key provided. API key not saved.")
        return False
    if not looks_like_api_key(api_key):
        notifier.error("API key must contain only letters and digits. API key not saved.")
        return False
    if not store.set(api_key):
        notifier.warning("Couldn't save API key to the credentials file; it is kept for this session only.")
    try:
        store.patch_build_file(secret=api_key)
    except BuildFileNotFoundError as e:
        notifier.error(str(e))
        return False
    notifier.info("API key saved.")
    return True


def _prompt_api_key(store: CredentialStore, notifier: ConsoleNotifier) -> bool:
    api_key = click.prompt(
        "Enter your TestFairy API key", default="", show_default=False, hide_input=True
    )
    return _save_api_key(store, api_key, notifier)


def _prompt_task(tasks: Sequence[TaskDescriptor]) -> int | None:
    click.echo("Select what you want to do:")
    for i, task in enumerate(tasks, start=1):
        click.echo(f"  {i}) {task.explanation}")
    choice = click.prompt("Choice", type=click.IntRange(1, len(tasks)), default=1)
    return choice - 1


def _task_by_name(name: str, notifier: ConsoleNotifier):
    def select(tasks: Sequence[TaskDescriptor]) -> int | None:
        for i, task in enumerate(tasks):
            if task.name == name:
                return i
        notifier.error(f"Task {name!r} not found. Available: {', '.join(t.name for t in tasks)}")
        return None

    return select


def _project_option(fn):
    return click.option(
        "--project",
        "project_dir",
        type=click.Path(path_type=Path, exists=True, file_okay=False),
        help="Android project root (default: found from the current directory).",
    )(fn)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """tfupload: build Android apps with Gradle and upload them to TestFairy."""
    pass


@main.command()
@_project_option
@click.option("--api-key", "api_key", help="TestFairy API key (prompted for when omitted).")
def configure(project_dir: Path | None, api_key: str | None) -> None:
    """Store the TestFairy API key and declare it in the app build file."""
    _, _, store = _load_session(project_dir)
    notifier = ConsoleNotifier()
    ok = _save_api_key(store, api_key, notifier) if api_key is not None else _prompt_api_key(store, notifier)
    if not ok:
        raise SystemExit(1)


@main.command()
@_project_option
def tasks(project_dir: Path | None) -> None:
    """List TestFairy upload tasks available in the project."""
    config, project, store = _load_session(project_dir)
    try:
        if not store.is_build_file_patched(project):
            click.echo("TestFairy is not configured for this project. Run `tfupload configure`.", err=True)
            raise SystemExit(1)
        found = BuildOrchestrator(config.config).discover_tasks(project)
    except (BuildFileNotFoundError, BuildFailure) as e:
        click.echo(str(e), err=True)
        raise SystemExit(1)
    if not found:
        click.echo("No TestFairy build tasks found.", err=True)
        raise SystemExit(1)
    for task in found:
        click.echo(f"  {task.name}: {task.explanation}")


@main.command()
@_project_option
@click.option("--task", "task_name", help="Task to run (skips the selection prompt).")
@click.option("--open-browser/--no-open-browser", "open_browser", default=None, help="Open the TestFairy URL without asking.")
@click.option("--log-file", "log_file", type=click.Path(path_type=Path), help="Write the build log to this file (default: <project>/tfupload-build.log).")
@click.option("--verbose", "-v", is_flag=True, help="Verbose build log (DEBUG level).")
@click.option("--no-interactive", "no_interactive", is_flag=True, help="Never prompt (e.g. in CI); requires --task.")
def upload(
    project_dir: Path | None,
    task_name: str | None,
    open_browser: bool | None,
    log_file: Path | None,
    verbose: bool,
    no_interactive: bool,
) -> None:
    """Build a variant (or native symbols) and upload it to TestFairy."""
    interactive = _is_interactive(no_interactive)
    if task_name is None and not interactive:
        raise click.UsageError("--task is required when not running interactively.")

    config, project, store = _load_session(project_dir)
    cfg = config.config
    notifier = ConsoleNotifier()
    log_path = log_file or (project.root / "tfupload-build.log")
    launch_browser = open_browser if open_browser is not None else cfg.upload.launch_browser

    select = _task_by_name(task_name, notifier) if task_name else _prompt_task

    def confirm_browser(url: str) -> bool:
        if not interactive:
            return False
        return click.confirm("Would you like to preview your release in your browser?", default=False)

    def configure(_: ProjectHandle) -> None:
        if interactive:
            _prompt_api_key(store, notifier)

    with BackgroundRunner() as runner, build_log_context(log_path, verbose=verbose):
        workflow = UploadWorkflow(
            orchestrator=BuildOrchestrator(cfg),
            credentials=store,
            notifier=notifier,
            runner=runner,
            output_listener=lambda chunk: click.echo(chunk, nl=False),
        )
        try:
            result = workflow.run(
                project,
                select_task=select,
                confirm_browser=confirm_browser,
                configure=configure,
                launch_browser=launch_browser,
            )
        except KeyboardInterrupt:
            workflow.token.cancel()
            click.echo("Cancelled.", err=True)
            raise SystemExit(130)
        except TfUploadError as e:
            click.echo(str(e), err=True)
            raise SystemExit(1)

    click.echo(f"Build log: {log_path}")
    if not result.success:
        raise SystemExit(1)
    if result.url:
        click.echo(f"TestFairy URL: {result.url}")


@main.command()
@_project_option
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output.")
def check(project_dir: Path | None, verbose: bool) -> None:
    """Verify Gradle, the build file, and the stored API key."""
    config, project, store = _load_session(project_dir)
    results = HealthChecker(config=config, project=project, credentials=store).check_all()
    all_ok = all(r.ok for r in results)
    for r in results:
        status = "OK" if r.ok else "FAIL"
        click.echo(f"  {r.name}: {status}")
        if verbose or not r.ok:
            click.echo(f"    {r.message}")
        if (verbose or not r.ok) and r.suggestion:
            click.echo(f"    → {r.suggestion}")
    if all_ok:
        click.echo("All checks passed.")
    else:
        click.echo("Some checks failed. Fix the issues above or follow the suggested steps.", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
