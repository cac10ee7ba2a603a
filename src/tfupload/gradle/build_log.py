"""Build log for Gradle runs.

The ``tfupload.build`` logger records each Gradle command, its exit status and the
upload result. ``log_transcript`` copies the captured Gradle output into the same log,
so the file holds everything the console showed during the run.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

LOGGER_NAME = "tfupload.build"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

#: Marks lines that came from Gradle rather than from tfupload itself.
TRANSCRIPT_PREFIX = "| "


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def log_transcript(text: str, title: str, level: int = logging.INFO) -> None:
    """Write captured Gradle output to the build log, one record per line."""
    log = get_logger()
    if not log.isEnabledFor(level):
        return
    lines = text.splitlines()
    log.log(level, "--- %s (%d line(s)) ---", title, len(lines))
    for line in lines:
        log.log(level, "%s%s", TRANSCRIPT_PREFIX, line)


@contextmanager
def build_log_context(
    log_file: Path,
    verbose: bool = False,
) -> Generator[logging.Logger, None, None]:
    """Route the build logger to ``log_file`` until the block exits.

    The file is recreated for every run. The logger's previous level is restored
    on exit.
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger = get_logger()
    previous_level = logger.level
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.debug("Build log: %s", log_file)

    try:
        yield logger
    finally:
        logger.removeHandler(handler)
        handler.close()
        logger.setLevel(previous_level)
