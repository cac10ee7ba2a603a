"""Find the TestFairy result URL in Gradle output."""

from __future__ import annotations

from tfupload.core.schema import BuildOutput
from tfupload.gradle.build_log import get_logger

DEFAULT_URL_DOMAIN = ".testfairy."
DEFAULT_URL_SCHEME = "http"


def extract_result_url(
    output: BuildOutput | str,
    domain: str = DEFAULT_URL_DOMAIN,
    scheme: str = DEFAULT_URL_SCHEME,
) -> str | None:
    """Return the last line that starts with ``scheme`` and contains ``domain``.

    Lines are scanned from the bottom up because the plugin prints its summary URL
    last. That ordering is observed behaviour of the TestFairy Gradle plugin, not a
    documented output format. Each line is stripped before the ``scheme`` test, so an
    indented summary line still qualifies. Returns None (and logs a warning) if no
    line matches.
    """
    lines = output.lines() if isinstance(output, BuildOutput) else output.splitlines()
    for line in reversed(lines):
        candidate = line.strip()
        if candidate.startswith(scheme) and domain in candidate:
            return candidate
    get_logger().warning("TestFairy result URL not found in build output")
    return None
