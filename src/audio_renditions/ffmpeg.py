"""FFmpeg subprocess wrappers: tool discovery, encoder detection, job runs."""

import functools
import shutil
import subprocess
from pathlib import Path

from loguru import logger

from .errors import ExternalToolError, MissingToolError, OutputCheckError

log = logger.bind(stage="ffmpeg")


def require_tools(*tools: str) -> None:
    """Raise MissingToolError for the first binary not found on PATH."""
    for tool in tools:
        if shutil.which(tool) is None:
            raise MissingToolError(tool)


@functools.cache
def detect_encoders() -> frozenset[str]:
    """Return the encoder names this ffmpeg build supports.

    Parses `ffmpeg -encoders`, whose entries look like
    " A....D libopus              libopus Opus".
    """
    result = subprocess.run(
        ["ffmpeg", "-hide_banner", "-encoders"],
        capture_output=True,
        text=True,
    )
    encoders = set()
    for line in result.stdout.splitlines():
        parts = line.split()
        # Capability flags column is six chars, e.g. "A....D"; the legend
        # above the list reads " A..... = Audio"
        if (
            len(parts) >= 2
            and len(parts[0]) == 6
            and parts[0][0] in "VAS"
            and parts[1] != "="
        ):
            encoders.add(parts[1])
    log.debug(f"Detected {len(encoders)} ffmpeg encoders")
    return frozenset(encoders)


def build_command(args: list[str]) -> list[str]:
    """Prefix ffmpeg args with the binary and overwrite flag."""
    return ["ffmpeg", "-y"] + args


def run_ffmpeg(
    args: list[str], timeout: float | None = None
) -> subprocess.CompletedProcess:
    """Run ffmpeg, raising ExternalToolError on failure or timeout.

    The completed process is returned so callers can log stderr.
    """
    cmd = build_command(args)
    log.debug(f"ffmpeg command: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout or None,
        )
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr if isinstance(e.stderr, str) else ""
        raise ExternalToolError(
            "ffmpeg", -1, f"timed out after {timeout}s {stderr[-500:]}".strip()
        ) from e

    if result.returncode != 0:
        raise ExternalToolError("ffmpeg", result.returncode, result.stderr[-500:])
    return result


def check_output(path: Path) -> None:
    """Raise OutputCheckError if an ffmpeg output is missing or empty."""
    if not path.exists():
        raise OutputCheckError(path, "Output file not created")
    if path.stat().st_size == 0:
        raise OutputCheckError(path, "Output file is empty")
