"""Worker-count resolution and disk space checks."""

import os
import shutil
from collections.abc import Iterable
from pathlib import Path

import psutil
from loguru import logger

log = logger.bind(stage="concurrency")


def resolve_max_workers(configured: int = 0) -> int:
    """Return the number of parallel ffmpeg jobs to run.

    A positive configured value wins; otherwise one job per logical CPU.
    """
    if configured > 0:
        log.debug(f"Using configured max workers: {configured}")
        return configured
    cpu_count = psutil.cpu_count(logical=True) or os.cpu_count() or 4
    log.debug(f"Auto-calculated max workers: {cpu_count}")
    return cpu_count


def _existing_ancestor(path: Path) -> Path:
    """Nearest existing directory at or above path."""
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path.cwd()


def check_disk_space(
    sources: Iterable[Path], dest_dir: Path, multiplier: int = 3
) -> bool:
    """Check that dest_dir has enough free space for the outputs.

    Requires at least multiplier * total source size available. dest_dir
    need not exist yet; the nearest existing ancestor is measured.
    Returns True if sufficient, False otherwise.
    """
    source_size = sum(f.stat().st_size for f in sources if f.is_file())
    required = source_size * multiplier
    usage = shutil.disk_usage(_existing_ancestor(dest_dir.resolve()))
    result = usage.free >= required

    log.debug(
        f"Disk space check: required={required:,} bytes, "
        f"free={usage.free:,} bytes, sufficient={result}"
    )

    return result
