"""Fix ARTIST metadata on files tagged "Various Artists".

Parses the real artist from Bandcamp-style filenames
("... - NNN artistname - title") and rewrites the tag in place with
ffmpeg -c copy (no re-encode). Writes to a hidden temp file in the same
directory and atomically replaces the original.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..concurrency import resolve_max_workers
from ..errors import ProbeError, ToolsError
from ..ffmpeg import check_output, require_tools, run_ffmpeg
from ..ffprobe import get_artist_tag
from ..filenames import parse_artist_from_filename, strip_encode_suffix
from ..models import AUDIO_EXTENSIONS, BatchResult, JobResult, JobStatus
from ..orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from ..config import ToolsConfig

log = logger.bind(stage="tagging")

VARIOUS_ARTISTS = "Various Artists"

# Containers whose tags live on the audio stream rather than the format
_STREAM_TAGGED_EXTENSIONS = frozenset({".ogg", ".opus"})


@dataclass(frozen=True)
class TagJob:
    path: Path

    @property
    def name(self) -> str:
        return str(self.path)


def is_various_artists(artist: str) -> bool:
    return artist.strip().lower() == VARIOUS_ARTISTS.lower()


def find_audio_files(root: Path) -> list[Path]:
    """Recursively collect audio files (extension match is case-insensitive)."""
    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            if Path(filename).suffix.lower() in AUDIO_EXTENSIONS:
                files.append(Path(dirpath) / filename)
    return sorted(files)


def plan_fix(file: Path) -> str | None:
    """Return the artist to write, or None if the file needs no fix.

    A fix applies only when the current ARTIST is "Various Artists" and the
    filename (minus any _codec_bitrate suffix) yields an artist.
    """
    current = get_artist_tag(file)
    if not is_various_artists(current):
        log.debug(f"Artist is {current!r}, leaving {file.name}")
        return None

    parsed = parse_artist_from_filename(strip_encode_suffix(file.stem))
    if not parsed:
        log.debug(f"Could not parse artist from {file.name}")
        return None
    return parsed


def _temp_path(file: Path) -> Path:
    # Keep the original name (and extension) last so ffmpeg can pick the muxer
    return file.with_name(f".fix-metadata-{uuid.uuid4().hex[:6]}-{file.name}")


def write_artist(file: Path, artist: str, timeout: float | None = None) -> None:
    """Rewrite the ARTIST tag via stream copy and replace file atomically.

    Raises ExternalToolError/OutputCheckError on failure; the temp file is
    always removed.
    """
    temp_file = _temp_path(file)

    args = ["-i", str(file), "-c", "copy", "-metadata", f"artist={artist}"]
    if file.suffix.lower() in _STREAM_TAGGED_EXTENSIONS:
        args.extend(["-metadata:s:a:0", f"artist={artist}"])
    args.append(str(temp_file))

    try:
        run_ffmpeg(args, timeout=timeout)
        check_output(temp_file)
        temp_file.replace(file)
    finally:
        temp_file.unlink(missing_ok=True)


def fix_file(
    file: Path, dry_run: bool = False, timeout: float | None = None
) -> JobResult:
    """Check one file and fix its ARTIST tag when needed."""
    artist = plan_fix(file)
    if artist is None:
        return JobResult(name=str(file), status=JobStatus.SKIPPED, output=file)

    if dry_run:
        click.echo(f'Would fix: {file} (artist: "{VARIOUS_ARTISTS}" -> "{artist}")')
        return JobResult(
            name=str(file), status=JobStatus.COMPLETED, output=file, message="dry-run"
        )

    try:
        write_artist(file, artist, timeout=timeout)
    except ToolsError as e:
        log.error(f"ffmpeg failed for: {file}")
        return JobResult(
            name=str(file), status=JobStatus.FAILED, output=file, message=str(e)
        )

    click.echo(f'Fixed: {file} (artist -> "{artist}")')
    return JobResult(name=str(file), status=JobStatus.COMPLETED, output=file)


def fix_various_artists(input_path: Path, config: ToolsConfig) -> BatchResult:
    """Fix "Various Artists" tags on a file or every audio file under a directory."""
    if not input_path.exists():
        raise ProbeError(f"Input '{input_path}' not found")

    require_tools("ffmpeg", "ffprobe")

    if input_path.is_dir():
        files = find_audio_files(input_path)
        log.info(f"Found {len(files)} audio files under {input_path}")
    else:
        files = [input_path]

    timeout = config.ffmpeg_timeout or None
    max_workers = resolve_max_workers(config.max_parallel_jobs)
    orchestrator = BatchOrchestrator(
        max_workers, label="files", show_status=len(files) > 1
    )
    result = orchestrator.run_batch(
        [TagJob(path=f) for f in files],
        lambda job: fix_file(job.path, dry_run=config.dry_run, timeout=timeout),
    )
    click.echo("\nDone.")
    return result
