"""Generate every codec+bitrate rendition of lossless audio sources.

Output naming: {basename}_{codec}_{bitrate}.{ext}
    flac_0.flac     (lossless)
    opus_{br}.ogg   (Ogg container)
    mp3_{br}.mp3
    aac_{br}.m4a    (MP4 container)
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..concurrency import check_disk_space, resolve_max_workers
from ..errors import ProbeError, ToolsError
from ..ffmpeg import (
    build_command,
    check_output,
    detect_encoders,
    require_tools,
    run_ffmpeg,
)
from ..ffprobe import probe_source
from ..filenames import source_basename, strip_encode_suffix
from ..models import (
    CODEC_BITRATES,
    CODEC_ENCODERS,
    CODEC_EXTENSIONS,
    LOSSLESS_CANDIDATE_EXTENSIONS,
    BatchResult,
    Codec,
    JobResult,
    JobStatus,
    Rendition,
)
from ..orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from ..config import ToolsConfig

log = logger.bind(stage="permutations")


@dataclass(frozen=True)
class EncodeJob:
    """One (source, rendition) pair and where its output goes."""

    source: Path
    rendition: Rendition
    output: Path

    @property
    def name(self) -> str:
        return self.output.name


def _codec_args(codec: Codec, bitrate: int) -> tuple[str, ...]:
    args: tuple[str, ...] = ("-c:a", CODEC_ENCODERS[codec])
    if bitrate:
        args += ("-b:a", f"{bitrate}k")
    return args


def build_ladder(codecs: Iterable[Codec] | None = None) -> list[Rendition]:
    """Build the rendition list for the given codecs (all codecs if None).

    Order follows the Codec enum then the bitrate ladder, highest first.
    """
    wanted = set(codecs) if codecs is not None else set(Codec)
    return [
        Rendition(
            codec=codec,
            bitrate=bitrate,
            extension=CODEC_EXTENSIONS[codec],
            codec_args=_codec_args(codec, bitrate),
        )
        for codec in Codec
        if codec in wanted
        for bitrate in CODEC_BITRATES[codec]
    ]


def filter_available(renditions: list[Rendition]) -> list[Rendition]:
    """Drop renditions whose ffmpeg encoder is not compiled in."""
    encoders = detect_encoders()
    available = []
    missing: set[str] = set()
    for rendition in renditions:
        encoder = CODEC_ENCODERS[rendition.codec]
        if encoder in encoders:
            available.append(rendition)
        else:
            missing.add(encoder)
    for encoder in sorted(missing):
        log.warning(f"ffmpeg encoder {encoder} not available, skipping its renditions")
    return available


def _is_previous_rendition(candidate: Path, excluded: Path) -> bool:
    """True for a file under the output tree named like one of our outputs."""
    if not candidate.resolve().is_relative_to(excluded):
        return False
    return strip_encode_suffix(candidate.stem) != candidate.stem


def discover_sources(
    input_path: Path, allow_lossy: bool = False, exclude: Path | None = None
) -> list[Path]:
    """Return the lossless sources to encode.

    A file input must probe as lossless (unless allow_lossy) or ProbeError is
    raised. A directory is scanned recursively; candidates that fail the
    probe are skipped with a warning. The exclude directory (normally the
    output directory) is not descended into. When it is the input directory
    itself, files there carrying a _codec_bitrate suffix are skipped instead,
    so earlier renditions are never picked up as sources.
    """
    if input_path.is_file():
        probe_source(input_path, allow_lossy=allow_lossy)
        return [input_path]

    if not input_path.is_dir():
        raise ProbeError(f"Input '{input_path}' not found")

    excluded = exclude.resolve() if exclude is not None else None
    sources = []
    for dirpath, dirnames, filenames in os.walk(input_path):
        if excluded is not None:
            dirnames[:] = [
                d for d in dirnames if (Path(dirpath) / d).resolve() != excluded
            ]
        for filename in sorted(filenames):
            candidate = Path(dirpath) / filename
            if candidate.suffix.lower() not in LOSSLESS_CANDIDATE_EXTENSIONS:
                continue
            if excluded is not None and _is_previous_rendition(candidate, excluded):
                log.debug(f"Skipping earlier rendition {candidate}")
                continue
            try:
                probe_source(candidate, allow_lossy=allow_lossy)
            except ProbeError as e:
                log.warning(f"Skipping {candidate}: {e}")
                continue
            sources.append(candidate)
    return sorted(sources)


def plan_jobs(
    sources: list[Path],
    renditions: list[Rendition],
    output_dir: Path,
    input_root: Path | None = None,
) -> list[EncodeJob]:
    """Build one job per (source, rendition).

    When input_root is a directory, each source's relative sub-directory is
    mirrored under output_dir so equal basenames cannot collide.
    """
    jobs = []
    for source in sources:
        dest_dir = output_dir
        if input_root is not None and input_root.is_dir():
            dest_dir = output_dir / source.parent.relative_to(input_root)
        basename = source_basename(source)
        for rendition in renditions:
            jobs.append(
                EncodeJob(
                    source=source,
                    rendition=rendition,
                    output=dest_dir / rendition.filename(basename),
                )
            )
    return jobs


def build_encode_args(job: EncodeJob) -> list[str]:
    return ["-i", str(job.source), *job.rendition.codec_args, str(job.output)]


def encode_rendition(
    job: EncodeJob,
    dry_run: bool = False,
    skip_existing: bool = False,
    timeout: float | None = None,
) -> JobResult:
    """Encode one rendition and verify the output is a non-empty file."""
    if skip_existing and job.output.is_file() and job.output.stat().st_size > 0:
        return JobResult(
            name=job.name,
            status=JobStatus.SKIPPED,
            output=job.output,
            message="already exists",
        )

    args = build_encode_args(job)
    if dry_run:
        log.info(f"[DRY-RUN] Would encode {job.rendition.label} -> {job.name}")
        log.info(f"[DRY-RUN] Command: {' '.join(build_command(args))}")
        return JobResult(
            name=job.name,
            status=JobStatus.COMPLETED,
            output=job.output,
            message="dry-run",
        )

    log.info(f"Encoding: {job.rendition.label} -> {job.name}")
    job.output.parent.mkdir(parents=True, exist_ok=True)

    try:
        run_ffmpeg(args, timeout=timeout)
        check_output(job.output)
    except ToolsError as e:
        job.output.unlink(missing_ok=True)
        return JobResult(
            name=job.name, status=JobStatus.FAILED, output=job.output, message=str(e)
        )

    return JobResult(name=job.name, status=JobStatus.COMPLETED, output=job.output)


def generate_permutations(
    input_path: Path,
    config: ToolsConfig,
    output_dir: Path | None = None,
    codecs: Iterable[Codec] | None = None,
) -> BatchResult:
    """Encode every rendition of every lossless source under input_path.

    1. Check ffmpeg/ffprobe are installed
    2. Probe the input (file or directory) for lossless sources
    3. Build the codec x bitrate ladder, minus unavailable encoders
    4. Run one ffmpeg job per (source, rendition), max_parallel_jobs at once
    5. Report generated file count
    """
    require_tools("ffmpeg", "ffprobe")

    out = output_dir or config.output_dir
    sources = discover_sources(
        input_path, allow_lossy=config.allow_lossy, exclude=out
    )
    if not sources:
        log.warning(f"No lossless sources found in {input_path}")
        return BatchResult()

    renditions = filter_available(build_ladder(codecs))
    jobs = plan_jobs(sources, renditions, out, input_root=input_path)

    if not config.dry_run and not check_disk_space(
        sources, out, multiplier=config.disk_space_multiplier
    ):
        log.warning(f"Free space in {out} may be insufficient for {len(jobs)} outputs")

    max_workers = resolve_max_workers(config.max_parallel_jobs)
    click.echo(
        f"Generating {len(jobs)} renditions from {len(sources)} source(s) "
        f"into {out}/ (parallel={max_workers})"
    )
    if config.dry_run:
        click.echo("[DRY-RUN] No files will be written")

    timeout = config.ffmpeg_timeout or None
    orchestrator = BatchOrchestrator(max_workers, label="renditions")
    result = orchestrator.run_batch(
        jobs,
        lambda job: encode_rendition(
            job,
            dry_run=config.dry_run,
            skip_existing=config.skip_existing,
            timeout=timeout,
        ),
    )

    generated = sum(
        1
        for r in result.results
        if r.status != JobStatus.FAILED and r.output is not None and r.output.is_file()
    )
    click.echo(f"Done. Generated {generated} files in {out}/ (parallel={max_workers})")
    return result
