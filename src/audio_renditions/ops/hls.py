"""Generate HLS test streams (Opus, FLAC, AAC as fMP4; MP3 as MPEG-TS).

Output structure:
    <output>/opus/   init.mp4, seg0.m4s, seg1.m4s, ..., playlist.m3u8, full.mp4
    <output>/flac/   init.mp4, seg0.m4s, ..., playlist.m3u8, full.mp4, full.flac
    <output>/aac/    init.mp4, seg0.m4s, ..., playlist.m3u8, full.mp4
    <output>/mp3/    seg0.ts, seg1.ts, ..., playlist.m3u8, full.mp3

full.* files are single-file fallbacks for Cast receivers, which often
don't support HLS. full.flac is the raw FLAC container, to tell codec
support apart from container support (MP4+FLAC vs raw FLAC).

The AAC stream is the known-good control: if AAC fails on a device the
test setup is broken.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..concurrency import resolve_max_workers
from ..errors import ConfigError, ExternalToolError, ToolsError
from ..ffmpeg import check_output, require_tools, run_ffmpeg
from ..ffprobe import get_duration, probe_source
from ..models import BatchResult, JobResult, JobStatus, SegmentType
from ..orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from ..config import ToolsConfig

log = logger.bind(stage="hls")

PLAYLIST_NAME = "playlist.m3u8"
INIT_NAME = "init.mp4"
LOG_NAME = ".encode.log"

_CODECS_RE = re.compile(r'CODECS="([^"]*)"')


@dataclass(frozen=True)
class HlsVariant:
    """One HLS stream: a codec family and its segment container."""

    name: str
    codec_args: tuple[str, ...]
    segment_type: SegmentType

    @property
    def segment_extension(self) -> str:
        return "m4s" if self.segment_type == SegmentType.FMP4 else "ts"


@dataclass(frozen=True)
class CastTarget:
    """A single-file fallback written next to a variant's playlist."""

    variant: str
    filename: str
    codec_args: tuple[str, ...]
    extra_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class HlsJob:
    name: str
    args: tuple[str, ...]
    output: Path


@dataclass
class PlaylistReport:
    segment_count: int
    has_map: bool
    codecs: list[str]


def build_variants(bitrate: int = 128) -> list[HlsVariant]:
    br = f"{bitrate}k"
    return [
        HlsVariant(
            "opus",
            ("-c:a", "libopus", "-b:a", br, "-vbr", "on", "-ar", "48000"),
            SegmentType.FMP4,
        ),
        HlsVariant("flac", ("-strict", "-2", "-c:a", "flac"), SegmentType.FMP4),
        HlsVariant("aac", ("-c:a", "aac", "-b:a", br), SegmentType.FMP4),
        HlsVariant("mp3", ("-c:a", "libmp3lame", "-b:a", br), SegmentType.MPEGTS),
    ]


def build_cast_targets(bitrate: int = 128) -> list[CastTarget]:
    br = f"{bitrate}k"
    faststart = ("-movflags", "+faststart")
    return [
        CastTarget(
            "opus",
            "full.mp4",
            ("-c:a", "libopus", "-b:a", br, "-ar", "48000"),
            faststart,
        ),
        CastTarget("flac", "full.mp4", ("-strict", "-2", "-c:a", "flac"), faststart),
        CastTarget("aac", "full.mp4", ("-c:a", "aac", "-b:a", br), faststart),
        CastTarget("flac", "full.flac", ("-c:a", "flac")),
        CastTarget("mp3", "full.mp3", ("-c:a", "libmp3lame", "-b:a", br)),
    ]


def _input_args(source: Path, duration: int) -> list[str]:
    return ["-i", str(source), "-t", str(duration), "-vn", "-map", "0:a"]


def build_playlist_args(
    source: Path,
    output_dir: Path,
    variant: HlsVariant,
    segment_time: int,
    duration: int,
) -> list[str]:
    """ffmpeg args for one VOD playlist with independent segments."""
    variant_dir = output_dir / variant.name
    args = _input_args(source, duration) + list(variant.codec_args)
    args += [
        "-f", "hls",
        "-hls_time", str(segment_time),
        "-hls_list_size", "0",
        "-hls_playlist_type", "vod",
        "-hls_flags", "independent_segments",
        "-hls_segment_type", str(variant.segment_type),
        "-hls_segment_filename",
        str(variant_dir / f"seg%d.{variant.segment_extension}"),
    ]
    if variant.segment_type == SegmentType.FMP4:
        args += ["-hls_fmp4_init_filename", INIT_NAME]
    args.append(str(variant_dir / PLAYLIST_NAME))
    return args


def build_cast_args(
    source: Path, output_dir: Path, target: CastTarget, duration: int
) -> list[str]:
    args = _input_args(source, duration) + list(target.codec_args)
    args += list(target.extra_args)
    args.append(str(output_dir / target.variant / target.filename))
    return args


def plan_jobs(
    source: Path,
    output_dir: Path,
    segment_time: int = 6,
    duration: int = 90,
    bitrate: int = 128,
) -> list[HlsJob]:
    """Playlist jobs for every variant, then every Cast fallback."""
    jobs = []
    for variant in build_variants(bitrate):
        args = build_playlist_args(source, output_dir, variant, segment_time, duration)
        jobs.append(
            HlsJob(
                name=f"{variant.name}/{PLAYLIST_NAME}",
                args=tuple(args),
                output=output_dir / variant.name / PLAYLIST_NAME,
            )
        )
    for target in build_cast_targets(bitrate):
        jobs.append(
            HlsJob(
                name=f"{target.variant}/{target.filename}",
                args=tuple(build_cast_args(source, output_dir, target, duration)),
                output=output_dir / target.variant / target.filename,
            )
        )
    return jobs


def inspect_playlist(path: Path) -> PlaylistReport | None:
    """Count segments and look for #EXT-X-MAP / CODECS in a media playlist.

    Returns None if the playlist is missing.
    """
    if not path.is_file():
        return None
    lines = path.read_text(errors="replace").splitlines()
    codecs: list[str] = []
    for line in lines:
        codecs.extend(_CODECS_RE.findall(line))
    return PlaylistReport(
        segment_count=sum(1 for line in lines if line.startswith("seg")),
        has_map=any("#EXT-X-MAP" in line for line in lines),
        codecs=codecs,
    )


def summarize(output_dir: Path, bitrate: int = 128) -> list[str]:
    """Build per-variant summary lines from the generated playlists."""
    cast_files: dict[str, list[str]] = {}
    for target in build_cast_targets(bitrate):
        if (output_dir / target.variant / target.filename).is_file():
            cast_files.setdefault(target.variant, []).append(target.filename)

    lines = []
    for variant in build_variants(bitrate):
        report = inspect_playlist(output_dir / variant.name / PLAYLIST_NAME)
        if report is None:
            lines.append(f"  {variant.name}: MISSING manifest")
            continue

        cast = cast_files.get(variant.name, [])
        if variant.segment_type == SegmentType.MPEGTS:
            line = f"  {variant.name}: {report.segment_count} segments (MPEG-TS)"
            if cast:
                line += f", {', '.join(cast)} (Cast)"
        else:
            has_map = "yes" if report.has_map else "NO -- problem!"
            line = (
                f"  {variant.name}: {report.segment_count} segments, "
                f"EXT-X-MAP present: {has_map}"
            )
            if cast:
                line += f" (Cast: {', '.join(cast)})"
        if report.codecs:
            line += f" [CODECS: {', '.join(report.codecs)}]"
        lines.append(line)
    return lines


class _EncodeLog:
    """Thread-safe appender for ffmpeg stderr, one section per job."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def reset(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def append(self, job_name: str, text: str) -> None:
        with self._lock:
            with self.path.open("a") as fh:
                fh.write(f"==> {job_name}\n{text.rstrip()}\n")


def _run_job(job: HlsJob, encode_log: _EncodeLog, timeout: float | None) -> JobResult:
    log.info(f"[{job.name}] Encoding...")
    job.output.parent.mkdir(parents=True, exist_ok=True)
    try:
        result = run_ffmpeg(list(job.args), timeout=timeout)
        encode_log.append(job.name, result.stderr)
        check_output(job.output)
    except ExternalToolError as e:
        encode_log.append(job.name, e.stderr)
        click.echo(f"[{job.name}] FAILED -- check {encode_log.path}", err=True)
        return JobResult(
            name=job.name, status=JobStatus.FAILED, output=job.output, message=str(e)
        )
    except ToolsError as e:
        click.echo(f"[{job.name}] FAILED -- {e}", err=True)
        return JobResult(
            name=job.name, status=JobStatus.FAILED, output=job.output, message=str(e)
        )
    click.echo(f"[{job.name}] Done.")
    return JobResult(name=job.name, status=JobStatus.COMPLETED, output=job.output)


def generate_hls(
    input_path: Path,
    config: ToolsConfig,
    output_dir: Path | None = None,
) -> BatchResult:
    """Encode all HLS variants and Cast fallbacks, then print a summary.

    Uses config.segment_time, config.hls_duration and config.hls_bitrate.
    """
    if config.segment_time <= 0:
        raise ConfigError(f"Segment time must be positive, got {config.segment_time}")
    if config.hls_duration <= 0:
        raise ConfigError(f"Duration must be positive, got {config.hls_duration}")

    require_tools("ffmpeg", "ffprobe")
    probe_source(input_path, allow_lossy=config.allow_lossy)
    try:
        source_duration = get_duration(input_path)
    except ValueError:
        source_duration = None
    if source_duration is not None and source_duration < config.hls_duration:
        log.info(
            f"Source is {source_duration:.1f}s, shorter than the "
            f"{config.hls_duration}s limit; streams will be {source_duration:.0f}s"
        )

    out = output_dir or config.hls_output_dir
    jobs = plan_jobs(
        input_path,
        out,
        segment_time=config.segment_time,
        duration=config.hls_duration,
        bitrate=config.hls_bitrate,
    )

    encode_log = _EncodeLog(out / LOG_NAME)

    if config.dry_run:
        for job in jobs:
            click.echo(f"[DRY-RUN] {job.name}: ffmpeg -y {' '.join(job.args)}")
        return BatchResult(
            completed=len(jobs),
            total=len(jobs),
            results=[
                JobResult(name=j.name, status=JobStatus.COMPLETED, message="dry-run")
                for j in jobs
            ],
        )

    encode_log.reset()
    timeout = config.ffmpeg_timeout or None
    max_workers = resolve_max_workers(config.max_parallel_jobs)
    orchestrator = BatchOrchestrator(max_workers, label="streams", show_status=False)
    result = orchestrator.run_batch(
        jobs, lambda job: _run_job(job, encode_log, timeout)
    )

    click.echo("")
    click.echo("=== Summary ===")
    click.echo(f"Output: {out}")
    click.echo("")
    for line in summarize(out, config.hls_bitrate):
        click.echo(line)
    click.echo("")

    if result.failed:
        click.echo(f"{result.failed} job(s) failed. Check {encode_log.path}")
    else:
        click.echo("Inspect manifests for CODECS attributes:")
        click.echo(f"  grep -i codecs {out}/*/{PLAYLIST_NAME}")
    return result
