"""CLI entry point for the audio rendition tools."""

import sys
from pathlib import Path

import click
from loguru import logger

from .config import ToolsConfig
from .errors import ToolsError
from .models import BatchResult, Codec
from .ops.hls import generate_hls
from .ops.permutations import generate_permutations
from .ops.tagging import fix_various_artists

log = logger.bind(stage="cli")

_JOBS_OPTION = click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Max parallel ffmpeg jobs (default: CPU count).",
)


def _make_config(ctx: click.Context, **overrides) -> ToolsConfig:
    """Build config from .env + env vars, with CLI flags as kwargs on top."""
    settings = ctx.obj or {}
    kwargs = {k: v for k, v in overrides.items() if v is not None}
    if settings.get("verbose"):
        kwargs["verbose"] = True
        kwargs["log_level"] = "DEBUG"

    env_file = settings.get("config_file")
    if env_file:
        config = ToolsConfig(_env_file=env_file, **kwargs)
        log.debug(f"Loaded env from {env_file}")
    else:
        config = ToolsConfig(**kwargs)
    config.setup_logging()
    return config


def _finish(result: BatchResult) -> None:
    """Exit non-zero when any job in the batch failed."""
    if not result.ok:
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to .env file.",
)
@click.version_option(package_name="audio-renditions")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: str | None) -> None:
    """Encode renditions, fix artist tags, and build HLS test assets with ffmpeg."""
    ctx.obj = {"verbose": verbose, "config_file": config_file}


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.argument("output_dir", required=False, type=click.Path(path_type=Path))
@_JOBS_OPTION
@click.option(
    "--codec",
    "codecs",
    multiple=True,
    type=click.Choice([c.value for c in Codec]),
    help="Only encode this codec. Can be repeated.",
)
@click.option("--dry-run", is_flag=True, help="Show what would be encoded.")
@click.option(
    "--skip-existing", is_flag=True, help="Skip renditions that already exist."
)
@click.option(
    "--allow-lossy", is_flag=True, help="Accept lossy sources (with a warning)."
)
@click.pass_context
def permutations(
    ctx: click.Context,
    input_path: Path,
    output_dir: Path | None,
    jobs: int | None,
    codecs: tuple[str, ...],
    dry_run: bool,
    skip_existing: bool,
    allow_lossy: bool,
) -> None:
    """Generate all codec+bitrate permutations from lossless audio.

    INPUT_PATH is a lossless file (FLAC, WAV, AIFF, ALAC, ...) or a directory
    of them. Outputs are named {basename}_{codec}_{bitrate}.{ext} in
    OUTPUT_DIR (default: static/sample-audio).
    """
    config = _make_config(
        ctx,
        max_parallel_jobs=jobs,
        dry_run=dry_run or None,
        skip_existing=skip_existing or None,
        allow_lossy=allow_lossy or None,
    )
    log.info(f"Starting permutations: input={input_path} dry_run={config.dry_run}")

    try:
        result = generate_permutations(
            input_path,
            config,
            output_dir=output_dir,
            codecs=[Codec(c) for c in codecs] or None,
        )
    except ToolsError as e:
        raise click.ClickException(str(e)) from e
    _finish(result)


@main.command("fix-artists")
@click.argument("input_arg", required=False, type=click.Path(path_type=Path))
@click.option(
    "-i",
    "--input",
    "input_opt",
    type=click.Path(path_type=Path),
    default=None,
    help="File or directory to process.",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be changed without modifying files."
)
@_JOBS_OPTION
@click.pass_context
def fix_artists(
    ctx: click.Context,
    input_arg: Path | None,
    input_opt: Path | None,
    dry_run: bool,
    jobs: int | None,
) -> None:
    """Fix ARTIST tags that say "Various Artists".

    Parses the artist from Bandcamp-style filenames
    ("... - NNN artistname - title") and updates the metadata in place
    (no re-encoding). Directories are processed recursively
    (flac, ogg, mp3, m4a, wav, aiff).
    """
    input_path = input_opt or input_arg
    if input_path is None:
        raise click.UsageError("No input given. Pass a file or directory.")
    if not input_path.exists():
        raise click.ClickException(f"Input '{input_path}' not found")

    config = _make_config(ctx, max_parallel_jobs=jobs, dry_run=dry_run or None)

    try:
        result = fix_various_artists(input_path, config)
    except ToolsError as e:
        raise click.ClickException(str(e)) from e
    _finish(result)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: ./hls-test-output).",
)
@click.option(
    "-t",
    "--time",
    "segment_time",
    type=click.IntRange(min=1),
    default=None,
    help="Segment duration in seconds (default: 6).",
)
@click.option(
    "-d",
    "--duration",
    type=click.IntRange(min=1),
    default=None,
    help="Max output duration in seconds (default: 90).",
)
@click.option(
    "-b",
    "--bitrate",
    type=click.IntRange(min=8),
    default=None,
    help="Lossy stream bitrate in kbps (default: 128).",
)
@_JOBS_OPTION
@click.option("--dry-run", is_flag=True, help="Print the ffmpeg commands only.")
@click.option(
    "--allow-lossy", is_flag=True, help="Accept a lossy source (with a warning)."
)
@click.pass_context
def hls(
    ctx: click.Context,
    input_path: Path,
    output_dir: Path | None,
    segment_time: int | None,
    duration: int | None,
    bitrate: int | None,
    jobs: int | None,
    dry_run: bool,
    allow_lossy: bool,
) -> None:
    """Generate HLS fMP4 test streams (Opus, FLAC, AAC) plus MPEG-TS MP3.

    \b
    Examples:
      audio-renditions hls track.flac
      audio-renditions hls track.flac -o tools/test-pages/public
      audio-renditions hls track.flac -o out -t 4 -d 60
    """
    config = _make_config(
        ctx,
        segment_time=segment_time,
        hls_duration=duration,
        hls_bitrate=bitrate,
        max_parallel_jobs=jobs,
        dry_run=dry_run or None,
        allow_lossy=allow_lossy or None,
    )

    try:
        result = generate_hls(input_path, config, output_dir=output_dir)
    except ToolsError as e:
        raise click.ClickException(str(e)) from e
    _finish(result)
