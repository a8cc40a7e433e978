"""FFprobe subprocess wrappers for audio file inspection."""

import json
import subprocess
from pathlib import Path

from loguru import logger

from .errors import ProbeError
from .models import LOSSLESS_CODECS

log = logger.bind(stage="ffprobe")


def _run_ffprobe(args: list[str]) -> subprocess.CompletedProcess:
    """Run ffprobe with common flags."""
    return subprocess.run(
        ["ffprobe", "-v", "error"] + args,
        capture_output=True,
        text=True,
    )


def _probe_value(file: Path, entry: str, select_audio: bool = True) -> str:
    """Read a single ffprobe field as plain text (empty if absent)."""
    args = ["-select_streams", "a:0"] if select_audio else []
    args += [
        "-show_entries", entry,
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(file),
    ]
    return _run_ffprobe(args).stdout.strip()


def get_codec(file: Path) -> str:
    """Get codec name of the first audio stream (empty if none)."""
    return _probe_value(file, "stream=codec_name")


def get_duration(file: Path) -> float:
    """Get container duration in seconds."""
    value = _probe_value(file, "format=duration", select_audio=False)
    if not value:
        raise ValueError(f"No duration reported for {file}")
    return float(value)


def get_tags(file: Path) -> dict:
    """Get metadata tags from an audio file.

    Format-level tags are merged with the first audio stream's tags, since
    Ogg/Opus files carry their Vorbis comments on the stream. Format tags
    win on conflict. Returns dict with lowercase keys.
    """
    result = _run_ffprobe([
        "-select_streams", "a:0",
        "-show_entries", "format_tags:stream_tags",
        "-of", "json",
        str(file),
    ])
    if result.returncode != 0:
        return {}
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError:
        return {}

    tags: dict[str, str] = {}
    streams = data.get("streams") or []
    if streams:
        tags.update({k.lower(): v for k, v in streams[0].get("tags", {}).items()})
    tags.update(
        {k.lower(): v for k, v in data.get("format", {}).get("tags", {}).items()}
    )
    return tags


def get_artist_tag(file: Path) -> str:
    """Get the ARTIST tag (empty if missing)."""
    return get_tags(file).get("artist", "").strip()


def is_lossless_codec(codec: str) -> bool:
    """True for ffprobe codec names that introduce no quantization loss."""
    return codec in LOSSLESS_CODECS or codec.startswith("pcm_")


def probe_source(file: Path, allow_lossy: bool = False) -> str:
    """Validate an encode input and return its audio codec name.

    Raises ProbeError if the file is missing, has no audio stream, or is
    lossy while allow_lossy is False.
    """
    if not file.is_file():
        raise ProbeError(f"Input file not found: {file}")

    codec = get_codec(file)
    if not codec:
        raise ProbeError(f"No audio stream found in {file}")

    if not is_lossless_codec(codec):
        if not allow_lossy:
            raise ProbeError(
                f"{file.name} is not a lossless source (codec: {codec})"
            )
        log.warning(f"Encoding from lossy source {file.name} (codec: {codec})")

    log.debug(f"Probed {file.name}: codec={codec}")
    return codec
