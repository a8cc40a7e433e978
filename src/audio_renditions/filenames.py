"""Filename parsing for source basenames and Bandcamp-style track names."""

import re
from pathlib import Path

from loguru import logger

log = logger.bind(stage="filenames")

# Suffix appended by the permutations tool: "_aac_32", "_flac_0", ...
_ENCODE_SUFFIX_RE = re.compile(r"_(flac|opus|mp3|aac)_[0-9]+$")

# Track-number prefix: "02 antymis" -> "antymis"
_TRACK_PREFIX_RE = re.compile(r"^[0-9]+\s+")


def source_basename(path: Path) -> str:
    """Filename without its final extension ("a.b.flac" -> "a.b")."""
    return path.stem


def strip_encode_suffix(name: str) -> str:
    """Strip the _codec_bitrate suffix from a transcoded basename.

    "... - 02 antymis - Another System_aac_32"
        -> "... - 02 antymis - Another System"
    """
    return _ENCODE_SUFFIX_RE.sub("", name)


def parse_artist_from_filename(name: str) -> str | None:
    """Parse the artist from a Bandcamp-style name: "... - NNN artist - title".

    The segment just before the last " - " must start with a track number
    followed by whitespace; the number is dropped and the rest is the artist.
    Returns None when the name does not follow the pattern.
    """
    rest = name.rpartition(" - ")[0] if " - " in name else name
    artist_part = rest.rpartition(" - ")[2]

    if not _TRACK_PREFIX_RE.match(artist_part):
        log.debug(f"No track-number prefix in {artist_part!r}")
        return None

    artist = _TRACK_PREFIX_RE.sub("", artist_part)
    return artist or None
