"""Core enums, constants, and result types for the rendition tools.

Enums:
    Codec        -- Output codec family (flac, opus, mp3, aac).
    JobStatus    -- Outcome of a single ffmpeg job (completed, failed, skipped).
    SegmentType  -- HLS segment container (fmp4, mpegts).
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class Codec(StrEnum):
    FLAC = "flac"
    OPUS = "opus"
    MP3 = "mp3"
    AAC = "aac"


class JobStatus(StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class SegmentType(StrEnum):
    FMP4 = "fmp4"
    MPEGTS = "mpegts"


@dataclass(frozen=True)
class Rendition:
    """One codec+bitrate output derived from a source file.

    Bitrate is in kbps; 0 means lossless.
    """

    codec: Codec
    bitrate: int
    extension: str
    codec_args: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{self.codec}/{self.bitrate}kbps"

    def filename(self, basename: str) -> str:
        return f"{basename}_{self.codec}_{self.bitrate}.{self.extension}"


# Bitrate ladders in kbps, highest first
CODEC_BITRATES: dict[Codec, tuple[int, ...]] = {
    Codec.FLAC: (0,),
    Codec.OPUS: (320, 256, 192, 160, 128, 96, 64, 48, 32),
    Codec.MP3: (320, 256, 192, 160, 128, 96, 64, 48, 32),
    Codec.AAC: (256, 192, 160, 128, 96, 64, 48, 32),
}

CODEC_EXTENSIONS: dict[Codec, str] = {
    Codec.FLAC: "flac",
    Codec.OPUS: "ogg",  # Ogg container
    Codec.MP3: "mp3",
    Codec.AAC: "m4a",  # MP4 container
}

# ffmpeg encoder name per codec
CODEC_ENCODERS: dict[Codec, str] = {
    Codec.FLAC: "flac",
    Codec.OPUS: "libopus",
    Codec.MP3: "libmp3lame",
    Codec.AAC: "aac",
}

# Extensions scanned when fixing tags on already-transcoded files
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".flac",
        ".ogg",
        ".mp3",
        ".m4a",
        ".wav",
        ".aiff",
    }
)

# Extensions that may hold a lossless stream (.m4a can be ALAC or AAC,
# so candidates still go through a probe)
LOSSLESS_CANDIDATE_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".flac",
        ".wav",
        ".aiff",
        ".aif",
        ".m4a",
        ".wv",
        ".ape",
    }
)

# ffprobe codec names that are lossless (plus every pcm_* variant)
LOSSLESS_CODECS: frozenset[str] = frozenset(
    {"flac", "alac", "wavpack", "ape", "tta", "mlp", "truehd"}
)


@dataclass
class JobResult:
    """Outcome of one external-process job."""

    name: str
    status: JobStatus
    output: Path | None = None
    message: str = ""


@dataclass
class BatchResult:
    """Result summary from a parallel batch run."""

    completed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    failures: list[str] = field(default_factory=list)
    results: list[JobResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0
