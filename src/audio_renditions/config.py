"""Tool configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolsConfig(BaseSettings):
    """All rendition tool configuration with layered resolution:
    .env file < AUDIO_RENDITIONS_* environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_RENDITIONS_",
        env_file=".env",
        extra="ignore",
    )

    # -- Directories --
    output_dir: Path = Path("static/sample-audio")
    hls_output_dir: Path = Path("hls-test-output")
    log_dir: Path = Path.home() / ".local" / "state" / "audio-renditions"

    # -- Parallelism --
    max_parallel_jobs: int = 0  # 0 = auto (CPU count)

    # -- HLS --
    segment_time: int = 6
    hls_duration: int = 90
    hls_bitrate: int = 128

    # -- Encoding --
    ffmpeg_timeout: int = 0  # seconds, 0 = no limit
    disk_space_multiplier: int = 3

    # -- Behavior --
    dry_run: bool = False
    skip_existing: bool = False
    allow_lossy: bool = False
    verbose: bool = False
    log_level: str = "INFO"

    def setup_logging(self) -> None:
        """Configure loguru for the tools."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "audio-renditions.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
