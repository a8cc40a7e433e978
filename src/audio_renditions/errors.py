"""Exception hierarchy for the rendition tools."""

from pathlib import Path


class ToolsError(Exception):
    """Base exception for all rendition tool errors."""


class ConfigError(ToolsError):
    """Invalid or missing configuration."""


class MissingToolError(ToolsError):
    """A required external binary is not on PATH."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"{tool} is required but not found in PATH")
        self.tool = tool


class ProbeError(ToolsError):
    """ffprobe rejected an input (missing, no audio stream, or lossy)."""


class ExternalToolError(ToolsError):
    """An external subprocess (ffmpeg, ffprobe) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr


class OutputCheckError(ToolsError):
    """ffmpeg reported success but the output file is missing or empty."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason
