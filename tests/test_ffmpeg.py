"""Tests for ffmpeg subprocess wrappers."""

import subprocess
from unittest.mock import patch

import pytest

from audio_renditions.errors import ExternalToolError, MissingToolError, OutputCheckError
from audio_renditions.ffmpeg import (
    build_command,
    check_output,
    detect_encoders,
    require_tools,
    run_ffmpeg,
)

_ENCODERS_OUTPUT = """\
Encoders:
 V..... = Video
 A..... = Audio
 S..... = Subtitle
 .F.... = Frame-level multithreading
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC
 A....D aac                  AAC (Advanced Audio Coding)
 A....D flac                 FLAC (Free Lossless Audio Codec)
 A....D libopus              libopus Opus
"""


class TestRequireTools:
    @patch("audio_renditions.ffmpeg.shutil.which", return_value="/usr/bin/tool")
    def test_all_present(self, mock_which):
        require_tools("ffmpeg", "ffprobe")
        assert mock_which.call_count == 2

    @patch("audio_renditions.ffmpeg.shutil.which", return_value=None)
    def test_missing_raises(self, mock_which):
        with pytest.raises(MissingToolError, match="ffmpeg is required"):
            require_tools("ffmpeg", "ffprobe")


class TestDetectEncoders:
    @patch("audio_renditions.ffmpeg.subprocess.run")
    def test_parses_encoder_names(self, mock_run):
        detect_encoders.cache_clear()
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout=_ENCODERS_OUTPUT, stderr=""
        )
        encoders = detect_encoders()
        assert encoders == {"libx264", "aac", "flac", "libopus"}
        assert "libmp3lame" not in encoders
        assert "=" not in encoders
        detect_encoders.cache_clear()

    @patch("audio_renditions.ffmpeg.subprocess.run")
    def test_cached(self, mock_run):
        detect_encoders.cache_clear()
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout=_ENCODERS_OUTPUT, stderr=""
        )
        detect_encoders()
        detect_encoders()
        assert mock_run.call_count == 1
        detect_encoders.cache_clear()


class TestRunFfmpeg:
    def test_build_command(self):
        assert build_command(["-i", "in.flac", "out.mp3"]) == [
            "ffmpeg", "-y", "-i", "in.flac", "out.mp3",
        ]

    @patch("audio_renditions.ffmpeg.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="", stderr="size=10kB"
        )
        result = run_ffmpeg(["-i", "in.flac", "out.mp3"])
        assert result.stderr == "size=10kB"
        cmd = mock_run.call_args.args[0]
        assert cmd[:2] == ["ffmpeg", "-y"]
        assert mock_run.call_args.kwargs["timeout"] is None

    @patch("audio_renditions.ffmpeg.subprocess.run")
    def test_nonzero_exit_raises(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="Unknown encoder 'libfoo'"
        )
        with pytest.raises(ExternalToolError) as exc_info:
            run_ffmpeg(["-i", "in.flac", "out.mp3"])
        assert exc_info.value.exit_code == 1
        assert "Unknown encoder" in exc_info.value.stderr

    @patch("audio_renditions.ffmpeg.subprocess.run")
    def test_timeout_raises(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5)
        with pytest.raises(ExternalToolError, match="timed out") as exc_info:
            run_ffmpeg(["-i", "in.flac", "out.mp3"], timeout=5)
        assert exc_info.value.exit_code == -1


class TestCheckOutput:
    def test_missing(self, tmp_path):
        with pytest.raises(OutputCheckError, match="not created"):
            check_output(tmp_path / "out.mp3")

    def test_empty(self, tmp_path):
        out = tmp_path / "out.mp3"
        out.write_bytes(b"")
        with pytest.raises(OutputCheckError, match="empty"):
            check_output(out)

    def test_non_empty(self, tmp_path):
        out = tmp_path / "out.mp3"
        out.write_bytes(b"ID3")
        check_output(out)
