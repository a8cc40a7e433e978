"""Tests for cli.py -- Click command group."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from audio_renditions.cli import main
from audio_renditions.errors import MissingToolError
from audio_renditions.models import BatchResult, Codec


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep logs in tmp_path and stay clear of any project .env file."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AUDIO_RENDITIONS_LOG_DIR", str(tmp_path / "logs"))
    for var in (
        "MAX_PARALLEL_JOBS", "DRY_RUN", "ALLOW_LOSSY", "SEGMENT_TIME", "HLS_DURATION",
    ):
        monkeypatch.delenv(f"AUDIO_RENDITIONS_{var}", raising=False)


@pytest.fixture
def source(tmp_path):
    f = tmp_path / "track.flac"
    f.write_bytes(b"fLaC")
    return f


class TestHelpOutput:
    def test_group_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "permutations" in result.output
        assert "fix-artists" in result.output
        assert "hls" in result.output

    def test_permutations_help(self):
        result = CliRunner().invoke(main, ["permutations", "--help"])
        assert result.exit_code == 0
        assert "--codec" in result.output
        assert "--dry-run" in result.output
        assert "--jobs" in result.output

    def test_hls_help(self):
        result = CliRunner().invoke(main, ["hls", "--help"])
        assert result.exit_code == 0
        assert "--time" in result.output
        assert "--duration" in result.output


class TestPermutations:
    @patch("audio_renditions.cli.generate_permutations", return_value=BatchResult())
    def test_flags_reach_config(self, mock_gen, source, tmp_path):
        result = CliRunner().invoke(
            main,
            ["permutations", str(source), str(tmp_path / "out"), "-j", "3",
             "--dry-run", "--codec", "opus", "--codec", "aac"],
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        args, kwargs = mock_gen.call_args
        assert args[0] == source
        config = args[1]
        assert config.max_parallel_jobs == 3
        assert config.dry_run is True
        assert kwargs["output_dir"] == tmp_path / "out"
        assert kwargs["codecs"] == [Codec.OPUS, Codec.AAC]

    @patch("audio_renditions.cli.generate_permutations", return_value=BatchResult())
    def test_defaults(self, mock_gen, source):
        result = CliRunner().invoke(main, ["permutations", str(source)])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        kwargs = mock_gen.call_args.kwargs
        assert kwargs["output_dir"] is None
        assert kwargs["codecs"] is None
        assert mock_gen.call_args.args[1].dry_run is False

    @patch(
        "audio_renditions.cli.generate_permutations",
        return_value=BatchResult(completed=26, failed=1, total=27, failures=["x"]),
    )
    def test_failures_exit_nonzero(self, mock_gen, source):
        result = CliRunner().invoke(main, ["permutations", str(source)])
        assert result.exit_code == 1

    @patch(
        "audio_renditions.cli.generate_permutations",
        side_effect=MissingToolError("ffmpeg"),
    )
    def test_tools_error_reported(self, mock_gen, source):
        result = CliRunner().invoke(main, ["permutations", str(source)])
        assert result.exit_code == 1
        assert "Error: ffmpeg is required but not found in PATH" in result.output

    def test_missing_input(self, tmp_path):
        result = CliRunner().invoke(main, ["permutations", str(tmp_path / "nope.flac")])
        assert result.exit_code == 2

    def test_bad_codec(self, source):
        result = CliRunner().invoke(main, ["permutations", str(source), "--codec", "wma"])
        assert result.exit_code == 2

    @patch("audio_renditions.cli.generate_permutations", return_value=BatchResult())
    def test_verbose_sets_debug(self, mock_gen, source):
        result = CliRunner().invoke(main, ["-v", "permutations", str(source)])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        config = mock_gen.call_args.args[1]
        assert config.verbose is True
        assert config.log_level == "DEBUG"

    @patch("audio_renditions.cli.generate_permutations", return_value=BatchResult())
    def test_env_file_option(self, mock_gen, source, tmp_path):
        env_file = tmp_path / "tools.env"
        env_file.write_text("AUDIO_RENDITIONS_MAX_PARALLEL_JOBS=5\n")
        result = CliRunner().invoke(
            main, ["-c", str(env_file), "permutations", str(source)]
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_gen.call_args.args[1].max_parallel_jobs == 5


class TestFixArtists:
    @patch("audio_renditions.cli.fix_various_artists", return_value=BatchResult())
    def test_positional_input(self, mock_fix, tmp_path):
        result = CliRunner().invoke(main, ["fix-artists", str(tmp_path), "--dry-run"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        args = mock_fix.call_args.args
        assert args[0] == tmp_path
        assert args[1].dry_run is True

    @patch("audio_renditions.cli.fix_various_artists", return_value=BatchResult())
    def test_input_option(self, mock_fix, tmp_path):
        result = CliRunner().invoke(main, ["fix-artists", "-i", str(tmp_path), "-j", "2"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_fix.call_args.args[0] == tmp_path
        assert mock_fix.call_args.args[1].max_parallel_jobs == 2

    def test_no_input(self):
        result = CliRunner().invoke(main, ["fix-artists"])
        assert result.exit_code == 2
        assert "No input given" in result.output

    def test_input_not_found(self, tmp_path):
        result = CliRunner().invoke(main, ["fix-artists", str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "not found" in result.output

    @patch(
        "audio_renditions.cli.fix_various_artists",
        return_value=BatchResult(failed=1, total=1, failures=["a.flac"]),
    )
    def test_failures_exit_nonzero(self, mock_fix, tmp_path):
        result = CliRunner().invoke(main, ["fix-artists", str(tmp_path)])
        assert result.exit_code == 1


class TestHls:
    @patch("audio_renditions.cli.generate_hls", return_value=BatchResult())
    def test_options_reach_config(self, mock_hls, source, tmp_path):
        result = CliRunner().invoke(
            main,
            ["hls", str(source), "-o", str(tmp_path / "public"), "-t", "4",
             "-d", "60", "-b", "96"],
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        config = mock_hls.call_args.args[1]
        assert config.segment_time == 4
        assert config.hls_duration == 60
        assert config.hls_bitrate == 96
        assert mock_hls.call_args.kwargs["output_dir"] == tmp_path / "public"

    @patch("audio_renditions.cli.generate_hls", return_value=BatchResult())
    def test_defaults(self, mock_hls, source):
        result = CliRunner().invoke(main, ["hls", str(source)])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        config = mock_hls.call_args.args[1]
        assert config.segment_time == 6
        assert config.hls_duration == 90
        assert config.allow_lossy is False
        assert mock_hls.call_args.kwargs["output_dir"] is None

    @patch("audio_renditions.cli.generate_hls", return_value=BatchResult())
    def test_allow_lossy(self, mock_hls, tmp_path):
        song = tmp_path / "song.mp3"
        song.write_bytes(b"ID3")
        result = CliRunner().invoke(
            main, ["hls", str(song), "--allow-lossy", "--dry-run"]
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        config = mock_hls.call_args.args[1]
        assert config.allow_lossy is True
        assert config.dry_run is True

    def test_zero_segment_time_rejected(self, source):
        result = CliRunner().invoke(main, ["hls", str(source), "-t", "0"])
        assert result.exit_code == 2

    def test_directory_rejected(self, tmp_path):
        result = CliRunner().invoke(main, ["hls", str(tmp_path)])
        assert result.exit_code == 2
