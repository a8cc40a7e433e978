"""Audio Renditions -- ffmpeg orchestration for codec/bitrate renditions,
artist tag fixes, and HLS fMP4 test assets.

Core modules:
    config        -- Tool configuration via pydantic-settings
                     (AUDIO_RENDITIONS_* env vars). CLI flags passed as kwargs
                     to ToolsConfig.
    cli           -- Click command group: permutations, fix-artists, hls.
    orchestrator  -- Bounded parallel batch runner; one ffmpeg process per job,
                     failures collected rather than aborting the batch.
    concurrency   -- Worker-count resolution (psutil) and disk space checks.
    ffmpeg        -- ffmpeg subprocess wrapper, encoder detection, output checks.
    ffprobe       -- Audio file inspection via ffprobe subprocess. Numeric
                     functions raise ValueError on empty ffprobe output.
    filenames     -- Encode-suffix stripping and Bandcamp artist parsing.

Subpackages:
    ops           -- The three operations (permutations, tagging, hls).
"""

__version__ = "0.1.0"
