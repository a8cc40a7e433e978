"""ffmpeg-driven operations behind the CLI commands.

Submodules:
    permutations -- Every codec x bitrate rendition of lossless sources
                    (flac 0; opus/mp3 320..32; aac 256..32), one ffmpeg job
                    per (file, codec, bitrate). Probes inputs as lossless,
                    drops codecs whose encoder isn't compiled in, mirrors
                    source sub-directories under the output dir, and removes
                    partial outputs on failure.
    tagging      -- Rewrites ARTIST="Various Artists" with the artist parsed
                    from Bandcamp-style filenames. Stream copy into a hidden
                    temp file, then atomic replace.
    hls          -- HLS test streams: Opus/FLAC/AAC as fMP4, MP3 as MPEG-TS,
                    plus single-file Cast fallbacks and a playlist summary
                    (segment count, #EXT-X-MAP, CODECS).
"""
