"""
The encode-parameter model.

Pure functions mapping {codec, quality tier, resolution, frame rate} to the
rate-control and parallelism settings passed to the video encoder. All
arithmetic is done with exact fractions; bitrates are floored to whole bits
per second only at the end.
"""
from fractions import Fraction
from typing import Optional

from ..config.settings import EncodeSettings
from ..config.video import TILE_COLUMN_WIDTH_BOUNDS, UNCOMPRESSED_BITS_PER_PIXEL
from ..domain.enums import AudioCodec, Quality, VideoCodec
from ..domain.models import EncodeParameters


def uncompressed_bitrate(width: int, height: int, fps_num: int, fps_den: int) -> Fraction:
    """Bits per second of the raw RGB frames at the target size and rate."""
    return UNCOMPRESSED_BITS_PER_PIXEL * width * height * Fraction(fps_num, fps_den)


def compression_factor(codec: VideoCodec, quality: Quality, settings: EncodeSettings) -> Fraction:
    factor = Fraction(settings.compression_factors[quality])
    if codec is VideoCodec.VP9:
        return factor
    if codec is VideoCodec.AV1:
        return factor * settings.av1_factor_ratio
    if codec is VideoCodec.COPY:
        raise ValueError("COPY streams are passed through and have no compression factor")
    raise ValueError(f"Unhandled video codec: {codec}")


def tile_columns(width: int) -> int:
    """Encoder tile columns: 0 below 640px, 1 below 1024px, 2 below 2560px, else 3."""
    for columns, bound in enumerate(TILE_COLUMN_WIDTH_BOUNDS):
        if width < bound:
            return columns
    return len(TILE_COLUMN_WIDTH_BOUNDS)


def compute_video_params(
    codec: VideoCodec,
    quality: Quality,
    width: int,
    height: int,
    fps_num: int,
    fps_den: int,
    settings: EncodeSettings,
) -> Optional[EncodeParameters]:
    """
    Derives the encode parameters for one video stream.

    Returns None for COPY, which bypasses the model entirely.
    """
    if codec is VideoCodec.COPY:
        return None

    raw_bitrate = uncompressed_bitrate(width, height, fps_num, fps_den)
    factor = compression_factor(codec, quality, settings)
    bitrate = int(raw_bitrate / factor)

    return EncodeParameters(
        bitrate=bitrate,
        minrate=bitrate * settings.minrate_percent // 100,
        maxrate=bitrate * settings.maxrate_percent // 100,
        tile_columns=tile_columns(width),
        threads=settings.threads,
        crf=settings.crf,
        keyframe_interval=settings.keyframe_interval,
        uncompressed_bitrate=raw_bitrate,
        compression_factor=factor,
    )


def compute_audio_bitrate(quality: Quality, settings: EncodeSettings) -> int:
    """Opus bitrate in kbps for a quality tier."""
    return settings.opus_bitrates_kbps[quality]


def audio_bitrate_for(codec: AudioCodec, quality: Quality, settings: EncodeSettings) -> Optional[int]:
    """Like `compute_audio_bitrate`, but None for COPY."""
    if codec is AudioCodec.COPY:
        return None
    if codec is AudioCodec.OPUS:
        return compute_audio_bitrate(quality, settings)
    raise ValueError(f"Unhandled audio codec: {codec}")
