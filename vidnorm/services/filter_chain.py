"""
Filter chain construction for the encode passes.

Video filters are always ordered transpose, scale, then frame-rate
conversion. A stream that is copied gets no filters at all, since FFmpeg
cannot filter a stream it does not decode.
"""
from typing import List, Optional

from ..config.settings import EncodeSettings
from ..domain.enums import AudioCodec, VideoCodec
from ..domain.models import LoudnessMeasurement
from ..domain.operation import Operation


def build_video_filters(op: Operation) -> List[str]:
    if op.video_codec is VideoCodec.COPY:
        return []

    filters: List[str] = []
    if op.transpose is not None:
        filters.append(f"transpose={op.transpose}")
    filters.append(f"scale={op.width}x{op.height}")
    fps_num, fps_den = op.video_fps
    filters.append(f"fps=fps={fps_num}/{fps_den}")
    return filters


def apply_filter(measurement: LoudnessMeasurement, settings: EncodeSettings) -> str:
    """
    The `loudnorm` descriptor that applies a previous measurement.

    The targets must be the same as in the measurement pass, and the measured
    strings are embedded exactly as FFmpeg printed them.
    """
    return (
        f"loudnorm=I={settings.loudnorm_i}:TP={settings.loudnorm_tp}:LRA={settings.loudnorm_lra}:"
        f"measured_I={measurement.input_i}:"
        f"measured_LRA={measurement.input_lra}:"
        f"measured_TP={measurement.input_tp}:"
        f"measured_thresh={measurement.input_thresh}:"
        f"offset={measurement.target_offset}:"
        "linear=true:print_format=summary"
    )


def build_audio_filters(
    op: Operation,
    measurement: Optional[LoudnessMeasurement],
    settings: EncodeSettings,
) -> List[str]:
    if op.audio_codec is AudioCodec.COPY or not op.loudnorm:
        return []
    if measurement is None:
        raise ValueError("Loudness normalization is enabled but no measurement was taken")
    return [apply_filter(measurement, settings)]
