"""
FFmpeg argument lists for every stage of the pipeline.

The functions here only build lists of strings; running them is the
pipeline's job. The program itself (ffmpeg) is not part of the lists.
"""
from pathlib import Path
from typing import List, Optional, Sequence

from ..config.audio import OPUS_ENCODER
from ..config.settings import EncodeSettings
from ..config.video import AV1_ENCODER, VP9_ENCODER
from ..domain.enums import AudioCodec, Quality, VideoCodec
from ..domain.models import EncodeParameters
from .parameter_model import compute_audio_bitrate

NULL_MUXER = "null"
NULL_OUTPUT = "-"


def video_codec_args(codec: VideoCodec, params: Optional[EncodeParameters], speed: int) -> List[str]:
    if codec is VideoCodec.COPY:
        return ["-c:v", "copy"]

    if params is None:
        raise ValueError(f"{codec.name} needs encode parameters")
    if codec is VideoCodec.VP9:
        args = ["-c:v", VP9_ENCODER, "-quality", "good", "-speed", str(speed)]
    elif codec is VideoCodec.AV1:
        args = ["-c:v", AV1_ENCODER, "-strict", "-2", "-cpu-used", str(speed)]
    else:
        raise ValueError(f"Unhandled video codec: {codec}")

    args += [
        "-b:v", str(params.bitrate),
        "-minrate", str(params.minrate),
        "-maxrate", str(params.maxrate),
        "-tile-columns", str(params.tile_columns),
        "-g", str(params.keyframe_interval),
        "-threads", str(params.threads),
        "-crf", str(params.crf),
    ]
    return args


def audio_codec_args(codec: AudioCodec, quality: Quality, settings: EncodeSettings) -> List[str]:
    if codec is AudioCodec.COPY:
        return ["-c:a", "copy"]
    if codec is AudioCodec.OPUS:
        return ["-c:a", OPUS_ENCODER, "-b:a", f"{compute_audio_bitrate(quality, settings)}k"]
    raise ValueError(f"Unhandled audio codec: {codec}")


def _filter_args(option: str, filters: Sequence[str]) -> List[str]:
    if not filters:
        return []
    return [option, ",".join(filters)]


def build_encode_args(
    source: Path,
    pass_number: int,
    passlog: Path,
    output: Optional[Path],
    video_codec: VideoCodec,
    video_params: Optional[EncodeParameters],
    video_filters: Sequence[str],
    speed: int,
    audio_codec: AudioCodec,
    audio_quality: Quality,
    audio_filters: Sequence[str],
    settings: EncodeSettings,
) -> List[str]:
    """
    Arguments for one pass of a two-pass encode.

    Pass 1 drops audio entirely and writes to the null muxer; only the
    rate-control statistics in `passlog` matter. Pass 2 adds the audio
    filters and codec and writes `output`. Both passes must be given the
    same source, filters, parameters and passlog.
    """
    if pass_number not in (1, 2):
        raise ValueError(f"pass_number must be 1 or 2, got {pass_number}")

    args = ["-y", "-i", str(source)]
    args += _filter_args("-vf", video_filters)
    args += video_codec_args(video_codec, video_params, speed)
    if video_codec is not VideoCodec.COPY:
        args += ["-pass", str(pass_number), "-passlogfile", str(passlog)]

    if pass_number == 1:
        args += ["-an", "-f", NULL_MUXER, NULL_OUTPUT]
        return args

    if output is None:
        raise ValueError("pass 2 needs an output path")
    args += _filter_args("-af", audio_filters)
    args += audio_codec_args(audio_codec, audio_quality, settings)
    args.append(str(output))
    return args


def concat_manifest_text(paths: Sequence[Path]) -> str:
    """
    Manifest for FFmpeg's concat demuxer: one quoted path per line, in order.
    """
    lines = []
    for path in paths:
        quoted = str(path).replace("'", "'\\''")
        lines.append(f"file '{quoted}'")
    return "\n".join(lines) + "\n"


def build_concat_args(manifest: Path, output: Path) -> List[str]:
    return ["-y", "-f", "concat", "-safe", "0", "-i", str(manifest), "-c", "copy", str(output)]


def build_strip_args(source: Path, title: str, output: Path) -> List[str]:
    """Copies every stream verbatim, drops all metadata and sets only the title."""
    return [
        "-y",
        "-i", str(source),
        "-map", "0",
        "-c", "copy",
        "-map_metadata", "-1",
        "-metadata", f"title={title}",
        str(output),
    ]
