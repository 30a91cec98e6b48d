"""
Value objects that flow between pipeline stages.
"""
from dataclasses import asdict, dataclass
from fractions import Fraction


@dataclass(frozen=True)
class LoudnessMeasurement:
    """
    The five values printed by a `loudnorm` measurement pass.

    They are kept as the exact decimal strings FFmpeg printed and handed back
    to the normalization filter unchanged; converting them to floats and back
    could alter the text.
    """

    input_i: str
    input_lra: str
    input_tp: str
    input_thresh: str
    target_offset: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class EncodeParameters:
    """Rate-control and parallelism settings derived for one video encode."""

    bitrate: int
    minrate: int
    maxrate: int
    tile_columns: int
    threads: int
    crf: int
    keyframe_interval: int
    uncompressed_bitrate: Fraction
    compression_factor: Fraction

    def as_dict(self) -> dict:
        data = asdict(self)
        data["uncompressed_bitrate"] = str(self.uncompressed_bitrate)
        data["compression_factor"] = str(self.compression_factor)
        return data
