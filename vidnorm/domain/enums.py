"""
Closed enumerations used throughout the pipeline.

Each enum parses itself from configuration text with `parse()`, which accepts
the member name in any case and with or without `_`/`-` separators, so
`VeryHigh`, `very_high` and `VERY-HIGH` are all the same tier.
"""
from enum import Enum
from functools import total_ordering


class _ParsableEnum(Enum):
    @staticmethod
    def _normalize(text: str) -> str:
        return text.replace("_", "").replace("-", "").replace(" ", "").lower()

    @classmethod
    def parse(cls, value):
        """Returns the member matching `value`, or raises ValueError."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"expected a string for {cls.__name__}, got {type(value).__name__}")
        wanted = cls._normalize(value)
        for member in cls:
            if cls._normalize(member.name) == wanted:
                return member
        choices = ", ".join(member.name for member in cls)
        raise ValueError(f"unknown {cls.__name__} '{value}' (choices: {choices})")


@total_ordering
class Quality(_ParsableEnum):
    """Semantic quality tier, ordered from lowest to highest."""

    VERY_LOW = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    VERY_HIGH = 4

    def __lt__(self, other):
        if not isinstance(other, Quality):
            return NotImplemented
        return self.value < other.value


class VideoCodec(_ParsableEnum):
    """Video treatment. COPY passes the stream through untouched."""

    COPY = "copy"
    VP9 = "vp9"
    AV1 = "av1"


class AudioCodec(_ParsableEnum):
    """Audio treatment. COPY passes the stream through untouched."""

    COPY = "copy"
    OPUS = "opus"


class ContainerKind(_ParsableEnum):
    """Output container. The value is its canonical file extension."""

    WEBM = ".webm"
    MKV = ".mkv"
    MP4 = ".mp4"

    @property
    def extension(self) -> str:
        return self.value
