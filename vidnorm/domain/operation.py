"""
The `Operation` model: an immutable description of one pipeline run.

An Operation is read once from a YAML document (the serialized configuration
blob), validated, and then treated as read-only input by every stage.

Example document::

    title: Summer Holiday 2021
    inputs:
      - clips/001.mov
      - clips/002.mov
    cpulimit: 400
    transpose: 1
    scale: [1280, 720]
    video_fps: [30, 1]
    loudnorm: true
    video_quality: High
    video_codec: Vp9
    audio_quality: Medium
    audio_codec: Opus
    strip_metadata: true
    container: webm
"""
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Mapping, Optional, Tuple, Union

import yaml
from loguru import logger

from ..config.common import TITLE_REPLACEMENTS
from .enums import AudioCodec, ContainerKind, Quality, VideoCodec
from .exceptions import ConfigError

_REQUIRED_FIELDS = (
    "title",
    "scale",
    "video_fps",
    "loudnorm",
    "video_quality",
    "video_codec",
    "audio_quality",
    "audio_codec",
    "strip_metadata",
)


def sanitize_title(title: str) -> str:
    """Turns a title into a filename stem by replacing path separators and spaces."""
    stem = title
    for old, new in TITLE_REPLACEMENTS:
        stem = stem.replace(old, new)
    return stem


@dataclass(frozen=True)
class Operation:
    inputs: Tuple[Path, ...]
    title: str
    scale: Tuple[int, int]
    video_fps: Tuple[int, int]
    loudnorm: bool
    video_quality: Quality
    video_codec: VideoCodec
    audio_quality: Quality
    audio_codec: AudioCodec
    strip_metadata: bool
    container: ContainerKind = ContainerKind.WEBM
    cpulimit: Optional[int] = None
    transpose: Optional[int] = None

    def __post_init__(self):
        if not self.inputs:
            raise ConfigError("inputs", "at least one input is required")
        if not self.title or not self.title.strip():
            raise ConfigError("title", "must not be empty")
        width, height = self.scale
        if width <= 0 or height <= 0:
            raise ConfigError("scale", f"width and height must be positive, got {width}x{height}")
        fps_num, fps_den = self.video_fps
        if fps_den == 0:
            raise ConfigError("video_fps", "denominator must not be zero")
        if fps_num <= 0 or fps_den < 0:
            raise ConfigError("video_fps", f"frame rate must be positive, got {fps_num}/{fps_den}")
        if self.transpose is not None and not 0 <= self.transpose <= 3:
            raise ConfigError("transpose", f"must be between 0 and 3, got {self.transpose}")
        if self.cpulimit is not None and self.cpulimit <= 0:
            raise ConfigError("cpulimit", f"must be positive, got {self.cpulimit}")

    @property
    def width(self) -> int:
        return self.scale[0]

    @property
    def height(self) -> int:
        return self.scale[1]

    @property
    def needs_concat(self) -> bool:
        return len(self.inputs) > 1

    @property
    def output_stem(self) -> str:
        return sanitize_title(self.title)

    @property
    def output_filename(self) -> str:
        return f"{self.output_stem}{self.container.extension}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Operation":
        """
        Builds and validates an Operation from a parsed configuration mapping.

        Raises:
            ConfigError: naming the first offending field.
        """
        if not isinstance(data, Mapping):
            raise ConfigError("operation", "expected a mapping of fields")

        for field in _REQUIRED_FIELDS:
            if field not in data:
                raise ConfigError(field, "required field is missing")

        return cls(
            inputs=_read_inputs(data),
            title=_read_str(data, "title"),
            scale=_read_pair(data, "scale"),
            video_fps=_read_pair(data, "video_fps"),
            loudnorm=_read_bool(data, "loudnorm"),
            video_quality=_read_enum(data, "video_quality", Quality),
            video_codec=_read_enum(data, "video_codec", VideoCodec),
            audio_quality=_read_enum(data, "audio_quality", Quality),
            audio_codec=_read_enum(data, "audio_codec", AudioCodec),
            strip_metadata=_read_bool(data, "strip_metadata"),
            container=_read_enum(data, "container", ContainerKind) if "container" in data else ContainerKind.WEBM,
            cpulimit=_read_optional_int(data, "cpulimit"),
            transpose=_read_optional_int(data, "transpose"),
        )

    @classmethod
    def load(cls, source: Union[str, Path, IO[str]]) -> "Operation":
        """Reads a YAML operation document from a path or an open text stream."""
        try:
            if isinstance(source, (str, Path)):
                path = Path(source)
                logger.debug(f"Reading operation from '{path}'")
                with path.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            else:
                logger.debug("Reading operation from stream")
                data = yaml.safe_load(source)
        except OSError as e:
            raise ConfigError("operation", f"could not read operation file: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError("operation", f"invalid YAML: {e}") from e

        if data is None:
            raise ConfigError("operation", "document is empty")
        operation = cls.from_dict(data)
        logger.debug(f"Operation is: {operation}")
        return operation


def _read_inputs(data: Mapping[str, Any]) -> Tuple[Path, ...]:
    if "inputs" in data:
        raw = data["inputs"]
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
            raise ConfigError("inputs", "must be a list of paths")
        return tuple(Path(item) for item in raw)
    if "input" in data:
        raw = data["input"]
        if not isinstance(raw, str):
            raise ConfigError("input", "must be a path")
        return (Path(raw),)
    raise ConfigError("inputs", "required field is missing")


def _read_str(data: Mapping[str, Any], field: str) -> str:
    value = data[field]
    if not isinstance(value, str):
        raise ConfigError(field, f"expected a string, got {type(value).__name__}")
    return value


def _read_bool(data: Mapping[str, Any], field: str) -> bool:
    value = data[field]
    if not isinstance(value, bool):
        raise ConfigError(field, f"expected true or false, got {value!r}")
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _read_optional_int(data: Mapping[str, Any], field: str) -> Optional[int]:
    value = data.get(field)
    if value is None:
        return None
    if not _is_int(value):
        raise ConfigError(field, f"expected an integer, got {value!r}")
    return value


def _read_pair(data: Mapping[str, Any], field: str) -> Tuple[int, int]:
    value = data[field]
    if not isinstance(value, (list, tuple)) or len(value) != 2 or not all(_is_int(v) for v in value):
        raise ConfigError(field, f"expected a pair of integers, got {value!r}")
    return int(value[0]), int(value[1])


def _read_enum(data: Mapping[str, Any], field: str, enum_cls):
    try:
        return enum_cls.parse(data[field])
    except ValueError as e:
        raise ConfigError(field, str(e)) from e
