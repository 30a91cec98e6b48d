"""
The injectable settings object for a pipeline run.

`EncodeSettings` collects every tunable default from `common`, `audio` and
`video` into one frozen dataclass. Services receive it explicitly instead of
importing literals, so tests and operators can change a target or a table
for a single run.

User overrides come from `config.user.yaml`::

    paths:
      ffmpeg_dir: /opt/ffmpeg/bin
      cpulimit_path: /usr/bin/cpulimit
    encoding:
      loudnorm_i: "-16"
      threads: 8
      compression_factors:
        High: 700
"""
import dataclasses
import sys
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger

from ..domain.enums import Quality
from ..domain.exceptions import ConfigError
from . import audio, common, video


@dataclass(frozen=True)
class EncodeSettings:
    ffmpeg_path: str = common.FFMPEG_PATH
    cpulimit_path: str = common.CPULIMIT_PATH

    loudnorm_i: str = audio.LOUDNORM_LUFS
    loudnorm_tp: str = audio.LOUDNORM_TP
    loudnorm_lra: str = audio.LOUDNORM_LRA
    opus_bitrates_kbps: Dict[Quality, int] = field(default_factory=lambda: dict(audio.OPUS_BITRATES_KBPS))

    compression_factors: Dict[Quality, int] = field(default_factory=lambda: dict(video.COMPRESSION_FACTORS))
    av1_factor_ratio: Fraction = video.AV1_FACTOR_RATIO
    minrate_percent: int = video.MINRATE_PERCENT
    maxrate_percent: int = video.MAXRATE_PERCENT
    crf: int = video.DEFAULT_CRF
    threads: int = video.DEFAULT_THREADS
    keyframe_interval: int = video.KEYFRAME_INTERVAL

    pass1_speed: int = video.PASS1_SPEED
    pass2_speed_small: int = video.PASS2_SPEED_SMALL
    pass2_speed_large: int = video.PASS2_SPEED_LARGE
    pass2_speed_width_split: int = video.PASS2_SPEED_WIDTH_SPLIT

    def pass2_speed(self, width: int) -> int:
        """Slower (better) preset for narrow outputs where the extra time is affordable."""
        if width < self.pass2_speed_width_split:
            return self.pass2_speed_small
        return self.pass2_speed_large

    def replace(self, **changes: Any) -> "EncodeSettings":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_user_config(cls, path: Optional[Path] = None) -> "EncodeSettings":
        """
        Builds settings from the defaults plus any overrides in a user YAML file.

        A missing file is not an error; the defaults are returned. Unknown keys
        are reported and ignored, values of the wrong type raise ConfigError.
        """
        config_path = path or common.USER_CONFIG_PATH
        if not config_path.is_file():
            logger.debug(f"User config '{config_path}' not found. Using default settings.")
            return cls()

        try:
            with config_path.open("r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError("config", f"could not load '{config_path}': {e}") from e

        if not isinstance(user_config, Mapping):
            raise ConfigError("config", f"'{config_path}' must contain a mapping")

        logger.debug(f"Loaded user config from '{config_path}'")
        overrides: Dict[str, Any] = {}
        overrides.update(_path_overrides(user_config.get("paths") or {}))
        overrides.update(_encoding_overrides(user_config.get("encoding") or {}))
        return cls(**overrides)


def _path_overrides(paths_config: Mapping[str, Any]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    ffmpeg_dir = paths_config.get("ffmpeg_dir")
    if ffmpeg_dir:
        exe_name = "ffmpeg.exe" if sys.platform == "win32" else "ffmpeg"
        overrides["ffmpeg_path"] = str(Path(ffmpeg_dir) / exe_name)
    cpulimit_path = paths_config.get("cpulimit_path")
    if cpulimit_path:
        overrides["cpulimit_path"] = str(cpulimit_path)
    return overrides


_STRING_KEYS = ("loudnorm_i", "loudnorm_tp", "loudnorm_lra")
_INT_KEYS = (
    "minrate_percent",
    "maxrate_percent",
    "crf",
    "threads",
    "keyframe_interval",
    "pass1_speed",
    "pass2_speed_small",
    "pass2_speed_large",
    "pass2_speed_width_split",
)
_TABLE_KEYS = ("compression_factors", "opus_bitrates_kbps")


def _encoding_overrides(encoding_config: Mapping[str, Any]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key, value in encoding_config.items():
        if key in _STRING_KEYS:
            # loudnorm targets are passed to ffmpeg verbatim
            overrides[key] = str(value)
        elif key in _INT_KEYS:
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(key, f"expected a non-negative integer, got {value!r}")
            overrides[key] = value
        elif key in _TABLE_KEYS:
            overrides[key] = _merge_table(key, value)
        elif key == "av1_factor_ratio":
            try:
                ratio = Fraction(str(value))
            except (ValueError, ZeroDivisionError) as e:
                raise ConfigError(key, f"expected a ratio such as '100/70', got {value!r}") from e
            if ratio <= 0:
                raise ConfigError(key, "must be positive")
            overrides[key] = ratio
        else:
            logger.warning(f"Ignoring unknown encoding setting '{key}' in user config.")
    return overrides


def _merge_table(key: str, value: Any) -> Dict[Quality, int]:
    if not isinstance(value, Mapping):
        raise ConfigError(key, "expected a mapping of quality tier to integer")
    defaults = audio.OPUS_BITRATES_KBPS if key == "opus_bitrates_kbps" else video.COMPRESSION_FACTORS
    table = dict(defaults)
    for tier_name, amount in value.items():
        try:
            tier = Quality.parse(tier_name)
        except ValueError as e:
            raise ConfigError(key, str(e)) from e
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ConfigError(key, f"{tier.name} must be a positive integer, got {amount!r}")
        table[tier] = amount
    return table
