"""
Loudness measurement with FFmpeg's `loudnorm` filter.

The measurement pass runs `loudnorm` in analysis mode against a null output.
FFmpeg prints the results to stderr as a JSON-like block::

    {
        "input_i" : "-23.10",
        "input_tp" : "-1.30",
        "input_lra" : "7.20",
        "input_thresh" : "-33.50",
        ...
        "target_offset" : "0.40"
    }

The block can be printed more than once; only the last values are the final
measurement, so every key is scanned to the end of the text and the last
match kept.
"""
import re
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from ..config.audio import LOUDNORM_MEASUREMENT_KEYS
from ..config.settings import EncodeSettings
from ..domain.exceptions import ExternalProcessFailure, MeasurementParseError
from ..domain.models import LoudnessMeasurement
from ..utils.ffmpeg_utils import ExternalRunner, build_command_line

MEASURING_STAGE = "measuring"

_KEY_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    key: re.compile(rf'"{key}"\s*:\s*"(-?\d+(?:\.\d+)?)"') for key in LOUDNORM_MEASUREMENT_KEYS
}


def analyze_filter(settings: EncodeSettings) -> str:
    """The `loudnorm` descriptor for the measurement pass."""
    return (
        f"loudnorm=I={settings.loudnorm_i}:TP={settings.loudnorm_tp}:"
        f"LRA={settings.loudnorm_lra}:print_format=json"
    )


def parse_measurement(text: str) -> LoudnessMeasurement:
    """
    Extracts the five measured values from `loudnorm` diagnostic text.

    Each key is matched independently, so the order of keys in the text does
    not matter. The last occurrence of a key wins.

    Raises:
        MeasurementParseError: naming the first key that never appears.
    """
    values: Dict[str, str] = {}
    for key, pattern in _KEY_PATTERNS.items():
        found: Optional[str] = None
        for match in pattern.finditer(text):
            found = match.group(1)
        if found is None:
            raise MeasurementParseError(key)
        values[key] = found

    measurement = LoudnessMeasurement(**values)
    logger.info(f"Loudness measurement: {measurement.as_dict()}")
    return measurement


class LoudnessAnalyzer:
    def __init__(self, runner: ExternalRunner, settings: EncodeSettings):
        self.runner = runner
        self.settings = settings

    def analyze(self, input_path: Path, resource_limit: Optional[int] = None) -> LoudnessMeasurement:
        """
        Runs one measurement pass over `input_path` and parses its output.

        Raises:
            ExternalProcessFailure: if FFmpeg exits non-zero.
            MeasurementParseError: if a measured value is missing.
        """
        args = [
            "-y",
            "-i", str(input_path),
            "-af", analyze_filter(self.settings),
            "-f", "null", "-",
        ]
        logger.info(f"Analyzing loudness of '{input_path}'")
        result = self.runner.run(self.settings.ffmpeg_path, args, resource_limit)
        if not result.ok:
            raise ExternalProcessFailure(
                MEASURING_STAGE,
                result.stderr,
                result.returncode,
                build_command_line(self.settings.ffmpeg_path, args, resource_limit, self.settings.cpulimit_path),
            )
        return parse_measurement(result.stderr)
