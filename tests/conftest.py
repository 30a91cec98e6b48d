"""Shared test fixtures for vidnorm."""

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from vidnorm.config.settings import EncodeSettings
from vidnorm.domain.enums import AudioCodec, ContainerKind, Quality, VideoCodec
from vidnorm.domain.operation import Operation
from vidnorm.utils.ffmpeg_utils import RunResult

LOUDNORM_STDERR = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'clip.mov':
  Duration: 00:01:02.50, start: 0.000000, bitrate: 15234 kb/s
Stream mapping:
  Stream #0:1 -> #0:0 (aac (native) -> pcm_s16le (native))
[Parsed_loudnorm_0 @ 0x55d0c0a1b2c0]
{
	"input_i" : "-23.1",
	"input_tp" : "-1.3",
	"input_lra" : "7.2",
	"input_thresh" : "-33.5",
	"output_i" : "-19.02",
	"output_tp" : "-1.00",
	"output_lra" : "6.10",
	"output_thresh" : "-29.40",
	"normalization_type" : "dynamic",
	"target_offset" : "0.4"
}
size=N/A time=00:01:02.50 bitrate=N/A speed= 105x
"""


class FakeRunner:
    """
    Records every invocation and answers from a script.

    `responder` receives (program, args) and may return a RunResult; when it
    returns None the default answer is used: the loudnorm block for a
    measurement pass, an empty success otherwise.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str, Sequence[str]], Optional[RunResult]]] = None,
        measurement_stderr: str = LOUDNORM_STDERR,
    ):
        self.responder = responder
        self.measurement_stderr = measurement_stderr
        self.calls: List[Tuple[str, List[str], Optional[int]]] = []

    def run(self, program: str, args: Sequence[str], resource_limit: Optional[int] = None) -> RunResult:
        self.calls.append((program, list(args), resource_limit))
        if self.responder is not None:
            answer = self.responder(program, args)
            if answer is not None:
                return answer
        if any("print_format=json" in arg for arg in args):
            return RunResult(stdout="", stderr=self.measurement_stderr, returncode=0)
        return RunResult(stdout="", stderr="", returncode=0)

    @property
    def arg_lists(self) -> List[List[str]]:
        return [args for _, args, _ in self.calls]


def is_pass(args: Sequence[str], number: int) -> bool:
    return "-pass" in args and args[list(args).index("-pass") + 1] == str(number)


def is_measurement(args: Sequence[str]) -> bool:
    return any("print_format=json" in arg for arg in args)


def is_concat(args: Sequence[str]) -> bool:
    return "concat" in args


def is_strip(args: Sequence[str]) -> bool:
    return "-map_metadata" in args


@pytest.fixture
def settings() -> EncodeSettings:
    return EncodeSettings()


@pytest.fixture
def make_operation() -> Callable[..., Operation]:
    def _make(**overrides) -> Operation:
        fields = dict(
            inputs=(Path("clip.mov"),),
            title="Summer Holiday",
            scale=(1280, 720),
            video_fps=(30, 1),
            loudnorm=True,
            video_quality=Quality.HIGH,
            video_codec=VideoCodec.VP9,
            audio_quality=Quality.MEDIUM,
            audio_codec=AudioCodec.OPUS,
            strip_metadata=True,
            container=ContainerKind.WEBM,
            cpulimit=400,
            transpose=None,
        )
        fields.update(overrides)
        return Operation(**fields)

    return _make


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
