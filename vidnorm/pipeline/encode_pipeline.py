"""
The encode pipeline: a strictly sequential state machine.

    INIT -> [CONCATENATING] -> [MEASURING] -> ENCODING_PASS1 -> ENCODING_PASS2
         -> [STRIPPING_METADATA] -> DONE

Bracketed stages are entered only when the Operation asks for them:
concatenation when there is more than one input, measurement when loudness
normalization is enabled, and metadata stripping when `strip_metadata` is
set. Any failing invocation moves the pipeline to FAILED and the exception
propagates to the caller. Intermediate files are left in the working
directory for inspection.

A run owns its working directory. Concurrent runs must use separate
directories, since every intermediate is named from the output title.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from ..config.common import (
    CONCAT_CONTAINER,
    CONCAT_MANIFEST_SUFFIX,
    CONCAT_OUTPUT_SUFFIX,
    ERROR_DIR_NAME,
    PASS2_OUTPUT_SUFFIX,
    PASSLOG_SUFFIX,
)
from ..config.settings import EncodeSettings
from ..domain.exceptions import ExternalProcessFailure, VidnormException, WorkspaceError
from ..domain.models import EncodeParameters, LoudnessMeasurement
from ..domain.operation import Operation
from ..services.encode_command import (
    build_concat_args,
    build_encode_args,
    build_strip_args,
    concat_manifest_text,
)
from ..services.filter_chain import build_audio_filters, build_video_filters
from ..services.logging_service import ErrorLog, SuccessLog
from ..services.loudness_analyzer import LoudnessAnalyzer
from ..services.parameter_model import audio_bitrate_for, compute_video_params
from ..utils.ffmpeg_utils import ExternalRunner, build_command_line, format_command
from ..utils.format_utils import format_bitrate, format_timedelta, formatted_size


class PipelineState(Enum):
    INIT = "init"
    CONCATENATING = "concatenating"
    MEASURING = "measuring"
    ENCODING_PASS1 = "encoding_pass1"
    ENCODING_PASS2 = "encoding_pass2"
    STRIPPING_METADATA = "stripping_metadata"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    output: Path
    parameters: Optional[EncodeParameters]
    measurement: Optional[LoudnessMeasurement]
    stage_durations: Dict[str, timedelta] = field(default_factory=dict)

    @property
    def total_time(self) -> timedelta:
        return sum(self.stage_durations.values(), timedelta(0))


class EncodePipeline:
    """
    Runs one Operation through every stage in order.

    Args:
        operation: The validated Operation to run.
        work_dir: Directory that receives every intermediate and the output.
        runner: The external process collaborator.
        settings: Targets, tables and tool paths for this run.
    """

    def __init__(
        self,
        operation: Operation,
        work_dir: Path,
        runner: ExternalRunner,
        settings: Optional[EncodeSettings] = None,
    ):
        self.operation = operation
        self.work_dir = work_dir.resolve()
        self.runner = runner
        self.settings = settings or EncodeSettings()

        self.state = PipelineState.INIT
        self.history: List[PipelineState] = [PipelineState.INIT]
        self.stage_durations: Dict[str, timedelta] = {}

        stem = operation.output_stem
        ext = operation.container.extension
        self.concat_manifest = self.work_dir / f"{stem}{CONCAT_MANIFEST_SUFFIX}"
        self.concat_output = self.work_dir / f"{stem}{CONCAT_OUTPUT_SUFFIX}{CONCAT_CONTAINER}"
        self.passlog = self.work_dir / f"{stem}{PASSLOG_SUFFIX}"
        self.pass2_output = self.work_dir / f"{stem}{PASS2_OUTPUT_SUFFIX}{ext}"
        self.final_output = self.work_dir / operation.output_filename

        self.parameters: Optional[EncodeParameters] = compute_video_params(
            operation.video_codec,
            operation.video_quality,
            operation.width,
            operation.height,
            operation.video_fps[0],
            operation.video_fps[1],
            self.settings,
        )

        # Set as the stages run.
        self.source: Path = operation.inputs[0]
        self.measurement: Optional[LoudnessMeasurement] = None
        self.result: Optional[PipelineResult] = None

    # --- State machine -----------------------------------------------------------------

    def _transition(self, state: PipelineState):
        logger.info(f"[{self.operation.title}] {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _run_stage(self, state: PipelineState, stage: Callable[[], None]):
        self._transition(state)
        started = datetime.now()
        try:
            stage()
        except VidnormException as failure:
            self._fail(state, failure)
            raise
        except OSError as error:
            failure = WorkspaceError(state.value, error)
            self._fail(state, failure)
            raise failure from error
        finally:
            self.stage_durations[state.value] = datetime.now() - started

    def _fail(self, state: PipelineState, failure: VidnormException):
        self._transition(PipelineState.FAILED)
        error_log = ErrorLog(self.work_dir / ERROR_DIR_NAME)
        if isinstance(failure, ExternalProcessFailure):
            logger.error(
                f"Stage '{failure.stage}' failed (rc={failure.returncode}) for '{self.operation.title}'. "
                f"Diagnostic output follows.\n{failure.diagnostic_text}"
            )
            error_log.write(
                f"Title: {self.operation.title}",
                f"Stage: {failure.stage}",
                f"Return code: {failure.returncode}",
                f"Command: {format_command(failure.command) if failure.command else 'N/A'}",
                f"Diagnostic output:\n{failure.diagnostic_text}",
            )
        else:
            logger.error(f"Stage '{state.value}' failed for '{self.operation.title}': {failure}")
            error_log.write(
                f"Title: {self.operation.title}",
                f"Stage: {state.value}",
                f"Error: {failure}",
            )

    def planned_stages(self) -> List[PipelineState]:
        """The stages `run()` will enter for this Operation, in order."""
        stages = []
        if self.operation.needs_concat:
            stages.append(PipelineState.CONCATENATING)
        if self.operation.loudnorm:
            stages.append(PipelineState.MEASURING)
        stages += [PipelineState.ENCODING_PASS1, PipelineState.ENCODING_PASS2]
        if self.operation.strip_metadata:
            stages.append(PipelineState.STRIPPING_METADATA)
        return stages

    def describe(self):
        """Logs the plan for this run without executing anything."""
        self._log_plan()
        logger.info(f"Stages: {', '.join(state.value for state in self.planned_stages())}")
        video_filters = build_video_filters(self.operation)
        logger.info(f"Video filters: {','.join(video_filters) if video_filters else '(none)'}")
        if self.operation.loudnorm:
            logger.info("Audio filters: loudnorm with values from the measurement pass")
        else:
            logger.info("Audio filters: (none)")

    def run(self) -> PipelineResult:
        """
        Executes every required stage.

        Returns:
            The PipelineResult once the final output exists.

        Raises:
            ExternalProcessFailure: from the first invocation that fails.
            MeasurementParseError: if the measurement output is incomplete.
            WorkspaceError: if an intermediate cannot be written.
        """
        if self.state is not PipelineState.INIT:
            raise RuntimeError(f"Pipeline already ran (state: {self.state.value})")

        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            failure = WorkspaceError(PipelineState.INIT.value, error)
            self._fail(PipelineState.INIT, failure)
            raise failure from error
        self._log_plan()

        stage_methods = {
            PipelineState.CONCATENATING: self._concatenate,
            PipelineState.MEASURING: self._measure,
            PipelineState.ENCODING_PASS1: self._encode_pass1,
            PipelineState.ENCODING_PASS2: self._encode_pass2,
            PipelineState.STRIPPING_METADATA: self._strip_metadata,
        }
        for state in self.planned_stages():
            self._run_stage(state, stage_methods[state])

        self._transition(PipelineState.DONE)
        self.result = PipelineResult(
            output=self.final_output,
            parameters=self.parameters,
            measurement=self.measurement,
            stage_durations=dict(self.stage_durations),
        )
        self._write_success_log(self.result)
        return self.result

    # --- Stages --------------------------------------------------------------------------

    def _invoke(self, stage: str, args: Sequence[str]):
        limit = self.operation.cpulimit
        result = self.runner.run(self.settings.ffmpeg_path, args, limit)
        if not result.ok:
            raise ExternalProcessFailure(
                stage,
                result.stderr,
                result.returncode,
                build_command_line(self.settings.ffmpeg_path, args, limit, self.settings.cpulimit_path),
            )

    def _concatenate(self):
        inputs = [path.resolve() for path in self.operation.inputs]
        self.concat_manifest.write_text(concat_manifest_text(inputs), encoding="utf-8")
        logger.info(f"Concatenating {len(inputs)} inputs into '{self.concat_output.name}'")
        self._invoke(
            PipelineState.CONCATENATING.value,
            build_concat_args(self.concat_manifest, self.concat_output),
        )
        self.source = self.concat_output

    def _measure(self):
        analyzer = LoudnessAnalyzer(self.runner, self.settings)
        self.measurement = analyzer.analyze(self.source, self.operation.cpulimit)

    def _encode_args(self, pass_number: int, speed: int, output: Optional[Path]) -> List[str]:
        op = self.operation
        return build_encode_args(
            source=self.source,
            pass_number=pass_number,
            passlog=self.passlog,
            output=output,
            video_codec=op.video_codec,
            video_params=self.parameters,
            video_filters=build_video_filters(op),
            speed=speed,
            audio_codec=op.audio_codec,
            audio_quality=op.audio_quality,
            audio_filters=build_audio_filters(op, self.measurement, self.settings),
            settings=self.settings,
        )

    def _encode_pass1(self):
        args = self._encode_args(1, self.settings.pass1_speed, None)
        self._invoke(PipelineState.ENCODING_PASS1.value, args)

    def _encode_pass2(self):
        output = self.pass2_output if self.operation.strip_metadata else self.final_output
        args = self._encode_args(2, self.settings.pass2_speed(self.operation.width), output)
        self._invoke(PipelineState.ENCODING_PASS2.value, args)

    def _strip_metadata(self):
        self._invoke(
            PipelineState.STRIPPING_METADATA.value,
            build_strip_args(self.pass2_output, self.operation.title, self.final_output),
        )

    # --- Reporting -----------------------------------------------------------------------

    def _log_plan(self):
        op = self.operation
        logger.info(
            f"Encoding '{op.title}' -> '{self.final_output.name}' "
            f"({len(op.inputs)} input(s), {op.width}x{op.height} @ {op.video_fps[0]}/{op.video_fps[1]} fps)"
        )
        if self.parameters is None:
            logger.info("Video stream is copied; no encode parameters computed.")
        else:
            logger.info(
                f"Video {op.video_codec.name} {op.video_quality.name}: "
                f"uncompressed {format_bitrate(int(self.parameters.uncompressed_bitrate))}, "
                f"compression factor {float(self.parameters.compression_factor):.2f}, "
                f"bitrate {format_bitrate(self.parameters.bitrate)} "
                f"(min {format_bitrate(self.parameters.minrate)}, max {format_bitrate(self.parameters.maxrate)}), "
                f"tile columns {self.parameters.tile_columns}"
            )
        audio_kbps = audio_bitrate_for(op.audio_codec, op.audio_quality, self.settings)
        if audio_kbps is None:
            logger.info("Audio stream is copied.")
        else:
            logger.info(f"Audio {op.audio_codec.name} {op.audio_quality.name}: {audio_kbps} kbps")

    def _write_success_log(self, result: PipelineResult):
        output_size = result.output.stat().st_size if result.output.exists() else 0
        logger.success(
            f"Finished '{self.operation.title}': {result.output} "
            f"({formatted_size(output_size)}, {format_timedelta(result.total_time)})"
        )
        SuccessLog(self.work_dir).write(
            {
                "title": self.operation.title,
                "inputs": [str(path) for path in self.operation.inputs],
                "output": str(result.output),
                "output_size": formatted_size(output_size),
                "video_codec": self.operation.video_codec.name,
                "video_quality": self.operation.video_quality.name,
                "audio_codec": self.operation.audio_codec.name,
                "audio_quality": self.operation.audio_quality.name,
                "parameters": result.parameters.as_dict() if result.parameters else None,
                "loudness": result.measurement.as_dict() if result.measurement else None,
                "stages": [state.value for state in self.history],
                "stage_durations": {
                    name: format_timedelta(duration) for name, duration in result.stage_durations.items()
                },
                "total_time": format_timedelta(result.total_time),
            }
        )
