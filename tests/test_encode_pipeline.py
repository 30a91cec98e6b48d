"""Tests for the encode pipeline state machine."""

from pathlib import Path

import pytest
import yaml

from tests.conftest import FakeRunner, is_concat, is_measurement, is_pass, is_strip
from vidnorm.domain.enums import AudioCodec, ContainerKind, VideoCodec
from vidnorm.domain.exceptions import ExternalProcessFailure, MeasurementParseError, WorkspaceError
from vidnorm.pipeline.encode_pipeline import EncodePipeline, PipelineState
from vidnorm.utils.ffmpeg_utils import RunResult


def _stage_of(args):
    if is_concat(args):
        return "concat"
    if is_measurement(args):
        return "measure"
    if is_pass(args, 1) or "-an" in args:
        return "pass1"
    if is_strip(args):
        return "strip"
    return "pass2"


class TestStageOrder:
    def test_single_input_full_run(self, tmp_path, make_operation, fake_runner, settings):
        pipeline = EncodePipeline(make_operation(), tmp_path, fake_runner, settings)
        result = pipeline.run()

        assert [_stage_of(args) for args in fake_runner.arg_lists] == ["measure", "pass1", "pass2", "strip"]
        assert pipeline.history == [
            PipelineState.INIT,
            PipelineState.MEASURING,
            PipelineState.ENCODING_PASS1,
            PipelineState.ENCODING_PASS2,
            PipelineState.STRIPPING_METADATA,
            PipelineState.DONE,
        ]
        assert pipeline.state is PipelineState.DONE
        assert result.output == tmp_path.resolve() / "Summer_Holiday.webm"
        assert result.measurement.input_i == "-23.1"
        assert result.parameters.bitrate == 1_036_800

    def test_multiple_inputs_are_concatenated_first(self, tmp_path, make_operation, fake_runner, settings):
        op = make_operation(inputs=(tmp_path / "b.mov", tmp_path / "a.mov"))
        pipeline = EncodePipeline(op, tmp_path, fake_runner, settings)
        pipeline.run()

        stages = [_stage_of(args) for args in fake_runner.arg_lists]
        assert stages == ["concat", "measure", "pass1", "pass2", "strip"]

        manifest = pipeline.concat_manifest.read_text(encoding="utf-8")
        assert manifest.splitlines() == [
            f"file '{(tmp_path / 'b.mov').resolve()}'",
            f"file '{(tmp_path / 'a.mov').resolve()}'",
        ]

        concat_output = str(pipeline.concat_output)
        assert fake_runner.arg_lists[0][-1] == concat_output
        for args in fake_runner.arg_lists[1:4]:
            assert args[args.index("-i") + 1] == concat_output

    @pytest.mark.parametrize("container", list(ContainerKind))
    def test_concat_intermediate_is_matroska_for_any_container(
        self, tmp_path, make_operation, fake_runner, settings, container
    ):
        op = make_operation(inputs=(Path("a.mov"), Path("b.mov")), container=container)
        pipeline = EncodePipeline(op, tmp_path, fake_runner, settings)
        pipeline.run()

        assert pipeline.concat_output.name == "Summer_Holiday.concat.mkv"
        assert fake_runner.arg_lists[0][-1] == str(pipeline.concat_output)
        assert pipeline.final_output.suffix == container.extension

    def test_all_invocations_are_throttled(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(cpulimit=150), tmp_path, fake_runner, settings).run()
        assert {limit for _, _, limit in fake_runner.calls} == {150}
        assert {program for program, _, _ in fake_runner.calls} == {"ffmpeg"}

    def test_planned_stages_match_run(self, tmp_path, make_operation, fake_runner, settings):
        op = make_operation(inputs=(Path("a.mov"), Path("b.mov")), loudnorm=False, strip_metadata=False)
        pipeline = EncodePipeline(op, tmp_path, fake_runner, settings)
        planned = pipeline.planned_stages()
        pipeline.run()
        assert pipeline.history[1:-1] == planned


class TestLoudnessNormalization:
    def test_disabled_never_measures_and_has_no_audio_filters(self, tmp_path, make_operation, fake_runner, settings):
        pipeline = EncodePipeline(make_operation(loudnorm=False), tmp_path, fake_runner, settings)
        result = pipeline.run()

        assert not any(is_measurement(args) for args in fake_runner.arg_lists)
        assert PipelineState.MEASURING not in pipeline.history
        assert result.measurement is None
        for args in fake_runner.arg_lists:
            assert "-af" not in args

    def test_measurement_is_applied_in_pass2_only(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(), tmp_path, fake_runner, settings).run()
        pass1 = next(args for args in fake_runner.arg_lists if is_pass(args, 1))
        pass2 = next(args for args in fake_runner.arg_lists if is_pass(args, 2))

        assert "-af" not in pass1
        audio_filter = pass2[pass2.index("-af") + 1]
        assert "measured_I=-23.1" in audio_filter
        assert "measured_LRA=7.2" in audio_filter
        assert "measured_TP=-1.3" in audio_filter
        assert "measured_thresh=-33.5" in audio_filter
        assert "offset=0.4" in audio_filter
        assert "linear=true" in audio_filter

    def test_measurement_runs_once(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(), tmp_path, fake_runner, settings).run()
        assert sum(is_measurement(args) for args in fake_runner.arg_lists) == 1


class TestTwoPass:
    def test_pass1_precedes_pass2_with_same_stats_identity(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(), tmp_path, fake_runner, settings).run()
        stages = [_stage_of(args) for args in fake_runner.arg_lists]
        assert stages.index("pass1") < stages.index("pass2")

        pass1 = fake_runner.arg_lists[stages.index("pass1")]
        pass2 = fake_runner.arg_lists[stages.index("pass2")]
        for option in ("-i", "-vf", "-b:v", "-minrate", "-maxrate", "-tile-columns", "-crf", "-threads", "-passlogfile"):
            assert pass1[pass1.index(option) + 1] == pass2[pass2.index(option) + 1]

    def test_pass_speeds(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(scale=(854, 480)), tmp_path, fake_runner, settings).run()
        pass1 = next(args for args in fake_runner.arg_lists if is_pass(args, 1))
        pass2 = next(args for args in fake_runner.arg_lists if is_pass(args, 2))
        assert pass1[pass1.index("-speed") + 1] == "4"
        assert pass2[pass2.index("-speed") + 1] == "1"

    def test_av1_uses_cpu_used(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(video_codec=VideoCodec.AV1), tmp_path, fake_runner, settings).run()
        pass2 = next(args for args in fake_runner.arg_lists if is_pass(args, 2))
        assert pass2[pass2.index("-c:v") + 1] == "libaom-av1"
        assert pass2[pass2.index("-cpu-used") + 1] == "2"

    def test_copy_streams_have_no_filters(self, tmp_path, make_operation, fake_runner, settings):
        op = make_operation(video_codec=VideoCodec.COPY, audio_codec=AudioCodec.COPY, transpose=1)
        pipeline = EncodePipeline(op, tmp_path, fake_runner, settings)
        result = pipeline.run()

        assert result.parameters is None
        encode_args = [args for args in fake_runner.arg_lists if _stage_of(args) in ("pass1", "pass2")]
        assert len(encode_args) == 2
        for args in encode_args:
            assert "-vf" not in args
            assert "-af" not in args


class TestMetadataStripping:
    def test_strip_reads_pass2_output_and_sets_title(self, tmp_path, make_operation, fake_runner, settings):
        pipeline = EncodePipeline(make_operation(title="Summer Holiday"), tmp_path, fake_runner, settings)
        pipeline.run()
        pass2 = next(args for args in fake_runner.arg_lists if is_pass(args, 2))
        strip = fake_runner.arg_lists[-1]

        assert pass2[-1] == str(pipeline.pass2_output)
        assert strip[strip.index("-i") + 1] == str(pipeline.pass2_output)
        assert strip[strip.index("-metadata") + 1] == "title=Summer Holiday"
        assert strip[-1] == str(pipeline.final_output)

    def test_without_stripping_pass2_writes_final_output(self, tmp_path, make_operation, fake_runner, settings):
        pipeline = EncodePipeline(make_operation(strip_metadata=False), tmp_path, fake_runner, settings)
        pipeline.run()
        assert not any(is_strip(args) for args in fake_runner.arg_lists)
        assert fake_runner.arg_lists[-1][-1] == str(pipeline.final_output)
        assert pipeline.history[-2] is PipelineState.ENCODING_PASS2


class TestFailures:
    @pytest.mark.parametrize("failing_stage", ["concat", "measure", "pass1", "pass2", "strip"])
    def test_failure_stops_the_pipeline(self, tmp_path, make_operation, settings, failing_stage):
        def responder(program, args):
            if _stage_of(args) == failing_stage:
                return RunResult("", f"{failing_stage} exploded", 1)
            return None

        runner = FakeRunner(responder)
        op = make_operation(inputs=(Path("a.mov"), Path("b.mov")))
        pipeline = EncodePipeline(op, tmp_path, runner, settings)

        with pytest.raises(ExternalProcessFailure) as exc_info:
            pipeline.run()

        assert exc_info.value.diagnostic_text == f"{failing_stage} exploded"
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.history[-1] is PipelineState.FAILED
        assert _stage_of(runner.arg_lists[-1]) == failing_stage
        assert len([args for args in runner.arg_lists if _stage_of(args) == failing_stage]) == 1

        error_text = (tmp_path / "encode_error" / "error.txt").read_text(encoding="utf-8")
        assert f"{failing_stage} exploded" in error_text
        assert not (tmp_path / "success_log.yaml").exists()

    def test_failure_names_the_stage(self, tmp_path, make_operation, settings):
        runner = FakeRunner(lambda program, args: RunResult("", "boom", 2) if is_pass(args, 2) else None)
        with pytest.raises(ExternalProcessFailure) as exc_info:
            EncodePipeline(make_operation(), tmp_path, runner, settings).run()
        assert exc_info.value.stage == "encoding_pass2"
        assert exc_info.value.returncode == 2
        assert exc_info.value.command[:3] == ["cpulimit", "-l", "400"]

    def test_unparseable_measurement_fails_before_encoding(self, tmp_path, make_operation, settings):
        runner = FakeRunner(measurement_stderr="no loudnorm output here")
        pipeline = EncodePipeline(make_operation(), tmp_path, runner, settings)

        with pytest.raises(MeasurementParseError) as exc_info:
            pipeline.run()

        assert exc_info.value.field == "input_i"
        assert pipeline.state is PipelineState.FAILED
        assert len(runner.calls) == 1

    def test_unwritable_manifest_fails_the_stage(self, tmp_path, make_operation, fake_runner, settings):
        op = make_operation(inputs=(Path("a.mov"), Path("b.mov")))
        pipeline = EncodePipeline(op, tmp_path, fake_runner, settings)
        pipeline.concat_manifest.mkdir()

        with pytest.raises(WorkspaceError) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "concatenating"
        assert isinstance(exc_info.value.error, OSError)
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.history[-2:] == [PipelineState.CONCATENATING, PipelineState.FAILED]
        assert fake_runner.calls == []
        error_text = (tmp_path / "encode_error" / "error.txt").read_text(encoding="utf-8")
        assert "Stage: concatenating" in error_text

    def test_unusable_work_dir_fails_before_any_stage(self, tmp_path, make_operation, fake_runner, settings):
        work_dir = tmp_path / "occupied"
        work_dir.write_text("not a directory", encoding="utf-8")
        pipeline = EncodePipeline(make_operation(), work_dir, fake_runner, settings)

        with pytest.raises(WorkspaceError) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "init"
        assert pipeline.history == [PipelineState.INIT, PipelineState.FAILED]
        assert fake_runner.calls == []

    def test_error_report_survives_unwritable_log_dir(self, tmp_path, make_operation, settings):
        runner = FakeRunner(lambda program, args: RunResult("", "boom", 1) if is_pass(args, 1) else None)
        (tmp_path / "encode_error").write_text("in the way", encoding="utf-8")

        with pytest.raises(ExternalProcessFailure):
            EncodePipeline(make_operation(), tmp_path, runner, settings).run()

    def test_pipeline_runs_only_once(self, tmp_path, make_operation, fake_runner, settings):
        pipeline = EncodePipeline(make_operation(), tmp_path, fake_runner, settings)
        pipeline.run()
        with pytest.raises(RuntimeError):
            pipeline.run()


class TestSuccessLog:
    def test_entry_is_written(self, tmp_path, make_operation, fake_runner, settings):
        EncodePipeline(make_operation(), tmp_path, fake_runner, settings).run()
        EncodePipeline(make_operation(title="Second"), tmp_path, fake_runner, settings).run()

        entries = yaml.safe_load((tmp_path / "success_log.yaml").read_text(encoding="utf-8"))
        assert [entry["index"] for entry in entries] == [1, 2]
        first = entries[0]
        assert first["title"] == "Summer Holiday"
        assert first["parameters"]["bitrate"] == 1_036_800
        assert first["loudness"]["target_offset"] == "0.4"
        assert first["stages"][0] == "init"
        assert first["stages"][-1] == "done"
