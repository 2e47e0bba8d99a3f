import pytest

from consult_transcriber.common.errors import ErrCode
from consult_transcriber.domain.enums import PipelineStage
from consult_transcriber.domain.state_machine import StageTracker, failure_code, next_stage_after


def test_next_stage_goes_forward():
    assert next_stage_after(PipelineStage.authorizing) == PipelineStage.fetching
    assert next_stage_after(PipelineStage.persisting) == PipelineStage.done
    assert next_stage_after(PipelineStage.done) is None


def test_failure_codes_per_stage():
    assert failure_code(PipelineStage.fetching) == ErrCode.FETCH_FAILED
    assert failure_code(PipelineStage.transcribing) == ErrCode.TRANSCRIPTION_FAILED
    assert failure_code(PipelineStage.summarizing) == ErrCode.SUMMARIZATION_FAILED
    assert failure_code(PipelineStage.persisting) == ErrCode.PERSIST_FAILED
    assert failure_code(PipelineStage.authorizing) == ErrCode.UNKNOWN


def test_tracker_rejects_skips_and_backward_moves():
    t = StageTracker()
    t.advance(PipelineStage.fetching)

    with pytest.raises(RuntimeError):
        t.advance(PipelineStage.summarizing)
    with pytest.raises(RuntimeError):
        t.advance(PipelineStage.authorizing)

    assert t.stage == PipelineStage.fetching
