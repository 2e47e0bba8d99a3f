"""
Машина состояний пайплайна транскрипции.

Назначение:
- линейный порядок стадий (один проход вперёд на вызов)
- предсказуемое сопоставление стадия -> терминальная ошибка
"""

from __future__ import annotations

from consult_transcriber.common.errors import ErrCode

from .enums import PipelineStage


# =============================================================================
# ПОРЯДОК СТАДИЙ
# =============================================================================
def _stage_order() -> list[PipelineStage]:
    return [
        PipelineStage.authorizing,
        PipelineStage.fetching,
        PipelineStage.transcribing,
        PipelineStage.summarizing,
        PipelineStage.persisting,
        PipelineStage.done,
    ]


def next_stage_after(current: PipelineStage) -> PipelineStage | None:
    """
    Возвращает следующую стадию пайплайна (None после done).
    """
    order = _stage_order()
    idx = order.index(current)
    return order[idx + 1] if idx + 1 < len(order) else None


# =============================================================================
# ТЕРМИНАЛЬНЫЕ ОШИБКИ ПО СТАДИЯМ
# =============================================================================
_FAILURE_CODES: dict[PipelineStage, str] = {
    PipelineStage.fetching: ErrCode.FETCH_FAILED,
    PipelineStage.transcribing: ErrCode.TRANSCRIPTION_FAILED,
    PipelineStage.summarizing: ErrCode.SUMMARIZATION_FAILED,
    PipelineStage.persisting: ErrCode.PERSIST_FAILED,
}


def failure_code(stage: PipelineStage) -> str:
    """
    Код терминальной ошибки стадии.
    authorizing сам по себе даёт unauthorized/not_found, поэтому здесь его нет.
    """
    return _FAILURE_CODES.get(stage, ErrCode.UNKNOWN)


class StageTracker:
    """
    Следит, что стадии идут строго вперёд.
    """

    def __init__(self) -> None:
        self.stage = PipelineStage.authorizing

    def advance(self, to: PipelineStage) -> PipelineStage:
        expected = next_stage_after(self.stage)
        if to != expected:
            raise RuntimeError(f"invalid stage transition {self.stage.value} -> {to.value}")
        self.stage = to
        return to
