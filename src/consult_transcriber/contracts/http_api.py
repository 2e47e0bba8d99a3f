"""
HTTP API контракты (Pydantic-модели).

Назначение:
- валидация входа/выхода на уровне FastAPI
- стабильные структуры для клиентов (camelCase во входе, как у edge-функции)

Поля запроса опциональны намеренно: отсутствие поля — это missing_field
из пайплайна (после проверки токена), а не 422 от FastAPI.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from consult_transcriber.domain.consultation import ConsultationRecord, PipelineResult
from consult_transcriber.domain.enums import SummaryMode

from .versions import HTTP_API_VERSION


# =============================================================================
# ЗАПРОСЫ
# =============================================================================
class TranscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    consultation_id: str | None = Field(default=None, alias="consultationId")
    audio_path: str | None = Field(default=None, alias="audioPath")


class PublishRequest(BaseModel):
    published: bool = True


# =============================================================================
# ОТВЕТЫ
# =============================================================================
class SummariesPayload(BaseModel):
    simple: str
    detailed: str | None = None
    technical: str | None = None


class TranscribeResponse(BaseModel):
    success: bool = True
    transcript: str
    summaries: SummariesPayload | None = None
    soap_summary: str | None = None

    @classmethod
    def from_result(cls, result: PipelineResult) -> TranscribeResponse:
        if result.mode == SummaryMode.soap:
            return cls(transcript=result.transcript, soap_summary=result.summaries.simple)
        return cls(
            transcript=result.transcript,
            summaries=SummariesPayload(
                simple=result.summaries.simple or "",
                detailed=result.summaries.detailed,
                technical=result.summaries.technical,
            ),
        )


class ErrorResponse(BaseModel):
    error: str
    code: str
    stage: str | None = None


class ConsultationView(BaseModel):
    api_version: str = Field(default=HTTP_API_VERSION)
    id: str
    doctor_id: str
    consultation_date: datetime | None = None
    transcript: str | None = None
    summary_simple: str | None = None
    summary_detailed: str | None = None
    summary_technical: str | None = None

    @classmethod
    def from_record(cls, record: ConsultationRecord) -> ConsultationView:
        return cls(
            id=record.id,
            doctor_id=record.doctor_id,
            consultation_date=record.consultation_date,
            transcript=record.transcript,
            summary_simple=record.summary_variants.simple,
            summary_detailed=record.summary_variants.detailed,
            summary_technical=record.summary_variants.technical,
        )


class ConsultationListResponse(BaseModel):
    consultations: list[ConsultationView]


class PublishResponse(BaseModel):
    consultation_id: str
    published: bool
