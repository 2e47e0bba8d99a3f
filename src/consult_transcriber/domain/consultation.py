"""
Доменная модель консультации.

Назначение:
- типизированная запись вместо "сырых" строк БД
- валидация на границе Record Store (from_row)
- варианты саммари и результат пайплайна
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .enums import SummaryMode, SummaryStyle

STYLE_SLOTS: tuple[SummaryStyle, ...] = (
    SummaryStyle.simple,
    SummaryStyle.detailed,
    SummaryStyle.technical,
)


@dataclass(frozen=True)
class SummaryVariants:
    """
    Слоты саммари в записи консультации.

    В режиме soap заметка живёт в слоте simple, detailed/technical пустые.
    """

    simple: str | None = None
    detailed: str | None = None
    technical: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {
            SummaryStyle.simple.value: self.simple,
            SummaryStyle.detailed.value: self.detailed,
            SummaryStyle.technical.value: self.technical,
        }

    @classmethod
    def from_generated(cls, mode: SummaryMode, texts: Mapping[SummaryStyle, str]) -> SummaryVariants:
        if mode == SummaryMode.soap:
            return cls(simple=texts[SummaryStyle.soap])
        return cls(
            simple=texts[SummaryStyle.simple],
            detailed=texts[SummaryStyle.detailed],
            technical=texts[SummaryStyle.technical],
        )


@dataclass(frozen=True)
class ConsultationRecord:
    id: str
    doctor_id: str
    patient_id: str
    audio_object_path: str | None = None
    transcript: str | None = None
    summary_variants: SummaryVariants = field(default_factory=SummaryVariants)
    published_for_patient: bool = False
    consultation_date: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_processed(self) -> bool:
        return self.transcript is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ConsultationRecord:
        """
        Собирает запись из строки хранилища (ORM/PostgREST).
        Обязательные поля: id, doctor_id, patient_id.
        """
        missing = [k for k in ("id", "doctor_id", "patient_id") if not row.get(k)]
        if missing:
            raise ValueError(f"consultation row missing fields: {', '.join(missing)}")

        return cls(
            id=str(row["id"]),
            doctor_id=str(row["doctor_id"]),
            patient_id=str(row["patient_id"]),
            audio_object_path=_opt_str(row.get("audio_url") or row.get("audio_object_path")),
            transcript=_opt_str(row.get("transcript")),
            summary_variants=SummaryVariants(
                simple=_opt_str(row.get("summary_simple")),
                detailed=_opt_str(row.get("summary_detailed")),
                technical=_opt_str(row.get("summary_technical")),
            ),
            published_for_patient=bool(row.get("published_for_patient") or False),
            consultation_date=_opt_dt(row.get("consultation_date")),
            updated_at=_opt_dt(row.get("updated_at")),
        )


@dataclass(frozen=True)
class PipelineResult:
    consultation_id: str
    doctor_id: str
    mode: SummaryMode
    transcript: str
    summaries: SummaryVariants


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _opt_dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    # PostgREST отдаёт ISO-строки, иногда с суффиксом Z
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
