"""
ORM-модели базы данных.

Назначение:
- Хранение консультаций (аудио, транскрипт, саммари)
- Видимость для пациента
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from consult_transcriber.common.time import utc_now_naive


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# CONSULTATION
# =============================================================================
class Consultation(Base):
    """
    Основная сущность — консультация врача с пациентом.
    """

    __tablename__ = "consultations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    doctor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    consultation_date: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )

    audio_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_simple: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_detailed: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_technical: Mapped[str | None] = mapped_column(Text, nullable=True)

    published_for_patient: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def as_row(self) -> dict:
        return {
            "id": self.id,
            "doctor_id": self.doctor_id,
            "patient_id": self.patient_id,
            "consultation_date": self.consultation_date,
            "updated_at": self.updated_at,
            "audio_url": self.audio_url,
            "transcript": self.transcript,
            "summary_simple": self.summary_simple,
            "summary_detailed": self.summary_detailed,
            "summary_technical": self.summary_technical,
            "published_for_patient": self.published_for_patient,
        }
