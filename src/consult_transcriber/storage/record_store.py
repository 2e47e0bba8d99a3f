"""
Record Store: единственный путь записи пайплайна.

Назначение:
- контракт хранилища консультаций (RecordStore)
- SQL-реализация поверх SQLAlchemy (repositories)
- фабрика по RECORD_STORE (sql|supabase)

Все ошибки нижнего уровня превращаются в RecordStoreError.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import RecordStoreError
from consult_transcriber.domain.consultation import ConsultationRecord, SummaryVariants

from .db import db_session
from .repositories import ConsultationRepository


class RecordStore(Protocol):
    def get_doctor_id(self, consultation_id: str) -> str | None: ...

    def get(self, consultation_id: str) -> ConsultationRecord | None: ...

    def save_results(
        self, consultation_id: str, *, transcript: str, summaries: SummaryVariants
    ) -> None: ...

    def set_published(self, consultation_id: str, published: bool) -> None: ...

    def list_published_for_patient(self, patient_id: str) -> list[ConsultationRecord]: ...


class SqlRecordStore:
    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory = session_factory

    def get_doctor_id(self, consultation_id: str) -> str | None:
        try:
            with db_session(self.session_factory) as session:
                return ConsultationRepository(session).get_doctor_id(consultation_id)
        except SQLAlchemyError as e:
            raise RecordStoreError("Ошибка чтения консультации", {"err": str(e)[:200]}) from e

    def get(self, consultation_id: str) -> ConsultationRecord | None:
        try:
            with db_session(self.session_factory) as session:
                row = ConsultationRepository(session).get(consultation_id)
                return ConsultationRecord.from_row(row.as_row()) if row else None
        except SQLAlchemyError as e:
            raise RecordStoreError("Ошибка чтения консультации", {"err": str(e)[:200]}) from e

    def save_results(
        self, consultation_id: str, *, transcript: str, summaries: SummaryVariants
    ) -> None:
        try:
            with db_session(self.session_factory) as session:
                updated = ConsultationRepository(session).update_results(
                    consultation_id,
                    transcript=transcript,
                    summary_simple=summaries.simple,
                    summary_detailed=summaries.detailed,
                    summary_technical=summaries.technical,
                )
        except SQLAlchemyError as e:
            raise RecordStoreError("Ошибка записи результатов", {"err": str(e)[:200]}) from e
        if updated == 0:
            raise RecordStoreError("Консультация исчезла до записи", {"consultation_id": consultation_id})

    def set_published(self, consultation_id: str, published: bool) -> None:
        try:
            with db_session(self.session_factory) as session:
                updated = ConsultationRepository(session).set_published(consultation_id, published)
        except SQLAlchemyError as e:
            raise RecordStoreError("Ошибка записи флага публикации", {"err": str(e)[:200]}) from e
        if updated == 0:
            raise RecordStoreError("Консультация не найдена", {"consultation_id": consultation_id})

    def list_published_for_patient(self, patient_id: str) -> list[ConsultationRecord]:
        try:
            with db_session(self.session_factory) as session:
                rows = ConsultationRepository(session).list_published_for_patient(patient_id)
                return [ConsultationRecord.from_row(r.as_row()) for r in rows]
        except SQLAlchemyError as e:
            raise RecordStoreError("Ошибка чтения консультаций", {"err": str(e)[:200]}) from e


def build_record_store() -> RecordStore:
    kind = (get_settings().record_store or "").strip().lower()
    if kind == "sql":
        return SqlRecordStore()
    if kind == "supabase":
        from .rest_store import SupabaseRecordStore

        return SupabaseRecordStore()
    raise RuntimeError(f"Unsupported RECORD_STORE={kind}")
