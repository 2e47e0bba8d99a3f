"""
Сервисный слой: доступ к консультациям вне пайплайна.

- врач публикует/скрывает консультацию для пациента (только владелец)
- пациент видит только опубликованные консультации
"""

from __future__ import annotations

from consult_transcriber.common.logging import get_project_logger
from consult_transcriber.domain.consultation import ConsultationRecord
from consult_transcriber.storage.record_store import RecordStore

from .authorization import ConsultationGuard

log = get_project_logger()


def set_publication(
    *,
    guard: ConsultationGuard,
    record_store: RecordStore,
    bearer_token: str | None,
    consultation_id: str,
    published: bool,
) -> None:
    identity = guard.authorize(bearer_token, consultation_id)
    record_store.set_published(consultation_id, published)
    log.info(
        "consultation_publication_changed",
        extra={
            "payload": {
                "consultation_id": consultation_id,
                "doctor_id": identity.subject,
                "published": published,
            }
        },
    )


def list_patient_consultations(
    *,
    guard: ConsultationGuard,
    record_store: RecordStore,
    bearer_token: str | None,
) -> list[ConsultationRecord]:
    identity = guard.identify(bearer_token)
    return record_store.list_published_for_patient(identity.subject)
