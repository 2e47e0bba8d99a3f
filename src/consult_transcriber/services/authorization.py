"""
Authorization Guard.

Порядок:
1) bearer-токен -> identity (identity provider)
2) doctor_id консультации из Record Store
3) identity == doctor_id, иначе отказ

Только чтение. Должен завершиться до любой загрузки аудио и платных API.
"""

from __future__ import annotations

from collections.abc import Callable

from consult_transcriber.common.errors import ErrCode, NotFoundError, UnauthorizedError
from consult_transcriber.common.logging import get_project_logger
from consult_transcriber.common.security import Identity, verify_token
from consult_transcriber.storage.record_store import RecordStore

log = get_project_logger()


class ConsultationGuard:
    def __init__(
        self,
        record_store: RecordStore,
        verify: Callable[[str | None], Identity] = verify_token,
    ) -> None:
        self.record_store = record_store
        self.verify = verify

    def identify(self, bearer_token: str | None) -> Identity:
        if not bearer_token:
            raise UnauthorizedError("Нет заголовка Authorization", code=ErrCode.NO_CREDENTIAL)
        return self.verify(bearer_token)

    def authorize(self, bearer_token: str | None, consultation_id: str) -> Identity:
        identity = self.identify(bearer_token)

        doctor_id = self.record_store.get_doctor_id(consultation_id)
        if doctor_id is None:
            log.warning(
                "consultation_lookup_failed",
                extra={"payload": {"consultation_id": consultation_id}},
            )
            raise NotFoundError(
                "Консультация не найдена",
                {"consultation_id": consultation_id},
                code=ErrCode.CONSULTATION_MISSING,
            )

        if doctor_id != identity.subject:
            log.warning(
                "ownership_mismatch",
                extra={
                    "payload": {
                        "consultation_id": consultation_id,
                        "subject": identity.subject,
                        "doctor_id": doctor_id,
                    }
                },
            )
            raise UnauthorizedError(
                "Консультация принадлежит другому врачу",
                {"consultation_id": consultation_id},
                code=ErrCode.OWNERSHIP_MISMATCH,
            )

        return identity
