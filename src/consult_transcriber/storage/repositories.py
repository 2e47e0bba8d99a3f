"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только CRUD и запросы
"""

from __future__ import annotations

from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from consult_transcriber.common.time import utc_now_naive

from .models import Consultation


# =============================================================================
# CONSULTATION REPOSITORY
# =============================================================================
class ConsultationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, consultation_id: str) -> Consultation | None:
        return self.session.get(Consultation, consultation_id)

    def get_doctor_id(self, consultation_id: str) -> str | None:
        return self.session.execute(
            select(Consultation.doctor_id).where(Consultation.id == consultation_id)
        ).scalar_one_or_none()

    def add(self, consultation: Consultation) -> None:
        self.session.add(consultation)

    def update_results(
        self,
        consultation_id: str,
        *,
        transcript: str,
        summary_simple: str | None,
        summary_detailed: str | None,
        summary_technical: str | None,
    ) -> int:
        """
        Один UPDATE на транскрипт и все слоты саммари.
        Возвращает число затронутых строк.
        """
        result = self.session.execute(
            update(Consultation)
            .where(Consultation.id == consultation_id)
            .values(
                transcript=transcript,
                summary_simple=summary_simple,
                summary_detailed=summary_detailed,
                summary_technical=summary_technical,
                updated_at=utc_now_naive(),
            )
        )
        return int(result.rowcount or 0)

    def set_published(self, consultation_id: str, published: bool) -> int:
        result = self.session.execute(
            update(Consultation)
            .where(Consultation.id == consultation_id)
            .values(published_for_patient=published, updated_at=utc_now_naive())
        )
        return int(result.rowcount or 0)

    def list_published_for_patient(self, patient_id: str, *, limit: int = 50) -> list[Consultation]:
        return list(
            self.session.execute(
                select(Consultation)
                .where(
                    Consultation.patient_id == patient_id,
                    Consultation.published_for_patient.is_(True),
                )
                .order_by(desc(Consultation.consultation_date))
                .limit(max(1, min(limit, 500)))
            ).scalars()
        )
