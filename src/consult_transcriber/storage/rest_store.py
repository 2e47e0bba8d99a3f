"""
Record Store поверх Supabase PostgREST (/rest/v1/consultations).

Используется, когда консультации живут в Supabase, а не в собственной БД.
Ключ — service-role (обходит RLS), поэтому ownership проверяется в Guard.
"""

from __future__ import annotations

from typing import Any

import requests

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import RecordStoreError
from consult_transcriber.common.logging import get_project_logger
from consult_transcriber.common.time import utc_now
from consult_transcriber.common.utils import text_head
from consult_transcriber.domain.consultation import ConsultationRecord, SummaryVariants

log = get_project_logger()

_COLUMNS = (
    "id,doctor_id,patient_id,audio_url,transcript,summary_simple,summary_detailed,"
    "summary_technical,published_for_patient,consultation_date,updated_at"
)

# ответы PostgREST на фильтр по id, означающие "строки нет"
_NO_ROW_STATUSES = frozenset({400, 404, 406})


class SupabaseRecordStore:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout_s: int | None = None,
        session: requests.Session | None = None,
    ) -> None:
        s = get_settings()
        base = (base_url or s.supabase_url or "").rstrip("/")
        key = service_key or s.supabase_service_role_key or ""
        if not base or not key:
            raise RecordStoreError("SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY не заданы")

        self.url = f"{base}/rest/v1/consultations"
        self.timeout_s = int(timeout_s or s.record_store_timeout_sec or 10)
        self.http = session or requests.Session()
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, *, params: dict[str, str], **kwargs: Any) -> requests.Response:
        try:
            resp = self.http.request(
                method,
                self.url,
                params=params,
                headers={**self.headers, **kwargs.pop("headers", {})},
                timeout=self.timeout_s,
                **kwargs,
            )
        except requests.RequestException as e:
            raise RecordStoreError("Ошибка HTTP при обращении к PostgREST", {"err": str(e)}) from e

        if resp.status_code >= 300:
            raise RecordStoreError(
                "PostgREST вернул ошибку",
                {"status": resp.status_code, "text_head": text_head(resp.text, 300)},
            )
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise RecordStoreError(
                "PostgREST вернул невалидный JSON",
                {"status": resp.status_code, "text_head": text_head(resp.text, 300)},
            ) from e

    def _select(self, params: dict[str, str]) -> list[dict[str, Any]]:
        data = self._json(self._request("GET", params=params))
        if not isinstance(data, list):
            raise RecordStoreError("PostgREST вернул не список", {"type": type(data).__name__})
        return data

    def _find(self, consultation_id: str, columns: str) -> dict[str, Any] | None:
        try:
            rows = self._select({"select": columns, "id": f"eq.{consultation_id}"})
        except RecordStoreError as e:
            # id не того типа (22P02 для uuid-колонки): такой строки быть не может
            if (e.details or {}).get("status") in _NO_ROW_STATUSES:
                log.info(
                    "consultation_id_rejected",
                    extra={"payload": {"consultation_id": consultation_id, **(e.details or {})}},
                )
                return None
            raise
        return rows[0] if rows else None

    def get_doctor_id(self, consultation_id: str) -> str | None:
        row = self._find(consultation_id, "doctor_id")
        if row is None:
            return None
        return str(row.get("doctor_id") or "") or None

    def get(self, consultation_id: str) -> ConsultationRecord | None:
        row = self._find(consultation_id, _COLUMNS)
        return ConsultationRecord.from_row(row) if row is not None else None

    def _patch(self, consultation_id: str, values: dict[str, Any]) -> None:
        resp = self._request(
            "PATCH",
            params={"id": f"eq.{consultation_id}", "select": "id"},
            json=values,
            headers={"Prefer": "return=representation"},
        )
        if not self._json(resp):
            raise RecordStoreError("Консультация не найдена", {"consultation_id": consultation_id})

    def save_results(
        self, consultation_id: str, *, transcript: str, summaries: SummaryVariants
    ) -> None:
        self._patch(
            consultation_id,
            {
                "transcript": transcript,
                "summary_simple": summaries.simple,
                "summary_detailed": summaries.detailed,
                "summary_technical": summaries.technical,
                "updated_at": utc_now().isoformat(),
            },
        )

    def set_published(self, consultation_id: str, published: bool) -> None:
        self._patch(consultation_id, {"published_for_patient": published})

    def list_published_for_patient(self, patient_id: str) -> list[ConsultationRecord]:
        rows = self._select(
            {
                "select": _COLUMNS,
                "patient_id": f"eq.{patient_id}",
                "published_for_patient": "eq.true",
                "order": "consultation_date.desc",
            }
        )
        return [ConsultationRecord.from_row(r) for r in rows]
