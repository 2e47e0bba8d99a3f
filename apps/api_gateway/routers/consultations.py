"""
HTTP роуты консультаций.

- POST /v1/transcribe-consultation          — пайплайн транскрипции и саммари
- POST /v1/consultations/{id}/publish       — врач публикует консультацию пациенту
- GET  /v1/patients/me/consultations        — опубликованные консультации пациента

Эндпоинты синхронные: FastAPI гоняет их в threadpool, блокирующий пайплайн не держит event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from apps.api_gateway.deps import audit_allow, bearer_token_dep, error_response
from consult_transcriber.common.errors import AppError
from consult_transcriber.common.logging import get_project_logger
from consult_transcriber.contracts.http_api import (
    ConsultationListResponse,
    ConsultationView,
    PublishRequest,
    PublishResponse,
    TranscribeRequest,
    TranscribeResponse,
)
from consult_transcriber.services.authorization import ConsultationGuard
from consult_transcriber.services.consultation_service import (
    list_patient_consultations,
    set_publication,
)
from consult_transcriber.services.pipeline_service import build_pipeline
from consult_transcriber.storage.record_store import build_record_store

log = get_project_logger()

router = APIRouter()
TOKEN_DEP = Depends(bearer_token_dep)


@router.post(
    "/transcribe-consultation",
    response_model=TranscribeResponse,
    response_model_exclude_none=True,
)
def transcribe_consultation(
    request: Request,
    req: TranscribeRequest | None = Body(default=None),
    token: str | None = TOKEN_DEP,
) -> TranscribeResponse | JSONResponse:
    req = req or TranscribeRequest()
    try:
        pipeline = build_pipeline()
        result = pipeline.run(token, req.consultation_id, req.audio_path)
    except AppError as e:
        return error_response(e, request)

    audit_allow(request=request, subject=result.doctor_id, reason="pipeline_done")
    return TranscribeResponse.from_result(result)


@router.post("/consultations/{consultation_id}/publish", response_model=PublishResponse)
def publish_consultation(
    consultation_id: str,
    request: Request,
    req: PublishRequest | None = Body(default=None),
    token: str | None = TOKEN_DEP,
) -> PublishResponse | JSONResponse:
    published = req.published if req is not None else True
    try:
        store = build_record_store()
        set_publication(
            guard=ConsultationGuard(store),
            record_store=store,
            bearer_token=token,
            consultation_id=consultation_id,
            published=published,
        )
    except AppError as e:
        return error_response(e, request)
    return PublishResponse(consultation_id=consultation_id, published=published)


@router.get("/patients/me/consultations", response_model=ConsultationListResponse)
def my_consultations(
    request: Request,
    token: str | None = TOKEN_DEP,
) -> ConsultationListResponse | JSONResponse:
    try:
        store = build_record_store()
        records = list_patient_consultations(
            guard=ConsultationGuard(store),
            record_store=store,
            bearer_token=token,
        )
    except AppError as e:
        return error_response(e, request)
    return ConsultationListResponse(
        consultations=[ConsultationView.from_record(r) for r in records]
    )
