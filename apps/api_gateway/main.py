"""
API Gateway (FastAPI).

Функции:
- /health
- /metrics
- POST /v1/transcribe-consultation (+ алиас /functions/v1/... для клиентов edge-функции)
- публикация консультаций пациенту и их чтение

CORS: pre-flight отвечает разрешительно (authorization, x-client-info, apikey, content-type).
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api_gateway.deps import error_response
from apps.api_gateway.routers.consultations import router as consultations_router
from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import BadRequestError, ErrCode, UnauthorizedError
from consult_transcriber.common.logging import get_project_logger, setup_logging
from consult_transcriber.common.metrics import setup_metrics_endpoint
from consult_transcriber.common.security import extract_bearer
from consult_transcriber.services.pipeline_service import resolve_summary_mode

log = get_project_logger()

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def _parse_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return origins or ["*"]


def _is_prod_env(app_env: str | None) -> bool:
    env = (app_env or "").strip().lower()
    return env in {"prod", "production"}


def _cors_params() -> tuple[list[str], bool]:
    settings = get_settings()
    allow_origins = _parse_origins(settings.cors_allowed_origins)
    allow_credentials = bool(settings.cors_allow_credentials)

    if _is_prod_env(settings.app_env) and "*" in allow_origins:
        raise RuntimeError("CORS wildcard '*' запрещён в APP_ENV=prod")

    # '*' нельзя использовать вместе с credentials=true
    if "*" in allow_origins:
        allow_credentials = False

    return allow_origins, allow_credentials


def check_startup_config() -> None:
    """
    Fail fast на невалидных комбинациях настроек.
    """
    s = get_settings()
    resolve_summary_mode(s.summary_mode)

    if _is_prod_env(s.app_env) and (s.identity_provider or "").strip().lower() == "none":
        raise RuntimeError("IDENTITY_PROVIDER=none запрещён в APP_ENV=prod")

    needs_openai = (s.stt_provider or "").strip().lower() == "openai" or (
        s.llm_provider or ""
    ).strip().lower() == "openai_compat"
    if needs_openai and not s.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY not configured")

    supabase_parts = [
        name
        for name, value in (
            ("IDENTITY_PROVIDER", s.identity_provider),
            ("STORAGE_MODE", s.storage_mode),
            ("RECORD_STORE", s.record_store),
        )
        if (value or "").strip().lower() == "supabase"
    ]
    if supabase_parts and not s.supabase_url:
        raise RuntimeError(f"SUPABASE_URL not configured ({', '.join(supabase_parts)}=supabase)")
    # identity через /auth/v1/user обходится anon-ключом, хранилищам нужен service-role
    if set(supabase_parts) - {"IDENTITY_PROVIDER"} and not s.supabase_service_role_key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY not configured")


def _create_app() -> FastAPI:
    app = FastAPI(title="Consult Transcriber", version="0.1.0")
    allow_origins, allow_credentials = _cors_params()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
        allow_credentials=allow_credentials,
    )

    setup_metrics_endpoint(app, service=get_settings().service_name)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # токен проверяется раньше тела запроса
        if not extract_bearer(request.headers.get("authorization")):
            err = UnauthorizedError("Нет заголовка Authorization", code=ErrCode.NO_CREDENTIAL)
        else:
            fields = [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()[:5]]
            err = BadRequestError("Некорректное тело запроса", {"fields": fields})
        return error_response(err, request)

    @app.get("/health")
    def health() -> dict[str, Any]:
        s = get_settings()
        return {
            "ok": True,
            "summary_mode": s.summary_mode,
            "stt_provider": s.stt_provider,
            "llm_provider": s.llm_provider,
        }

    app.include_router(consultations_router, prefix="/v1")
    app.include_router(consultations_router, prefix="/functions/v1", include_in_schema=False)

    return app


setup_logging()
check_startup_config()
log.info("gateway_ready")

app = _create_app()


if __name__ == "__main__":
    import uvicorn

    s = get_settings()
    uvicorn.run(app, host=s.api_host, port=s.api_port, log_config=None)
