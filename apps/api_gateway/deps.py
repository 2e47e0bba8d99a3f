"""
FastAPI Depends и общие ответы gateway.

Сюда выносим:
- извлечение bearer-токена (без проверки: проверяет Guard)
- security-аудит в логах (allow/deny)
- преобразование AppError в JSON-ответ {"error", "code"}
"""

from __future__ import annotations

from fastapi import Header, Request
from fastapi.responses import JSONResponse

from consult_transcriber.common.errors import AppError, PipelineError, http_status_for
from consult_transcriber.common.logging import get_project_logger
from consult_transcriber.common.security import extract_bearer
from consult_transcriber.contracts.http_api import ErrorResponse

log = get_project_logger()


def _request_meta(request: Request | None) -> tuple[str, str, str | None]:
    if request is None:
        return "unknown", "UNKNOWN", None
    endpoint = request.url.path
    method = request.method
    client_ip = request.client.host if request.client else None
    return endpoint, method, client_ip


def audit_allow(*, request: Request | None, subject: str, reason: str) -> None:
    endpoint, method, client_ip = _request_meta(request)
    log.info(
        "security_audit_allow",
        extra={
            "payload": {
                "endpoint": endpoint,
                "method": method,
                "subject": subject,
                "reason": reason,
                "client_ip": client_ip,
            }
        },
    )


def audit_deny(*, request: Request | None, status_code: int, reason: str, error_code: str) -> None:
    endpoint, method, client_ip = _request_meta(request)
    log.warning(
        "security_audit_deny",
        extra={
            "payload": {
                "endpoint": endpoint,
                "method": method,
                "status_code": status_code,
                "reason": reason,
                "error_code": error_code,
                "client_ip": client_ip,
            }
        },
    )


def bearer_token_dep(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> str | None:
    """
    Bearer-токен из заголовка Authorization (None, если его нет).
    """
    return extract_bearer(authorization)


def error_response(err: AppError, request: Request | None = None) -> JSONResponse:
    status_code = http_status_for(err)
    headers: dict[str, str] = {}
    if status_code == 401:
        audit_deny(request=request, status_code=status_code, reason=err.message, error_code=err.code)
        headers["WWW-Authenticate"] = "Bearer"

    body = ErrorResponse(
        error=err.message,
        code=err.code,
        stage=err.stage if isinstance(err, PipelineError) else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )
