"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP-ответов и логов
- единый стиль исключений по проекту
- каждая стадия пайплайна завершается своей терминальной ошибкой
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    MISSING_FIELD = "missing_field"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    # Авторизация
    NO_CREDENTIAL = "no_credential"
    INVALID_TOKEN = "invalid_token"
    OWNERSHIP_MISMATCH = "ownership_mismatch"
    CONSULTATION_MISSING = "consultation_missing"

    # Провайдеры
    STT_PROVIDER_ERROR = "stt_provider_error"
    LLM_PROVIDER_ERROR = "llm_provider_error"

    # Инфра/хранилища
    DB_ERROR = "db_error"
    OBJECT_MISSING = "object_missing"
    TRANSFER_ERROR = "transfer_error"

    # Терминальные ошибки пайплайна
    FETCH_FAILED = "fetch_failed"
    TRANSCRIPTION_FAILED = "transcription_failed"
    SUMMARIZATION_FAILED = "summarization_failed"
    PERSIST_FAILED = "persist_failed"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов/PII)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class BadRequestError(AppError):
    def __init__(self, message: str = "Некорректный запрос", details: dict | None = None) -> None:
        super().__init__(ErrCode.MISSING_FIELD, message, details)


class UnauthorizedError(AppError):
    def __init__(
        self,
        message: str = "Не авторизован",
        details: dict | None = None,
        code: str = ErrCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(code, message, details)


class NotFoundError(AppError):
    def __init__(
        self,
        message: str = "Не найдено",
        details: dict | None = None,
        code: str = ErrCode.NOT_FOUND,
    ) -> None:
        super().__init__(code, message, details)


class ProviderError(AppError):
    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        super().__init__(code, message, details)


class StorageError(AppError):
    """Ошибка object storage: code = object_missing | transfer_error."""

    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        super().__init__(code, message, details)


class RecordStoreError(AppError):
    def __init__(self, message: str = "Ошибка хранилища записей", details: dict | None = None) -> None:
        super().__init__(ErrCode.DB_ERROR, message, details)


class PipelineError(AppError):
    """
    Терминальная ошибка пайплайна.
    - stage: стадия, на которой пайплайн остановился
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        stage: str,
        details: dict | None = None,
    ) -> None:
        super().__init__(code, message, details)
        self.stage = stage


HTTP_STATUS_BY_CODE: dict[str, int] = {
    ErrCode.MISSING_FIELD: 400,
    ErrCode.UNAUTHORIZED: 401,
    ErrCode.NO_CREDENTIAL: 401,
    ErrCode.INVALID_TOKEN: 401,
    ErrCode.OWNERSHIP_MISMATCH: 401,
    ErrCode.NOT_FOUND: 404,
    ErrCode.CONSULTATION_MISSING: 404,
    ErrCode.FETCH_FAILED: 502,
    ErrCode.TRANSCRIPTION_FAILED: 502,
    ErrCode.SUMMARIZATION_FAILED: 502,
    ErrCode.PERSIST_FAILED: 500,
}


def http_status_for(err: AppError) -> int:
    return HTTP_STATUS_BY_CODE.get(err.code, 500)
