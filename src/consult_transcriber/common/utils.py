"""
Общие утилиты проекта.

Правила:
- сюда кладём только реально общие функции
- без бизнес-логики
"""

from __future__ import annotations

import hashlib
from typing import Any


def sha256_hex(data: bytes) -> str:
    """
    SHA256 для контроля целостности (например, аудио файлов).
    """
    return hashlib.sha256(data).hexdigest()


def safe_dict(d: dict[str, Any], max_len: int = 500) -> dict[str, Any]:
    """
    Безопасное "обрезание" полей для логов (чтобы не утащить большие тексты).
    """
    out: dict[str, Any] = {}
    for k, v in d.items():
        if isinstance(v, str) and len(v) > max_len:
            out[k] = v[:max_len] + "...(truncated)"
        else:
            out[k] = v
    return out


def text_head(text: str | None, limit: int = 500) -> str:
    """Начало текста ответа провайдера для details ошибки."""
    return (text or "")[:limit]
