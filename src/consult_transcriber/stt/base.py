"""
Базовый интерфейс STT (Speech-to-Text).

Назначение:
- единый контракт для всех провайдеров
- аудио целиком (запись консультации), язык задаётся конфигом
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class STTResult:
    text: str
    language: str | None = None
    duration_sec: float | None = None


class STTProvider(Protocol):
    name: str

    def transcribe(self, *, audio: bytes, language: str) -> STTResult: ...
