"""
Базовые типы для LLM.

- единый контракт провайдера: complete_text(system=..., user=...)
- простой результат генерации
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResult:
    """
    Результат генерации LLM.
    """

    text: str
    model: str | None = None
    usage: dict[str, Any] | None = None


class LLMProvider(ABC):
    """
    Интерфейс провайдера LLM.
    """

    name: str = "base"

    @abstractmethod
    def complete_text(self, *, system: str, user: str) -> LLMResult:
        """
        Сгенерировать ответ на user-промпт с системной инструкцией.
        """
        raise NotImplementedError
