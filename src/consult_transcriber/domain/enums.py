"""
Доменные перечисления (enum).

Используются во всей системе:
- стадии пайплайна транскрипции
- режим генерации саммари
- стили саммари
"""

from __future__ import annotations

import enum


class PipelineStage(str, enum.Enum):
    """
    Стадии обработки консультации (строго вперёд, без возвратов).
    """

    authorizing = "authorizing"
    fetching = "fetching"
    transcribing = "transcribing"
    summarizing = "summarizing"
    persisting = "persisting"
    done = "done"


class SummaryMode(str, enum.Enum):
    """
    Режим генерации: один на деплой, без переключения в рантайме.
    """

    styles = "styles"  # три независимых саммари
    soap = "soap"  # одна структурированная клиническая заметка


class SummaryStyle(str, enum.Enum):
    simple = "simple"
    detailed = "detailed"
    technical = "technical"
    soap = "soap"
