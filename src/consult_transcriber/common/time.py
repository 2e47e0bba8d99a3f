"""
Утилиты времени.

Назначение:
- единый формат времени (UTC)
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)


def utc_now_naive() -> datetime:
    """
    UTC без tzinfo: для колонок DateTime без timezone.
    """
    return utc_now().replace(tzinfo=None)
