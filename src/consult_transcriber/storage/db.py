"""
Инициализация базы данных и сессий SQLAlchemy.

Назначение:
- Создание engine (лениво, при первом обращении)
- Контекстный менеджер для сессий
- Единая точка доступа к БД для всех сервисов
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from consult_transcriber.common.config import get_settings


# =============================================================================
# ENGINE / SESSION FACTORY
# =============================================================================
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine(
        get_settings().postgres_dsn,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(
        bind=get_engine(),
        autocommit=False,
        autoflush=False,
    )


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_session(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    Контекстный менеджер для работы с БД.

    Использование:
        with db_session() as session:
            session.add(...)
    """
    session: Session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
