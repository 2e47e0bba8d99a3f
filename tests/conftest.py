from __future__ import annotations

import os

# Окружение тестов выставляется до импорта Settings
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("IDENTITY_PROVIDER", "none")
os.environ.setdefault("STORAGE_MODE", "local_fs")
os.environ.setdefault("RECORD_STORE", "sql")
os.environ.setdefault("POSTGRES_DSN", "sqlite://")
os.environ.setdefault("STT_PROVIDER", "mock")
os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("SUMMARY_MODE", "styles")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402

from consult_transcriber.common.config import get_settings  # noqa: E402
from tests.fakes import (  # noqa: E402
    AUDIO_PATH,
    CountingVerifier,
    FakeObjectStore,
    FakeRecordStore,
    make_consultation,
)


@pytest.fixture()
def settings():
    s = get_settings()
    snapshot = {k: getattr(s, k) for k in type(s).model_fields}
    try:
        yield s
    finally:
        for k, v in snapshot.items():
            setattr(s, k, v)


@pytest.fixture()
def record_store() -> FakeRecordStore:
    return FakeRecordStore([make_consultation()])


@pytest.fixture()
def object_store() -> FakeObjectStore:
    # заголовок EBML + тишина, содержимое для фейкового STT не важно
    return FakeObjectStore({AUDIO_PATH: b"\x1a\x45\xdf\xa3" + b"\x00" * 2048})


@pytest.fixture()
def verifier() -> CountingVerifier:
    return CountingVerifier()
