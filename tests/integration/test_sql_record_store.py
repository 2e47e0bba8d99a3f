from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from consult_transcriber.common.errors import RecordStoreError
from consult_transcriber.domain.consultation import SummaryVariants
from consult_transcriber.domain.enums import SummaryMode
from consult_transcriber.services.authorization import ConsultationGuard
from consult_transcriber.services.pipeline_service import TranscriptionPipeline
from consult_transcriber.services.summary_service import SummaryGenerator
from consult_transcriber.storage.db import db_session
from consult_transcriber.storage.models import Base, Consultation
from consult_transcriber.storage.record_store import SqlRecordStore
from tests.fakes import (
    AUDIO_PATH,
    CONSULTATION_ID,
    DOCTOR,
    PATIENT,
    CountingVerifier,
    FakeLLM,
    FakeSTT,
)


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'consultations.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with db_session(factory) as s:
        s.add(
            Consultation(
                id=CONSULTATION_ID,
                doctor_id=DOCTOR,
                patient_id=PATIENT,
                audio_url=AUDIO_PATH,
            )
        )
    yield factory
    engine.dispose()


def _pipeline(store: SqlRecordStore, object_store, *, tag: str) -> TranscriptionPipeline:
    return TranscriptionPipeline(
        guard=ConsultationGuard(store, verify=CountingVerifier()),
        object_store=object_store,
        stt=FakeSTT(text=f"{tag} transcript"),
        summarizer=SummaryGenerator(FakeLLM(tag=f"{tag}:"), mode=SummaryMode.styles),
        record_store=store,
        language="en",
    )


def test_lookup_and_fresh_record(session_factory) -> None:
    store = SqlRecordStore(session_factory)
    assert store.get_doctor_id(CONSULTATION_ID) == DOCTOR
    assert store.get_doctor_id("c-404") is None

    rec = store.get(CONSULTATION_ID)
    assert rec.audio_object_path == AUDIO_PATH
    assert rec.is_processed is False


def test_save_results_on_missing_row_fails(session_factory) -> None:
    store = SqlRecordStore(session_factory)
    with pytest.raises(RecordStoreError):
        store.save_results("c-404", transcript="t", summaries=SummaryVariants(simple="s"))


def test_rerun_overwrites_without_new_rows(session_factory, object_store) -> None:
    store = SqlRecordStore(session_factory)
    _pipeline(store, object_store, tag="first").run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)
    _pipeline(store, object_store, tag="second").run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    with db_session(session_factory) as s:
        assert s.execute(select(func.count()).select_from(Consultation)).scalar_one() == 1

    rec = store.get(CONSULTATION_ID)
    assert rec.transcript == "second transcript"
    assert all(v.startswith("second:") for v in rec.summary_variants.as_dict().values())


def test_concurrent_runs_leave_one_complete_result_set(session_factory, object_store) -> None:
    store = SqlRecordStore(session_factory)
    tags = ["run-a", "run-b"]

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(
                _pipeline(store, object_store, tag=t).run, DOCTOR, CONSULTATION_ID, AUDIO_PATH
            )
            for t in tags
        ]
        results = [f.result() for f in futures]

    assert len(results) == 2
    rec = store.get(CONSULTATION_ID)
    winner = rec.transcript.split(" ")[0]
    assert winner in tags
    # транскрипт и все слоты саммари из одного и того же прогона
    assert all(v.startswith(f"{winner}:") for v in rec.summary_variants.as_dict().values())


def test_publication_visibility(session_factory) -> None:
    store = SqlRecordStore(session_factory)
    assert store.list_published_for_patient(PATIENT) == []

    store.set_published(CONSULTATION_ID, True)
    assert [r.id for r in store.list_published_for_patient(PATIENT)] == [CONSULTATION_ID]
    assert store.list_published_for_patient("pat-other") == []
