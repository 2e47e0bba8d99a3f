from __future__ import annotations

import re
import threading

import pytest

from consult_transcriber.common.errors import (
    AppError,
    ErrCode,
    PipelineError,
    ProviderError,
    http_status_for,
)
from consult_transcriber.domain.consultation import SummaryVariants
from consult_transcriber.domain.enums import SummaryMode
from consult_transcriber.llm.prompts import SOAP_SECTION_MARKERS
from consult_transcriber.services.authorization import ConsultationGuard
from consult_transcriber.services.pipeline_service import (
    TranscriptionPipeline,
    build_pipeline,
    resolve_summary_mode,
    validate_request,
)
from consult_transcriber.services.summary_service import SummaryGenerator
from tests.fakes import (
    AUDIO_PATH,
    CONSULTATION_ID,
    DOCTOR,
    OTHER_DOCTOR,
    FakeLLM,
    FakeObjectStore,
    FakeRecordStore,
    FakeSTT,
    make_consultation,
)

SNOMED_CODE = re.compile(r"SNOMED-CT:\s*\d{6,18}")


def _pipeline(record_store, object_store, verifier, *, stt=None, llm=None, mode=SummaryMode.styles):
    return TranscriptionPipeline(
        guard=ConsultationGuard(record_store, verify=verifier),
        object_store=object_store,
        stt=stt or FakeSTT(),
        summarizer=SummaryGenerator(llm or FakeLLM(), mode=mode),
        record_store=record_store,
        language="en",
        service_name="test",
    )


def test_styles_run_populates_transcript_and_three_summaries(
    record_store, object_store, verifier
) -> None:
    llm = FakeLLM(barrier=threading.Barrier(3, timeout=5))
    p = _pipeline(record_store, object_store, verifier, llm=llm)

    res = p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert res.transcript
    assert res.doctor_id == DOCTOR
    for value in res.summaries.as_dict().values():
        assert value and value.strip()

    saved = record_store.get(CONSULTATION_ID)
    assert saved.transcript == res.transcript
    assert saved.summary_variants == res.summaries
    assert record_store.writes == [CONSULTATION_ID]


def test_soap_run_returns_single_structured_note(record_store, object_store, verifier) -> None:
    p = _pipeline(record_store, object_store, verifier, mode=SummaryMode.soap)

    res = p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    note = res.summaries.simple
    for marker in SOAP_SECTION_MARKERS:
        assert marker in note
    assert SNOMED_CODE.search(note)
    # остальные слоты не заполняются
    assert res.summaries.detailed is None
    assert res.summaries.technical is None
    assert record_store.get(CONSULTATION_ID).summary_variants.detailed is None


def test_styles_run_never_uses_soap_prompt(record_store, object_store, verifier) -> None:
    llm = FakeLLM()
    _pipeline(record_store, object_store, verifier, llm=llm).run(
        DOCTOR, CONSULTATION_ID, AUDIO_PATH
    )
    assert not any("SOAP" in s for s in llm.systems)


def test_foreign_consultation_is_rejected_before_any_work(
    record_store, object_store, verifier
) -> None:
    stt = FakeSTT()
    llm = FakeLLM()
    p = _pipeline(record_store, object_store, verifier, stt=stt, llm=llm)

    with pytest.raises(AppError) as e:
        p.run(OTHER_DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.OWNERSHIP_MISMATCH
    assert http_status_for(e.value) == 401
    assert object_store.calls == []
    assert stt.calls == []
    assert llm.systems == []
    assert record_store.writes == []


def test_unknown_consultation_is_not_found(record_store, object_store, verifier) -> None:
    p = _pipeline(record_store, object_store, verifier)
    with pytest.raises(AppError) as e:
        p.run(DOCTOR, "c-404", AUDIO_PATH)
    assert e.value.code == ErrCode.CONSULTATION_MISSING
    assert http_status_for(e.value) == 404
    assert object_store.calls == []


@pytest.mark.parametrize(
    ("cid", "path", "missing"),
    [
        ("", AUDIO_PATH, ["consultationId"]),
        (CONSULTATION_ID, "  ", ["audioPath"]),
        (None, None, ["consultationId", "audioPath"]),
    ],
)
def test_missing_fields_rejected_before_identity_check(
    record_store, object_store, verifier, cid, path, missing
) -> None:
    p = _pipeline(record_store, object_store, verifier)
    with pytest.raises(AppError) as e:
        p.run(DOCTOR, cid, path)
    assert e.value.code == ErrCode.MISSING_FIELD
    assert e.value.details == {"missing": missing}
    assert verifier.calls == []
    assert record_store.lookups == []


def test_missing_token_rejected_first(record_store, object_store, verifier) -> None:
    p = _pipeline(record_store, object_store, verifier)
    with pytest.raises(AppError) as e:
        p.run(None, "", "")
    assert e.value.code == ErrCode.NO_CREDENTIAL
    assert verifier.calls == []


def test_missing_audio_object_is_fetch_failed(record_store, verifier) -> None:
    stt = FakeSTT()
    p = _pipeline(record_store, FakeObjectStore(), verifier, stt=stt)

    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.FETCH_FAILED
    assert e.value.stage == "fetching"
    assert e.value.details["cause_code"] == ErrCode.OBJECT_MISSING
    assert stt.calls == []
    assert record_store.get(CONSULTATION_ID).transcript is None


def test_stt_rate_limit_is_transcription_failed(record_store, object_store, verifier) -> None:
    stt = FakeSTT(error=ProviderError(ErrCode.STT_PROVIDER_ERROR, "429", {"status": 429}))
    llm = FakeLLM()
    p = _pipeline(record_store, object_store, verifier, stt=stt, llm=llm)

    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.TRANSCRIPTION_FAILED
    assert http_status_for(e.value) == 502
    assert llm.systems == []
    assert record_store.writes == []


def test_blank_transcript_is_transcription_failed(record_store, object_store, verifier) -> None:
    stt = FakeSTT()
    stt.text = "   "
    p = _pipeline(record_store, object_store, verifier, stt=stt)
    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)
    assert e.value.code == ErrCode.TRANSCRIPTION_FAILED


def test_one_style_failure_leaves_record_untouched(object_store, verifier) -> None:
    before = make_consultation(
        transcript="old transcript",
        summary_variants=SummaryVariants(simple="s0", detailed="d0", technical="t0"),
    )
    store = FakeRecordStore([before])
    llm = FakeLLM(fail_on="clinicians")
    p = _pipeline(store, object_store, verifier, llm=llm)

    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.SUMMARIZATION_FAILED
    assert e.value.details["cause_details"]["failures"] == {"technical": "llm_provider_error"}
    assert len(llm.systems) == 3
    assert store.writes == []
    assert store.get(CONSULTATION_ID) == before


def test_persist_failure_reports_unsaved_content(record_store, object_store, verifier) -> None:
    record_store.fail_writes = True
    p = _pipeline(record_store, object_store, verifier)

    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.PERSIST_FAILED
    assert http_status_for(e.value) == 500
    assert "не сохранены" in e.value.message
    assert record_store.writes == [CONSULTATION_ID]


def test_rerun_overwrites_previous_results(record_store, object_store, verifier) -> None:
    _pipeline(record_store, object_store, verifier, llm=FakeLLM(tag="first:")).run(
        DOCTOR, CONSULTATION_ID, AUDIO_PATH
    )
    _pipeline(record_store, object_store, verifier, llm=FakeLLM(tag="second:")).run(
        DOCTOR, CONSULTATION_ID, AUDIO_PATH
    )

    assert len(record_store.records) == 1
    saved = record_store.get(CONSULTATION_ID).summary_variants
    assert all(v.startswith("second:") for v in saved.as_dict().values())


def test_validate_request_strips_values() -> None:
    assert validate_request(" c-1 ", " a/b.webm ") == ("c-1", "a/b.webm")


def test_resolve_summary_mode() -> None:
    assert resolve_summary_mode(" SOAP ") == SummaryMode.soap
    with pytest.raises(RuntimeError):
        resolve_summary_mode("bullets")


def test_build_pipeline_from_settings(settings, record_store, object_store) -> None:
    settings.summary_mode = "soap"
    settings.stt_provider = "mock"
    settings.llm_provider = "mock"
    settings.identity_provider = "none"
    settings.app_env = "dev"

    p = build_pipeline(record_store=record_store, object_store=object_store)
    res = p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert p.mode == SummaryMode.soap
    assert "A (Assessment)" in res.summaries.simple


def test_providers_are_built_only_after_guard(settings, record_store, monkeypatch) -> None:
    settings.app_env = "dev"
    settings.identity_provider = "none"
    built: list[str] = []

    def _refuse(name):
        def _factory():
            built.append(name)
            raise RuntimeError(f"{name} must not be built")

        return _factory

    for name in ("build_object_store", "build_stt_provider", "build_llm_provider"):
        monkeypatch.setattr(f"consult_transcriber.services.pipeline_service.{name}", _refuse(name))

    p = build_pipeline(record_store=record_store)
    with pytest.raises(AppError) as e:
        p.run(OTHER_DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.OWNERSHIP_MISMATCH
    assert built == []


def test_object_store_misconfiguration_surfaces_as_fetch_failure(
    settings, record_store, monkeypatch
) -> None:
    settings.app_env = "dev"
    settings.identity_provider = "none"
    settings.storage_mode = "supabase"
    settings.supabase_url = None

    p = build_pipeline(record_store=record_store, stt=FakeSTT(), llm=FakeLLM())
    with pytest.raises(PipelineError) as e:
        p.run(DOCTOR, CONSULTATION_ID, AUDIO_PATH)

    assert e.value.code == ErrCode.FETCH_FAILED
    assert e.value.stage == "fetching"
    assert record_store.writes == []
