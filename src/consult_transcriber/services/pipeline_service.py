"""
Сервисный слой: пайплайн транскрипции и саммари консультации.

Один вызов run() = один проход вперёд:
authorizing -> fetching -> transcribing -> summarizing -> persisting -> done

Правила:
- без ретраев: любая ошибка внешнего вызова терминальна для вызова
- Guard до любой загрузки аудио и платных API
- запись в Record Store ровно одна и только после успешного саммари
- нет частичных записей и частичного успеха
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import (
    AppError,
    BadRequestError,
    ErrCode,
    PipelineError,
    ProviderError,
    UnauthorizedError,
)
from consult_transcriber.common.logging import get_pipeline_logger
from consult_transcriber.common.metrics import (
    record_pipeline_run,
    record_provider_error,
    track_stage_latency,
)
from consult_transcriber.common.utils import safe_dict, sha256_hex
from consult_transcriber.domain.consultation import PipelineResult, SummaryVariants
from consult_transcriber.domain.enums import PipelineStage, SummaryMode
from consult_transcriber.domain.state_machine import StageTracker, failure_code
from consult_transcriber.llm.base import LLMProvider
from consult_transcriber.storage.blob import ObjectStore, build_object_store
from consult_transcriber.storage.record_store import RecordStore, build_record_store
from consult_transcriber.stt.base import STTProvider

from .authorization import ConsultationGuard
from .providers import build_llm_provider, build_stt_provider
from .summary_service import SummaryGenerator

log = get_pipeline_logger()

_STAGE_MESSAGES: dict[PipelineStage, str] = {
    PipelineStage.fetching: "Не удалось загрузить аудио консультации",
    PipelineStage.transcribing: "Не удалось распознать аудио",
    PipelineStage.summarizing: "Не удалось сгенерировать саммари",
    PipelineStage.persisting: (
        "Транскрипт и саммари сгенерированы, но не сохранены; повторите запуск"
    ),
}


def validate_request(consultation_id: str | None, audio_path: str | None) -> tuple[str, str]:
    missing = [
        name
        for name, value in (("consultationId", consultation_id), ("audioPath", audio_path))
        if not (value or "").strip()
    ]
    if missing:
        raise BadRequestError(
            "consultationId and audioPath are required", {"missing": missing}
        )
    return consultation_id.strip(), audio_path.strip()


class TranscriptionPipeline:
    """
    Зависимости, не переданные явно, собираются из настроек при первом обращении:
    record store и Guard после проверок входа, провайдеры после Guard.
    """

    def __init__(
        self,
        *,
        guard: ConsultationGuard | None = None,
        object_store: ObjectStore | None = None,
        stt: STTProvider | None = None,
        summarizer: SummaryGenerator | None = None,
        record_store: RecordStore | None = None,
        language: str | None = None,
        service_name: str = "api-gateway",
    ) -> None:
        self._guard = guard
        self._object_store = object_store
        self._stt = stt
        self._summarizer = summarizer
        self._record_store = record_store
        self.language = language or get_settings().stt_language
        self.service_name = service_name

    @property
    def record_store(self) -> RecordStore:
        if self._record_store is None:
            self._record_store = build_record_store()
        return self._record_store

    @property
    def guard(self) -> ConsultationGuard:
        if self._guard is None:
            self._guard = ConsultationGuard(self.record_store)
        return self._guard

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            self._object_store = build_object_store()
        return self._object_store

    @property
    def stt(self) -> STTProvider:
        if self._stt is None:
            self._stt = build_stt_provider()
        return self._stt

    @property
    def summarizer(self) -> SummaryGenerator:
        if self._summarizer is None:
            s = get_settings()
            self._summarizer = SummaryGenerator(
                build_llm_provider(),
                mode=resolve_summary_mode(s.summary_mode),
                max_workers=s.summary_max_workers,
            )
        return self._summarizer

    @property
    def mode(self) -> SummaryMode:
        if self._summarizer is not None:
            return self._summarizer.mode
        return resolve_summary_mode(get_settings().summary_mode)

    @contextmanager
    def _stage(
        self, tracker: StageTracker, stage: PipelineStage, consultation_id: str
    ) -> Iterator[None]:
        tracker.advance(stage)
        with track_stage_latency(self.service_name, stage.value):
            try:
                yield
            except PipelineError:
                raise
            except Exception as e:
                raise self._stage_error(stage, consultation_id, e) from e

    def _stage_error(
        self, stage: PipelineStage, consultation_id: str, cause: BaseException
    ) -> PipelineError:
        details: dict = {"consultation_id": consultation_id}
        if isinstance(cause, AppError):
            details["cause_code"] = cause.code
            details["cause"] = cause.message
            if cause.details:
                details["cause_details"] = cause.details
        else:
            details["cause"] = f"{type(cause).__name__}: {str(cause)[:200]}"

        log.error(
            "pipeline_stage_failed",
            extra={"payload": safe_dict({"stage": stage.value, **details}, max_len=300)},
        )
        message = _STAGE_MESSAGES.get(stage, "Ошибка пайплайна")
        if isinstance(cause, AppError) and stage != PipelineStage.persisting:
            message = f"{message}: {cause.message}"
        return PipelineError(failure_code(stage), message, stage=stage.value, details=details)

    def run(
        self,
        bearer_token: str | None,
        consultation_id: str | None,
        audio_path: str | None,
    ) -> PipelineResult:
        """
        Полный проход пайплайна.

        Порядок проверок входа:
        1) нет токена -> no_credential (без сети)
        2) пустые поля -> missing_field (без сети)
        3) Guard: токен -> identity, владение консультацией
        """
        try:
            result = self._run(bearer_token, consultation_id, audio_path)
        except AppError as e:
            record_pipeline_run(mode=self.mode.value, result=e.code)
            raise
        record_pipeline_run(mode=self.mode.value, result="ok")
        return result

    def _run(
        self,
        bearer_token: str | None,
        consultation_id: str | None,
        audio_path: str | None,
    ) -> PipelineResult:
        if not bearer_token:
            raise UnauthorizedError("Нет заголовка Authorization", code=ErrCode.NO_CREDENTIAL)
        consultation_id, audio_path = validate_request(consultation_id, audio_path)

        tracker = StageTracker()
        with track_stage_latency(self.service_name, PipelineStage.authorizing.value):
            identity = self.guard.authorize(bearer_token, consultation_id)

        log.info(
            "pipeline_authorized",
            extra={"payload": {"consultation_id": consultation_id, "doctor_id": identity.subject}},
        )

        with self._stage(tracker, PipelineStage.fetching, consultation_id):
            audio = self.object_store.fetch_blob(audio_path)
        log.info(
            "audio_fetched",
            extra={
                "payload": {
                    "consultation_id": consultation_id,
                    "bytes": len(audio),
                    "sha256": sha256_hex(audio),
                }
            },
        )

        with self._stage(tracker, PipelineStage.transcribing, consultation_id):
            stt = self.stt
            try:
                stt_result = stt.transcribe(audio=audio, language=self.language)
            except AppError as e:
                record_provider_error(provider=stt.name, code=e.code)
                raise
            transcript = (stt_result.text or "").strip()
            if not transcript:
                raise ProviderError(ErrCode.STT_PROVIDER_ERROR, "STT вернул пустой транскрипт")
        log.info(
            "transcription_done",
            extra={"payload": {"consultation_id": consultation_id, "chars": len(transcript)}},
        )

        with self._stage(tracker, PipelineStage.summarizing, consultation_id):
            generated = self.summarizer.generate(transcript)
            summaries = SummaryVariants.from_generated(self.mode, generated)
        log.info(
            "summaries_done",
            extra={
                "payload": {
                    "consultation_id": consultation_id,
                    "mode": self.mode.value,
                    "styles": [s.value for s in generated],
                }
            },
        )

        with self._stage(tracker, PipelineStage.persisting, consultation_id):
            self.record_store.save_results(
                consultation_id, transcript=transcript, summaries=summaries
            )

        tracker.advance(PipelineStage.done)
        log.info(
            "pipeline_finished",
            extra={"payload": {"consultation_id": consultation_id, "mode": self.mode.value}},
        )
        return PipelineResult(
            consultation_id=consultation_id,
            doctor_id=identity.subject,
            mode=self.mode,
            transcript=transcript,
            summaries=summaries,
        )


def resolve_summary_mode(raw: str | None) -> SummaryMode:
    value = (raw or "").strip().lower()
    try:
        return SummaryMode(value)
    except ValueError as e:
        raise RuntimeError(f"Unsupported SUMMARY_MODE={value}") from e


def build_pipeline(
    *,
    record_store: RecordStore | None = None,
    object_store: ObjectStore | None = None,
    stt: STTProvider | None = None,
    llm: LLMProvider | None = None,
) -> TranscriptionPipeline:
    """
    Пайплайн по настройкам. Вызывается на каждый запрос.
    Сам ничего не создаёт: провайдеры и клиенты хранилищ поднимаются внутри run().
    """
    s = get_settings()
    summarizer = None
    if llm is not None:
        summarizer = SummaryGenerator(
            llm,
            mode=resolve_summary_mode(s.summary_mode),
            max_workers=s.summary_max_workers,
        )
    return TranscriptionPipeline(
        object_store=object_store,
        stt=stt,
        summarizer=summarizer,
        record_store=record_store,
        language=s.stt_language,
        service_name=s.service_name,
    )
