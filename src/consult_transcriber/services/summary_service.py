"""
Summary Generator.

Назначение:
- summarize(transcript, style): один вызов LLM по шаблону стиля
- generate(transcript): все стили текущего режима

Режимы (один на деплой):
- styles: simple/detailed/technical параллельно, барьер на всех
- soap: один вызов, структурированная заметка

Сбой одного вызова не отменяет остальные: ждём всех, затем падаем целиком.
"""

from __future__ import annotations

from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait

from consult_transcriber.common.errors import AppError, ErrCode, ProviderError
from consult_transcriber.common.logging import get_pipeline_logger
from consult_transcriber.common.metrics import record_provider_error
from consult_transcriber.domain.enums import SummaryMode, SummaryStyle
from consult_transcriber.llm.base import LLMProvider
from consult_transcriber.llm.prompts import template_for

log = get_pipeline_logger()

MODE_STYLES: dict[SummaryMode, tuple[SummaryStyle, ...]] = {
    SummaryMode.styles: (SummaryStyle.simple, SummaryStyle.detailed, SummaryStyle.technical),
    SummaryMode.soap: (SummaryStyle.soap,),
}


class SummaryGenerationError(ProviderError):
    """
    Ошибка шага саммари.
    - failures: стиль -> код ошибки для всех упавших вызовов
    """

    def __init__(self, message: str, failures: dict[str, str], cause: AppError) -> None:
        super().__init__(
            ErrCode.LLM_PROVIDER_ERROR,
            message,
            {"failures": failures, **(cause.details or {})},
        )
        self.failures = failures


class SummaryGenerator:
    def __init__(
        self,
        provider: LLMProvider,
        *,
        mode: SummaryMode,
        max_workers: int = 3,
    ) -> None:
        self.provider = provider
        self.mode = mode
        self.max_workers = max(1, int(max_workers))

    @property
    def styles(self) -> tuple[SummaryStyle, ...]:
        return MODE_STYLES[self.mode]

    def summarize(self, transcript: str, style: SummaryStyle) -> str:
        system, user = template_for(style).render(transcript)
        try:
            result = self.provider.complete_text(system=system, user=user)
        except ProviderError as e:
            record_provider_error(provider=self.provider.name, code=e.code)
            raise

        text = (result.text or "").strip()
        if not text:
            record_provider_error(provider=self.provider.name, code="empty_completion")
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR, "LLM вернул пустой ответ", {"style": style.value}
            )
        return text

    def generate(self, transcript: str) -> dict[SummaryStyle, str]:
        styles = self.styles
        if len(styles) == 1:
            style = styles[0]
            try:
                return {style: self.summarize(transcript, style)}
            except ProviderError as e:
                raise SummaryGenerationError(e.message, {style.value: e.code}, e) from e

        workers = min(self.max_workers, len(styles))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="summary") as pool:
            futures: dict[SummaryStyle, Future[str]] = {
                style: pool.submit(self.summarize, transcript, style) for style in styles
            }
            wait(futures.values(), return_when=ALL_COMPLETED)

        results: dict[SummaryStyle, str] = {}
        failures: dict[str, str] = {}
        first_error: BaseException | None = None
        for style, fut in futures.items():
            err = fut.exception()
            if err is None:
                results[style] = fut.result()
                continue
            failures[style.value] = err.code if isinstance(err, AppError) else type(err).__name__
            if first_error is None:
                first_error = err

        if first_error is not None:
            log.warning(
                "summary_fanout_failed",
                extra={"payload": {"failures": failures, "succeeded": [s.value for s in results]}},
            )
            if not isinstance(first_error, AppError):
                raise first_error
            raise SummaryGenerationError(first_error.message, failures, first_error) from first_error

        return results
