"""
Фабрики внешних провайдеров по настройкам.

Провайдеры создаются на каждый вызов пайплайна: между вызовами нет общего состояния.
"""

from __future__ import annotations

from consult_transcriber.common.config import get_settings
from consult_transcriber.llm.base import LLMProvider
from consult_transcriber.llm.mock import MockLLMProvider
from consult_transcriber.stt.base import STTProvider
from consult_transcriber.stt.mock import MockSTTProvider


def build_stt_provider() -> STTProvider:
    provider = (get_settings().stt_provider or "").strip().lower()

    if provider == "mock":
        return MockSTTProvider()
    if provider == "openai":
        from consult_transcriber.stt.openai_whisper import OpenAIWhisperProvider

        return OpenAIWhisperProvider()
    if provider == "whisper_local":
        from consult_transcriber.stt.whisper_local import WhisperLocalProvider

        return WhisperLocalProvider()
    raise RuntimeError(f"Unsupported STT_PROVIDER={provider}")


def build_llm_provider() -> LLMProvider:
    provider = (get_settings().llm_provider or "").strip().lower()

    if provider == "mock":
        return MockLLMProvider()
    if provider == "openai_compat":
        from consult_transcriber.llm.openai_compat import OpenAICompatProvider

        return OpenAICompatProvider()
    raise RuntimeError(f"Unsupported LLM_PROVIDER={provider}")
