"""
STT через OpenAI-compatible endpoint /audio/transcriptions.

Что делает:
- multipart: file (audio.webm) + model + language
- ответ {"text": "..."}
- любой не-2xx (429, битое аудио), таймаут, сеть -> ProviderError без ретраев
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import ErrCode, ProviderError
from consult_transcriber.common.utils import text_head

from .base import STTProvider, STTResult

log = logging.getLogger(__name__)


@dataclass
class OpenAIWhisperConfig:
    """Настройки OpenAI-compatible STT."""

    api_base: str
    api_key: str
    model: str = "whisper-1"
    timeout_s: int = 120
    filename: str = "audio.webm"


class OpenAIWhisperProvider(STTProvider):
    name = "openai"

    def __init__(self, cfg: OpenAIWhisperConfig | None = None) -> None:
        if cfg is None:
            s = get_settings()
            if not s.openai_api_key:
                raise ProviderError(ErrCode.STT_PROVIDER_ERROR, "OPENAI_API_KEY не задан")
            cfg = OpenAIWhisperConfig(
                api_base=s.openai_api_base,
                api_key=s.openai_api_key,
                model=s.stt_model,
                timeout_s=int(s.stt_timeout_sec or 120),
            )
        self.cfg = cfg

    def transcribe(self, *, audio: bytes, language: str) -> STTResult:
        url = self.cfg.api_base.rstrip("/") + "/audio/transcriptions"
        headers = {"Authorization": f"Bearer {self.cfg.api_key}"}
        files = {"file": (self.cfg.filename, audio, "audio/webm")}
        data = {"model": self.cfg.model, "language": language}

        try:
            resp = requests.post(
                url, headers=headers, files=files, data=data, timeout=self.cfg.timeout_s
            )
        except requests.Timeout as e:
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR, "Таймаут STT провайдера", {"err": str(e)}
            ) from e
        except requests.RequestException as e:
            log.error("stt_http_error", extra={"payload": {"provider": self.name, "err": str(e)}})
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR, "Ошибка HTTP при вызове STT", {"err": str(e)}
            ) from e

        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR,
                f"STT вернул ошибку: {text_head(resp.text, 300)}",
                {"status": resp.status_code},
            )

        try:
            payload = resp.json()
            text = payload["text"]
        except Exception as e:
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR,
                "STT вернул неожиданный ответ",
                {"err": str(e), "text_head": text_head(resp.text)},
            ) from e

        return STTResult(text=str(text or "").strip(), language=language)
