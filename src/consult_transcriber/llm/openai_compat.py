from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import ErrCode, ProviderError
from consult_transcriber.common.utils import text_head

from .base import LLMProvider, LLMResult

log = logging.getLogger(__name__)


@dataclass
class OpenAICompatConfig:
    """Настройки OpenAI-compatible API."""

    api_base: str
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 2048
    timeout_s: int = 60


class OpenAICompatProvider(LLMProvider):
    """Минимальный провайдер LLM через OpenAI-compatible /chat/completions."""

    name = "openai_compat"

    def __init__(self, cfg: OpenAICompatConfig | None = None) -> None:
        if cfg is None:
            s = get_settings()
            if not s.openai_api_base:
                raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "OPENAI_API_BASE не задан")
            if not s.openai_api_key:
                raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "OPENAI_API_KEY не задан")
            cfg = OpenAICompatConfig(
                api_base=s.openai_api_base,
                api_key=s.openai_api_key,
                model=s.llm_model_id,
                temperature=float(s.llm_temperature),
                max_tokens=int(s.llm_max_tokens),
                timeout_s=int(s.llm_request_timeout_sec or 60),
            )
        self.cfg = cfg

    def complete_text(self, *, system: str, user: str) -> LLMResult:
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_tokens,
        }

        url = self.cfg.api_base.rstrip("/") + "/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.cfg.api_key}",
            "Content-Type": "application/json",
        }

        try:
            resp = requests.post(url, headers=headers, json=payload, timeout=self.cfg.timeout_s)
        except requests.RequestException as e:
            log.error(
                "llm_http_error",
                extra={"payload": {"provider": self.name, "err": str(e)}},
            )
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Ошибка HTTP при вызове LLM",
                {"err": str(e)},
            ) from e

        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                f"LLM вернул ошибку: {text_head(resp.text, 300)}",
                {"status": resp.status_code},
            )

        try:
            data = resp.json()
        except Exception as e:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "LLM вернул невалидный JSON",
                {"err": str(e), "text_head": text_head(resp.text)},
            ) from e

        try:
            text = data["choices"][0]["message"]["content"]
        except Exception as e:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Не удалось извлечь текст из ответа LLM",
                {"err": str(e), "data_head": str(data)[:500]},
            ) from e

        return LLMResult(text=str(text or ""), model=data.get("model"), usage=data.get("usage"))
