"""
Локальный STT на базе faster-whisper.

Что делает:
- принимает bytes записи консультации (webm/ogg/wav/mp3 — что угодно, что знает ffmpeg)
- декодирует через PyAV в моно float32 16kHz
- запускает Whisper модель локально с фиксированным языком

Модель грузится один раз на процесс: это веса, а не состояние вызова.
"""

from __future__ import annotations

import io
import threading

import av  # PyAV (ffmpeg bindings)
import numpy as np
from faster_whisper import WhisperModel

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import ErrCode, ProviderError

from .base import STTProvider, STTResult

_TARGET_SR = 16000
_models: dict[tuple[str, str, str], WhisperModel] = {}
_models_lock = threading.Lock()


def _decode_audio_to_float32(audio_bytes: bytes, target_sr: int = _TARGET_SR) -> np.ndarray:
    """
    Декодирует произвольный аудио-контейнер/кодек в моно float32 16kHz.
    """
    container = av.open(io.BytesIO(audio_bytes))
    stream = next(s for s in container.streams if s.type == "audio")
    resampler = av.audio.resampler.AudioResampler(format="fltp", layout="mono", rate=target_sr)

    samples: list[np.ndarray] = []
    for frame in container.decode(stream):
        for out in resampler.resample(frame):
            # to_ndarray() -> shape (channels, samples)
            arr = out.to_ndarray()
            if arr.ndim == 2:
                arr = arr[0]
            samples.append(arr.astype(np.float32))

    if not samples:
        return np.zeros((0,), dtype=np.float32)

    return np.concatenate(samples)


def _get_model(model_size: str, device: str, compute_type: str) -> WhisperModel:
    key = (model_size, device, compute_type)
    with _models_lock:
        model = _models.get(key)
        if model is None:
            model = WhisperModel(model_size, device=device, compute_type=compute_type)
            _models[key] = model
        return model


class WhisperLocalProvider(STTProvider):
    name = "whisper_local"

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        vad_filter: bool | None = None,
        beam_size: int | None = None,
    ) -> None:
        s = get_settings()

        # берём параметры из аргументов, иначе из настроек
        self.model = _get_model(
            model_size or s.whisper_model_size,
            device or s.whisper_device,
            compute_type or s.whisper_compute_type,
        )
        self.vad_filter = s.whisper_vad_filter if vad_filter is None else vad_filter
        self.beam_size = beam_size or s.whisper_beam_size

    def transcribe(self, *, audio: bytes, language: str) -> STTResult:
        try:
            wav = _decode_audio_to_float32(audio)
        except (av.error.FFmpegError, StopIteration) as e:
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR, "Не удалось декодировать аудио", {"err": str(e)[:200]}
            ) from e

        if wav.size == 0:
            return STTResult(text="", language=language, duration_sec=0.0)

        segments, info = self.model.transcribe(
            wav,
            language=language,
            vad_filter=self.vad_filter,
            beam_size=self.beam_size,
        )

        text_parts = [seg.text.strip() for seg in segments if seg.text]
        text = " ".join(t for t in text_parts if t).strip()

        return STTResult(
            text=text,
            language=language,
            duration_sec=float(getattr(info, "duration", 0.0) or 0.0),
        )
