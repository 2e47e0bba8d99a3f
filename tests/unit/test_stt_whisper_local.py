from __future__ import annotations

from types import SimpleNamespace

import pytest

pytest.importorskip("faster_whisper")
np = pytest.importorskip("numpy")

from consult_transcriber.common.errors import ProviderError  # noqa: E402
from consult_transcriber.stt import whisper_local  # noqa: E402


class _FakeModel:
    def __init__(self):
        self.kwargs = None

    def transcribe(self, wav, **kwargs):
        self.kwargs = kwargs
        segments = [
            SimpleNamespace(text=" Hello doctor. "),
            SimpleNamespace(text=" I have a cough. "),
        ]
        return iter(segments), SimpleNamespace(duration=4.5)


def _provider(monkeypatch, model) -> whisper_local.WhisperLocalProvider:
    monkeypatch.setattr(whisper_local, "_get_model", lambda *a: model)
    return whisper_local.WhisperLocalProvider(vad_filter=False, beam_size=2)


def test_segments_joined_with_fixed_language(monkeypatch) -> None:
    model = _FakeModel()
    monkeypatch.setattr(
        whisper_local, "_decode_audio_to_float32", lambda b: np.ones(16000, dtype=np.float32)
    )

    res = _provider(monkeypatch, model).transcribe(audio=b"webm", language="en")

    assert res.text == "Hello doctor. I have a cough."
    assert res.duration_sec == 4.5
    assert model.kwargs == {"language": "en", "vad_filter": False, "beam_size": 2}


def test_silent_audio_gives_empty_text(monkeypatch) -> None:
    model = _FakeModel()
    monkeypatch.setattr(
        whisper_local, "_decode_audio_to_float32", lambda b: np.zeros(0, dtype=np.float32)
    )

    res = _provider(monkeypatch, model).transcribe(audio=b"webm", language="en")

    assert res.text == ""
    assert model.kwargs is None


def test_undecodable_audio_is_provider_error(monkeypatch) -> None:
    with pytest.raises(ProviderError):
        _provider(monkeypatch, _FakeModel()).transcribe(audio=b"not audio at all", language="en")
