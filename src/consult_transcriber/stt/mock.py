from __future__ import annotations

from consult_transcriber.stt.base import STTProvider, STTResult


class MockSTTProvider(STTProvider):
    """Заглушка STT: возвращает предсказуемый текст для проверки пайплайна end-to-end."""

    name = "mock"

    def transcribe(self, *, audio: bytes, language: str) -> STTResult:
        text = (
            "Doctor: Good morning, what brings you in today? "
            "Patient: I have had a dry cough and a mild fever for three days. "
            f"Doctor: Let me listen to your lungs. [mock bytes={len(audio)} lang={language}]"
        )
        return STTResult(text=text, language=language)
