"""
Mock LLM для тестов и dev.

Назначение:
- гонять пайплайн без реальных вызовов LLM
- сохранять структуру ответа (секции SOAP, коды), а не точный текст
"""

from __future__ import annotations

from .base import LLMProvider, LLMResult


class MockLLMProvider(LLMProvider):
    name = "mock"

    def complete_text(self, *, system: str, user: str) -> LLMResult:
        if "SOAP" in system:
            text = (
                "S (Subjective):\n- Dry cough and mild fever for three days.\n\n"
                "O (Objective):\n- Lungs auscultated.\n\n"
                "A (Assessment):\n- Acute upper respiratory infection (SNOMED-CT: 54150009)\n\n"
                "P (Plan):\n- Rest, fluids, paracetamol as needed. Follow-up in one week.\n\n"
                "SNOMED-CT Codes:\n- 54150009 Upper respiratory infection"
            )
        else:
            text = f"mock_summary chars={len(user)}"
        return LLMResult(text=text, model="mock", usage={"mock": True})
