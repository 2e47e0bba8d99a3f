"""
Шаблоны промптов для саммари консультаций.

Шаблоны — непрозрачная конфигурация: стиль -> (system, user).
Транскрипт подставляется в user-промпт как есть.
"""

from __future__ import annotations

from dataclasses import dataclass

from consult_transcriber.domain.enums import SummaryStyle


@dataclass(frozen=True)
class PromptTemplate:
    system: str
    user: str

    def render(self, transcript: str) -> tuple[str, str]:
        return self.system, self.user.format(transcript=transcript)


_ASSISTANT = "You are a medical assistant that summarizes doctor-patient consultations in English."

SIMPLE = PromptTemplate(
    system=_ASSISTANT + " You write for the patient: plain words, no jargon, short sentences.",
    user=(
        "Summarize this consultation for the patient in 3 to 6 short sentences.\n"
        "Explain what was discussed, what the doctor found and what the patient should do next.\n"
        "Avoid medical jargon; if a medical term is unavoidable, explain it.\n\n"
        "Transcript:\n{transcript}"
    ),
)

DETAILED = PromptTemplate(
    system=_ASSISTANT + " You write for an informed patient who wants the full picture.",
    user=(
        "Write a detailed summary of this consultation.\n"
        "Cover: reason for the visit, symptoms and history, examination and measurements, "
        "the doctor's conclusion, treatment and medication (with dosage if mentioned), "
        "follow-up and advice. Use short paragraphs with headings.\n\n"
        "Transcript:\n{transcript}"
    ),
)

TECHNICAL = PromptTemplate(
    system=_ASSISTANT + " You write for clinicians: precise medical terminology, concise.",
    user=(
        "Write a technical clinical summary of this consultation for a colleague.\n"
        "Use standard medical terminology and abbreviations. Include presenting complaint, "
        "relevant history, findings, working/differential diagnosis and management plan.\n\n"
        "Transcript:\n{transcript}"
    ),
)

SOAP = PromptTemplate(
    system=(
        "You are a medical assistant that structures consultations in the SOAP format "
        "(Subjective, Objective, Assessment, Plan) in English. You add relevant SNOMED-CT "
        "codes for diagnoses, procedures, findings and medication."
    ),
    user=(
        "Create a structured summary of this consultation in SOAP format.\n\n"
        "Use exactly these section headers and add SNOMED-CT codes inline as "
        "'(SNOMED-CT: <code>)':\n\n"
        "S (Subjective):\n"
        "- Complaints and symptoms as described by the patient\n"
        "- Medical history\n\n"
        "O (Objective):\n"
        "- Physical examination\n"
        "- Measurements (blood pressure, temperature, etc.)\n"
        "- Observations\n\n"
        "A (Assessment):\n"
        "- Diagnosis or differential diagnosis\n"
        "- Interpretation of findings\n\n"
        "P (Plan):\n"
        "- Treatment\n"
        "- Medication\n"
        "- Follow-up appointments\n"
        "- Advice\n\n"
        "SNOMED-CT Codes:\n"
        "List all codes used above for diagnoses, procedures, findings and medication.\n\n"
        "Transcript:\n{transcript}"
    ),
)

TEMPLATES: dict[SummaryStyle, PromptTemplate] = {
    SummaryStyle.simple: SIMPLE,
    SummaryStyle.detailed: DETAILED,
    SummaryStyle.technical: TECHNICAL,
    SummaryStyle.soap: SOAP,
}

# Маркеры секций SOAP-заметки (для проверки структуры ответа)
SOAP_SECTION_MARKERS: tuple[str, ...] = (
    "S (Subjective)",
    "O (Objective)",
    "A (Assessment)",
    "P (Plan)",
)


def template_for(style: SummaryStyle) -> PromptTemplate:
    return TEMPLATES[style]
