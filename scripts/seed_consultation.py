"""
Сидинг тестовой консультации в БД и аудио в локальное хранилище.
Используется для ручных проверок и dev-отладки (STORAGE_MODE=local_fs, RECORD_STORE=sql).
"""

from __future__ import annotations

import argparse
import uuid
from pathlib import Path

from consult_transcriber.storage.blob import LocalFsObjectStore
from consult_transcriber.storage.db import db_session, get_engine
from consult_transcriber.storage.models import Base, Consultation


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a consultation for manual pipeline runs")
    parser.add_argument("--doctor-id", required=True)
    parser.add_argument("--patient-id", required=True)
    parser.add_argument("--audio", type=Path, required=True, help="local audio file to upload")
    parser.add_argument("--create-tables", action="store_true", help="create tables (dev only)")
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(get_engine())

    consultation_id = str(uuid.uuid4())
    audio_key = f"{args.doctor_id}/{consultation_id}{args.audio.suffix or '.webm'}"
    LocalFsObjectStore().put_bytes(audio_key, args.audio.read_bytes())

    with db_session() as s:
        s.add(
            Consultation(
                id=consultation_id,
                doctor_id=args.doctor_id,
                patient_id=args.patient_id,
                audio_url=audio_key,
            )
        )

    print("Seeded consultation:", consultation_id)
    print("Audio path:", audio_key)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
