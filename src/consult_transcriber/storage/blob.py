"""
Object storage для аудио консультаций.

Режимы (STORAGE_MODE):
- supabase — Supabase Storage (bucket consult-audio), service-role ключ
- local_fs — файлы в AUDIO_DIR (dev/тесты/on-prem)

Контракт fetch_blob(path):
- одна попытка, без ретраев
- нет объекта -> StorageError(object_missing)
- сеть/таймаут/прочее -> StorageError(transfer_error)
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import requests

from consult_transcriber.common.config import get_settings
from consult_transcriber.common.errors import ErrCode, StorageError
from consult_transcriber.common.utils import text_head


class ObjectStore(Protocol):
    def fetch_blob(self, path: str) -> bytes: ...


# =============================================================================
# LOCAL FS
# =============================================================================
class LocalFsObjectStore:
    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir or get_settings().audio_dir).resolve()

    def _key_to_path(self, key: str) -> Path:
        # защита от path traversal
        key = key.lstrip("/")
        if not key or ".." in key.split("/"):
            raise StorageError(ErrCode.OBJECT_MISSING, "Некорректный путь объекта", {"path": key})
        return self.base_dir / key

    def put_bytes(self, key: str, data: bytes) -> str:
        """Сохранить bytes и вернуть ключ."""
        p = self._key_to_path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        return key

    def exists(self, key: str) -> bool:
        return self._key_to_path(key).exists()

    def delete(self, key: str) -> None:
        p = self._key_to_path(key)
        try:
            p.unlink()
        except FileNotFoundError:
            pass

    def fetch_blob(self, path: str) -> bytes:
        p = self._key_to_path(path)
        try:
            return p.read_bytes()
        except FileNotFoundError as e:
            raise StorageError(ErrCode.OBJECT_MISSING, "Объект не найден", {"path": path}) from e
        except OSError as e:
            raise StorageError(
                ErrCode.TRANSFER_ERROR, "Ошибка чтения объекта", {"path": path, "err": str(e)}
            ) from e


# =============================================================================
# SUPABASE STORAGE
# =============================================================================
class SupabaseObjectStore:
    # Storage API отвечает 400 с телом "Object not found" на отсутствующий ключ
    _MISSING_STATUSES = {400, 404}

    def __init__(
        self,
        *,
        base_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
        timeout_s: int | None = None,
    ) -> None:
        s = get_settings()
        self.base_url = (base_url or s.supabase_url or "").rstrip("/")
        self.service_key = service_key or s.supabase_service_role_key or ""
        self.bucket = bucket or s.audio_bucket
        self.timeout_s = int(timeout_s or s.storage_timeout_sec or 30)

        if not self.base_url:
            raise StorageError(ErrCode.TRANSFER_ERROR, "SUPABASE_URL не задан")
        if not self.service_key:
            raise StorageError(ErrCode.TRANSFER_ERROR, "SUPABASE_SERVICE_ROLE_KEY не задан")

    def fetch_blob(self, path: str) -> bytes:
        key = quote(path.lstrip("/"), safe="/")
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{key}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        try:
            resp = requests.get(url, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise StorageError(
                ErrCode.TRANSFER_ERROR, "Ошибка HTTP при загрузке аудио", {"err": str(e)}
            ) from e

        if resp.status_code in self._MISSING_STATUSES:
            raise StorageError(
                ErrCode.OBJECT_MISSING,
                "Объект не найден",
                {"path": path, "status": resp.status_code, "text_head": text_head(resp.text, 200)},
            )
        if resp.status_code >= 300:
            raise StorageError(
                ErrCode.TRANSFER_ERROR,
                "Storage вернул ошибку",
                {"path": path, "status": resp.status_code, "text_head": text_head(resp.text, 200)},
            )
        return resp.content


def build_object_store() -> ObjectStore:
    mode = (get_settings().storage_mode or "").strip().lower()
    if mode == "local_fs":
        return LocalFsObjectStore()
    if mode == "supabase":
        return SupabaseObjectStore()
    raise RuntimeError(f"Unsupported STORAGE_MODE={mode}")
