"""Upload, remove and link student documents in Supabase Storage."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from storage3.exceptions import StorageApiError

from ..common.dtos import DocumentType, LocalFile
from ..common.errors import StorageError

SIGNED_URL_TTL_SECONDS = 60
UNASSIGNED_APPLICATION = "unassigned"


@dataclass(slots=True, frozen=True)
class StoredObject:
    """Storage key plus the URL recorded alongside the metadata row."""

    path: str
    public_url: Optional[str] = None


class DocumentStorageGateway:
    """Encapsulates Supabase Storage operations for uploaded documents."""

    def __init__(self, client: Any, bucket: str):
        self._client = client
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def store_document(self, path: str, file: LocalFile) -> StoredObject:
        bucket = self._client.storage.from_(self._bucket)
        options = {"content-type": file.content_type, "cache-control": "3600"}
        try:
            response = bucket.upload(path, file.data, options)
        except StorageApiError as exc:
            raise StorageError(_storage_message(exc)) from exc
        except Exception as exc:
            raise StorageError(str(exc) or "Upload failed") from exc
        if not response:
            raise StorageError("Supabase did not acknowledge document upload")
        stored_path = _response_path(response) or path
        return StoredObject(path=stored_path, public_url=self.public_url(stored_path))

    def remove(self, path: str) -> None:
        bucket = self._client.storage.from_(self._bucket)
        try:
            bucket.remove([path])
        except StorageApiError as exc:
            raise StorageError(_storage_message(exc)) from exc
        except Exception as exc:
            raise StorageError(str(exc)) from exc

    def public_url(self, path: str) -> Optional[str]:
        bucket = self._client.storage.from_(self._bucket)
        try:
            url = bucket.get_public_url(path)
        except Exception:  # pragma: no cover - private buckets may refuse
            return None
        return str(url).rstrip("?") if url else None

    def signed_url(self, path: str, expires_in: int = SIGNED_URL_TTL_SECONDS) -> str:
        """Create a short-lived URL the verification function can download."""

        bucket = self._client.storage.from_(self._bucket)
        try:
            payload = bucket.create_signed_url(path, expires_in)
        except StorageApiError as exc:
            raise StorageError(_storage_message(exc)) from exc
        except Exception as exc:
            raise StorageError(str(exc)) from exc
        url = None
        if isinstance(payload, Mapping):
            url = payload.get("signedURL") or payload.get("signedUrl")
        if not url:
            raise StorageError(f"Supabase returned no signed URL for {path}")
        return str(url)


def build_document_path(
    *,
    user_id: str,
    application_id: Optional[str],
    document_type: DocumentType,
    document_id: str,
    filename: str,
) -> str:
    """Storage key: users/{user}/applications/{app}/{type}/{id}-{name}."""

    application = application_id or UNASSIGNED_APPLICATION
    return (
        f"users/{user_id}/applications/{application}/"
        f"{document_type.value}/{document_id}-{_sanitize_filename(filename)}"
    )


def _sanitize_filename(name: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9._-]+", "-", name.strip())
    return safe.strip("-") or "document"


def _response_path(response: Any) -> Optional[str]:
    if isinstance(response, Mapping):
        value = response.get("path")
        return str(value) if value else None
    value = getattr(response, "path", None)
    return str(value) if value else None


def _storage_message(error: StorageApiError) -> str:
    message = getattr(error, "message", None)
    if message:
        return str(message)
    payload = error.args[0] if error.args else {}
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return str(error)
