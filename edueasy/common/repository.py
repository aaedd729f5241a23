"""Supabase-backed repository for uploaded document metadata."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from httpx import (
    ConnectError,
    ReadError,
    ReadTimeout,
    RemoteProtocolError,
    WriteError,
    WriteTimeout,
)
from postgrest.exceptions import APIError as PostgrestAPIError

from .dtos import DocumentRecord, DocumentType
from .errors import MalformedResponseError, RepositoryError

MAX_TRANSIENT_RETRIES = 3
RETRY_BASE_DELAY_SECONDS = 0.2
PENDING_STATUS = "pending"

_TRANSIENT_HTTP_ERRORS = (
    ConnectError,
    ReadError,
    ReadTimeout,
    RemoteProtocolError,
    WriteError,
    WriteTimeout,
)


class DocumentRepository:
    """High-level CRUD helper that wraps the Supabase client."""

    def __init__(
        self,
        client: Any,
        table: str = "documents",
        *,
        notifications_table: str = "notifications",
    ):
        self._client = client
        self._table = table
        self._notifications_table = notifications_table

    def insert_document(
        self,
        *,
        document_id: str,
        user_id: str,
        application_id: Optional[str],
        document_type: DocumentType,
        file_path: str,
        storage_url: Optional[str],
        is_resubmission: bool,
    ) -> DocumentRecord:
        payload = {
            "id": document_id,
            "user_id": user_id,
            "application_id": application_id,
            "document_type": document_type.value,
            "file_path": file_path,
            "storage_url": storage_url,
            "verification_status": PENDING_STATUS,
            "is_resubmission": is_resubmission,
        }
        response = self._execute(self._client.table(self._table).insert(payload))
        return self._to_record(self._single(response.data))

    def fetch_latest_for_application(
        self, user_id: str, application_id: Optional[str]
    ) -> Dict[DocumentType, DocumentRecord]:
        """Return the newest row per document type for one application."""

        query = (
            self._client.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        if application_id:
            query = query.eq("application_id", application_id)
        else:
            query = query.is_("application_id", "null")
        response = self._execute(query)
        latest: Dict[DocumentType, DocumentRecord] = {}
        for row in response.data or []:
            try:
                record = self._to_record(row)
            except MalformedResponseError:
                continue
            latest.setdefault(record.document_type, record)
        return latest

    def create_notification(
        self,
        *,
        user_id: str,
        document_id: str,
        title: str,
        message: str,
        notification_type: str,
    ) -> None:
        payload = {
            "user_id": user_id,
            "related_document_id": document_id,
            "title": title,
            "message": message,
            "notification_type": notification_type,
        }
        self._execute(self._client.table(self._notifications_table).insert(payload))

    def _execute(self, builder: Any) -> Any:
        attempts = 0
        while True:
            try:
                return builder.execute()
            except PostgrestAPIError as exc:
                raise _map_postgrest_error(exc) from exc
            except Exception as exc:
                if attempts >= MAX_TRANSIENT_RETRIES or not _is_transient_transport_error(
                    exc
                ):
                    raise RepositoryError(str(exc)) from exc
                attempts += 1
                time.sleep(RETRY_BASE_DELAY_SECONDS * attempts)

    @staticmethod
    def _single(rows: Optional[Iterable[Dict[str, Any]]]) -> Dict[str, Any]:
        rows = list(rows or [])
        if not rows:
            raise MalformedResponseError("Supabase returned no rows for mutation")
        return rows[0]

    @staticmethod
    def _to_record(payload: Dict[str, Any]) -> DocumentRecord:
        try:
            document_id = payload["id"]
            user_id = payload["user_id"]
            file_path = payload["file_path"]
            document_type = DocumentType(payload["document_type"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"Unexpected documents row: {exc}") from exc
        if not document_id or not file_path:
            raise MalformedResponseError("Documents row is missing id or file_path")
        return DocumentRecord(
            id=str(document_id),
            user_id=str(user_id),
            document_type=document_type,
            file_path=str(file_path),
            application_id=payload.get("application_id"),
            storage_url=payload.get("storage_url"),
            verification_status=str(payload.get("verification_status") or PENDING_STATUS),
            rejection_reason=payload.get("rejection_reason"),
            is_resubmission=bool(payload.get("is_resubmission")),
            created_at=_parse_timestamp(payload.get("created_at")),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _map_postgrest_error(error: PostgrestAPIError) -> RepositoryError:
    if _is_unique_violation(error):
        return RepositoryError("A document with this identifier already exists.")
    message = getattr(error, "message", None) or getattr(error, "details", None)
    return RepositoryError(str(message or error))


def _is_unique_violation(error: PostgrestAPIError) -> bool:
    code = getattr(error, "code", None)
    return code is not None and str(code) == "23505"


def _is_transient_transport_error(exc: Exception) -> bool:
    for current in _exception_chain(exc):
        if isinstance(current, _TRANSIENT_HTTP_ERRORS):
            return True
        message = str(current).lower()
        if (
            "server disconnected" in message
            or "connection terminated" in message
            or "connection reset" in message
            or "remote protocol error" in message
            or "goaway" in message
            or "broken pipe" in message
        ):
            return True
    return False


def _exception_chain(exc: Exception) -> List[BaseException]:
    chain: List[BaseException] = []
    current: Optional[BaseException] = exc
    for _ in range(6):
        if current is None or current in chain:
            break
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain
