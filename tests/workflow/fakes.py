from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from edueasy.common.dtos import DocumentRecord, DocumentType, LocalFile
from edueasy.common.errors import RepositoryError, StorageError
from edueasy.ingest.storage_gateway import StoredObject
from edueasy.workflow.services import WorkflowServices


def make_file(
    name: str = "id.png", content_type: str = "image/png", size: int = 1024
) -> LocalFile:
    return LocalFile(name=name, content_type=content_type, data=b"x" * size)


class FakeStorage:
    def __init__(
        self,
        *,
        fail_upload: Optional[str] = None,
        fail_remove: Optional[str] = None,
        fail_signed_url: Optional[str] = None,
        fail_types: Optional[List[DocumentType]] = None,
    ):
        self.bucket = "user_documents"
        self.objects: Dict[str, LocalFile] = {}
        self.removed: List[str] = []
        self.signed: List[str] = []
        self.store_calls = 0
        self.fail_upload = fail_upload
        self._fail_remove = fail_remove
        self._fail_signed_url = fail_signed_url
        self._fail_types = [item.value for item in fail_types or []]
        self._lock = threading.Lock()

    def store_document(self, path: str, file: LocalFile) -> StoredObject:
        self.store_calls += 1
        if self.fail_upload or any(f"/{value}/" in path for value in self._fail_types):
            raise StorageError(self.fail_upload or "Upload failed")
        with self._lock:
            self.objects[path] = file
        return StoredObject(path=path, public_url=f"https://cdn.test/{path}")

    def remove(self, path: str) -> None:
        if self._fail_remove:
            raise StorageError(self._fail_remove)
        with self._lock:
            self.objects.pop(path, None)
            self.removed.append(path)

    def signed_url(self, path: str, expires_in: int = 60) -> str:
        if self._fail_signed_url:
            raise StorageError(self._fail_signed_url)
        self.signed.append(path)
        return f"https://signed.test/{path}?ttl={expires_in}"


class FakeRepository:
    def __init__(
        self,
        *,
        fail_insert: Optional[str] = None,
        fail_notification: Optional[str] = None,
        existing: Optional[Dict[DocumentType, DocumentRecord]] = None,
    ):
        self.rows: Dict[str, DocumentRecord] = {}
        self.notifications: List[Dict[str, str]] = []
        self.existing = existing or {}
        self._fail_insert = fail_insert
        self._fail_notification = fail_notification
        self._lock = threading.Lock()

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
        if self._fail_insert:
            raise RepositoryError(self._fail_insert)
        record = DocumentRecord(
            id=document_id,
            user_id=user_id,
            document_type=document_type,
            file_path=file_path,
            application_id=application_id,
            storage_url=storage_url,
            is_resubmission=is_resubmission,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self.rows[document_id] = record
        return record

    def fetch_latest_for_application(
        self, user_id: str, application_id: Optional[str]
    ) -> Dict[DocumentType, DocumentRecord]:
        return dict(self.existing)

    def create_notification(
        self,
        *,
        user_id: str,
        document_id: str,
        title: str,
        message: str,
        notification_type: str,
    ) -> None:
        if self._fail_notification:
            raise RepositoryError(self._fail_notification)
        self.notifications.append(
            {
                "user_id": user_id,
                "document_id": document_id,
                "title": title,
                "message": message,
                "notification_type": notification_type,
            }
        )


class FakeVerificationClient:
    def __init__(self, response: Optional[Dict[str, object]] = None, error: Optional[Exception] = None):
        self.response = response if response is not None else {
            "success": True,
            "status": "approved",
            "confidence": 0.97,
        }
        self.error = error
        self.calls: List[Dict[str, object]] = []

    def request_verification(
        self,
        *,
        document_id: str,
        user_id: str,
        document_type: DocumentType,
        image_url: str,
    ) -> Dict[str, object]:
        self.calls.append(
            {
                "document_id": document_id,
                "user_id": user_id,
                "document_type": document_type,
                "image_url": image_url,
            }
        )
        if self.error:
            raise self.error
        return dict(self.response)


def make_services(
    *,
    storage: Optional[FakeStorage] = None,
    repository: Optional[FakeRepository] = None,
    verification_client: Optional[FakeVerificationClient] = None,
    auto_verify: bool = True,
    require_verification: bool = False,
) -> WorkflowServices:
    return WorkflowServices(
        repository=repository or FakeRepository(),  # type: ignore[arg-type]
        storage=storage or FakeStorage(),  # type: ignore[arg-type]
        verification_client=verification_client or FakeVerificationClient(),
        auto_verify=auto_verify,
        require_verification=require_verification,
    )
