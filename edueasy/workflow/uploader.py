"""Persist a processed file to storage and record its metadata row."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from ..common.dtos import (
    DocumentInfo,
    DocumentRecord,
    DocumentType,
    LocalFile,
    RetryData,
    UploadResult,
)
from ..common.errors import MalformedResponseError, RepositoryError, StorageError
from ..common.logging import get_logger
from ..common.repository import DocumentRepository
from ..ingest.storage_gateway import DocumentStorageGateway, build_document_path
from .state_store import UploadStateStore
from .submission import ApplicationDocuments

LOGGER = get_logger(__name__)

PROGRESS_STORED = 80
SIGNED_OUT_MESSAGE = "You must be signed in to upload documents"
RESUBMISSION_TITLE = "Document Resubmitted"
RESUBMISSION_TYPE = "document_under_review"


class RemoteUploader:
    """Storage write followed by the metadata insert, reconciled into the store."""

    def __init__(
        self,
        store: UploadStateStore,
        storage: DocumentStorageGateway,
        repository: DocumentRepository,
        documents: ApplicationDocuments,
        *,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._storage = storage
        self._repository = repository
        self._documents = documents
        self._id_factory = id_factory
        self._clock = clock

    def upload(
        self,
        file: LocalFile,
        document_type: DocumentType,
        user_id: Optional[str],
        application_id: Optional[str],
        is_resubmission: bool,
        *,
        original: Optional[LocalFile] = None,
    ) -> UploadResult:
        """Upload `file` for `document_type`.

        `original` is the file the student selected, kept as retry data when it
        differs from the processed `file`. Every failure is converted into a
        slot error; nothing is raised to the caller apart from
        UploadInProgressError when another upload owns the slot.
        """

        retry_data = RetryData(file=original or file, document_type=document_type)
        log = LOGGER.bind(document_type=document_type.value, user_id=user_id)

        if not self._store.get(document_type).uploading:
            self._store.begin_upload(document_type, file=original or file)
        else:
            self._store.set(document_type, error=None)

        if not user_id:
            log.warning("upload_rejected_signed_out")
            return self._fail(document_type, SIGNED_OUT_MESSAGE, retry_data)

        document_id = self._id_factory()
        path = build_document_path(
            user_id=user_id,
            application_id=application_id,
            document_type=document_type,
            document_id=document_id,
            filename=file.name,
        )
        try:
            stored = self._storage.store_document(path, file)
        except StorageError as exc:
            log.error("storage_write_failed", path=path, error=str(exc))
            return self._fail(document_type, str(exc), retry_data)
        self._store.set(document_type, progress=PROGRESS_STORED)

        try:
            record = self._repository.insert_document(
                document_id=document_id,
                user_id=user_id,
                application_id=application_id,
                document_type=document_type,
                file_path=stored.path,
                storage_url=stored.public_url,
                is_resubmission=is_resubmission,
            )
        except (RepositoryError, MalformedResponseError) as exc:
            log.error("metadata_insert_failed", path=stored.path, error=str(exc))
            self._remove_orphan(stored.path, document_type)
            return self._fail(document_type, str(exc), retry_data)

        self._store.set(
            document_type,
            uploading=False,
            uploaded=True,
            progress=100,
            document_id=record.id,
            file_path=record.file_path,
            error=None,
            verification_triggered=False,
            verification=None,
            verification_error=None,
            is_resubmission=is_resubmission,
            previously_rejected=False,
            retry_data=None,
        )
        self._documents.record(document_type, self._document_info(record, file))
        log.info("document_uploaded", document_id=record.id, path=record.file_path)
        if is_resubmission:
            self._notify_resubmission(record)
        return UploadResult(success=True, document_id=record.id, file_path=record.file_path)

    def _fail(
        self, document_type: DocumentType, message: str, retry_data: RetryData
    ) -> UploadResult:
        self._store.set(
            document_type,
            uploading=False,
            uploaded=False,
            progress=0,
            error=message or "Upload failed",
            retry_data=retry_data,
        )
        self._documents.discard(document_type)
        return UploadResult(success=False, error=message or "Upload failed")

    def _remove_orphan(self, path: str, document_type: DocumentType) -> None:
        try:
            self._storage.remove(path)
        except StorageError as exc:
            LOGGER.error(
                "orphaned_document_object",
                document_type=document_type.value,
                bucket=self._storage.bucket,
                path=path,
                error=str(exc),
            )
        else:
            LOGGER.info("orphan_removed", document_type=document_type.value, path=path)

    def _document_info(self, record: DocumentRecord, file: LocalFile) -> DocumentInfo:
        return DocumentInfo(
            id=record.document_type.value,
            name=file.name,
            type=file.content_type,
            size=file.size,
            uploaded_at=self._clock(),
            path=record.file_path,
            document_id=record.id,
        )

    def _notify_resubmission(self, record: DocumentRecord) -> None:
        label = _readable(record.document_type)
        try:
            self._repository.create_notification(
                user_id=record.user_id,
                document_id=record.id,
                title=RESUBMISSION_TITLE,
                message=f"Your resubmitted {label} is now under review.",
                notification_type=RESUBMISSION_TYPE,
            )
        except RepositoryError as exc:
            LOGGER.warning(
                "resubmission_notification_failed", document_id=record.id, error=str(exc)
            )


def _readable(document_type: DocumentType) -> str:
    """`proofOfResidence` -> `proof of residence`."""

    words = []
    current = ""
    for char in document_type.value:
        if char.isupper() and current:
            words.append(current)
            current = char
        else:
            current += char
    words.append(current)
    return " ".join(word.lower() for word in words)
