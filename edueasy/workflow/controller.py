"""Workflow controller wiring user actions into the upload components."""

from __future__ import annotations

import mimetypes
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from ..common.dtos import (
    DocumentInfo,
    DocumentRecord,
    DocumentType,
    LocalFile,
    ProcessResult,
    UploadResult,
    UploadStep,
    VerificationOutcome,
    VerificationResult,
)
from ..common.errors import SlotStateError, UploadInProgressError
from ..common.logging import get_logger
from ..ingest.image_compression import compress_image
from .file_processor import Compressor, FileProcessor
from .services import WorkflowServices
from .state_store import UploadStateStore
from .step_sequencer import derive_steps
from .submission import ApplicationDocuments, can_submit, missing_documents
from .uploader import RemoteUploader
from .verification import VerificationTrigger

LOGGER = get_logger(__name__)

IN_FLIGHT_MESSAGE = "An upload for this document is already in progress"
_TERMINAL_STATUSES = {
    "approved": VerificationOutcome.APPROVED,
    "rejected": VerificationOutcome.REJECTED,
    "request_resubmission": VerificationOutcome.NEEDS_RESUBMISSION,
}


@dataclass(slots=True)
class SelectionOutcome:
    """What happened to one file selection, from validation to verification."""

    document_type: DocumentType
    accepted: bool
    processed: Optional[ProcessResult] = None
    upload: Optional[UploadResult] = None
    verification: Optional[VerificationResult] = None
    error: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return bool(self.upload and self.upload.success)


class DocumentUploadWorkflow:
    """One student's multi-document upload session.

    Owns its state store and documents collection; nothing is shared between
    workflow instances.
    """

    def __init__(
        self,
        services: WorkflowServices,
        *,
        user_id: Optional[str],
        application_id: Optional[str] = None,
        compressor: Compressor = compress_image,
    ) -> None:
        self._services = services
        self._user_id = user_id
        self._application_id = application_id
        self.store = UploadStateStore()
        self.documents = ApplicationDocuments(application_id)
        self.current_document_type: Optional[DocumentType] = None
        self._processor = FileProcessor(
            self.store,
            max_size_bytes=services.max_upload_bytes,
            compression_threshold_bytes=services.compression_threshold_bytes,
            compressor=compressor,
        )
        self._uploader = RemoteUploader(
            self.store, services.storage, services.repository, self.documents
        )
        self._verifier = VerificationTrigger(
            self.store, services.verification_client, services.storage, user_id
        )

    def select_file(
        self,
        document_type: Union[DocumentType, str],
        file: Optional[LocalFile],
        *,
        is_resubmission: Optional[bool] = None,
    ) -> SelectionOutcome:
        """Validate, upload and (optionally) verify a newly selected file."""

        document_type = DocumentType(document_type)
        self.current_document_type = document_type
        slot = self.store.get(document_type)
        if slot.uploading:
            return _refused(document_type)
        if is_resubmission is None:
            is_resubmission = slot.previously_rejected

        try:
            processed = self._processor.process(file, document_type, is_resubmission)
        except UploadInProgressError:
            return _refused(document_type)
        if not processed.valid or processed.file is None:
            return SelectionOutcome(
                document_type=document_type,
                accepted=False,
                processed=processed,
                error=processed.error,
            )

        upload = self._uploader.upload(
            processed.file,
            document_type,
            self._user_id,
            self._application_id,
            is_resubmission,
            original=file,
        )
        verification = None
        if upload.success and self._services.auto_verify:
            verification = self._verifier.verify(document_type)
        return SelectionOutcome(
            document_type=document_type,
            accepted=True,
            processed=processed,
            upload=upload,
            verification=verification,
            error=upload.error,
        )

    def retry(self, document_type: Union[DocumentType, str]) -> Optional[SelectionOutcome]:
        """Replay the last failed file as a resubmission.

        Without retry data the slot is cleared back to a selectable state.
        """

        document_type = DocumentType(document_type)
        slot = self.store.get(document_type)
        if slot.uploading:
            return _refused(document_type)
        if slot.retry_data is None:
            self.store.set(
                document_type, uploading=False, progress=0, error=None, uploaded=False
            )
            return None
        retry_file = slot.retry_data.file
        self.store.set(document_type, error=None, retry_data=None)
        LOGGER.info("retrying_upload", document_type=document_type.value)
        return self.select_file(document_type, retry_file, is_resubmission=True)

    def resubmit(
        self, document_type: Union[DocumentType, str], file: LocalFile
    ) -> SelectionOutcome:
        """Upload a replacement for a document the verifier did not accept."""

        return self.select_file(document_type, file, is_resubmission=True)

    def verify(self, document_type: Union[DocumentType, str]) -> Optional[VerificationResult]:
        document_type = DocumentType(document_type)
        self.current_document_type = document_type
        return self._verifier.verify(document_type)

    def steps_for(
        self, document_type: Union[DocumentType, str, None] = None
    ) -> List[UploadStep]:
        target = document_type or self.current_document_type or DocumentType.ID_DOCUMENT
        return derive_steps(self.store.get(target))

    def upload_many(
        self,
        selections: Mapping[DocumentType, LocalFile],
        *,
        max_workers: int = 4,
    ) -> Dict[DocumentType, SelectionOutcome]:
        """Run selections for different document types concurrently."""

        items = [(DocumentType(key), file) for key, file in selections.items()]
        if not items:
            return {}
        if max_workers <= 1 or len(items) == 1:
            return {key: self.select_file(key, file) for key, file in items}
        outcomes: Dict[DocumentType, SelectionOutcome] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.select_file, key, file): key for key, file in items
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()
        return {key: outcomes[key] for key, _ in items}

    def restore(self) -> List[DocumentType]:
        """Seed slots from rows already stored for this application."""

        if not self._user_id:
            return []
        records = self._services.repository.fetch_latest_for_application(
            self._user_id, self._application_id
        )
        restored: List[DocumentType] = []
        for document_type, record in records.items():
            if self.store.get(document_type).uploading:
                continue
            self._restore_slot(document_type, record)
            restored.append(document_type)
        LOGGER.info(
            "slots_restored",
            count=len(restored),
            document_types=[item.value for item in restored],
        )
        return restored

    def missing_documents(self) -> List[DocumentType]:
        return missing_documents(self.store)

    def can_submit(self) -> bool:
        return can_submit(
            self.store, require_verification=self._services.require_verification
        )

    def submission_payload(self) -> Dict[str, Any]:
        """The `documents` map handed to application submission.

        Raises SlotStateError while documents are missing or rejected.
        """

        if not self.can_submit():
            missing = ", ".join(item.value for item in self.missing_documents())
            raise SlotStateError(
                f"Documents are not ready for submission (missing: {missing or 'none'})"
            )
        return self.documents.to_payload()

    def _restore_slot(self, document_type: DocumentType, record: DocumentRecord) -> None:
        verification = None
        outcome = _TERMINAL_STATUSES.get(record.verification_status)
        if outcome is not None:
            verification = VerificationResult(
                outcome=outcome,
                checked_at=record.created_at or datetime.now(timezone.utc),
                reason=record.rejection_reason,
            )
        self.store.set(
            document_type,
            uploading=False,
            uploaded=True,
            progress=100,
            error=None,
            document_id=record.id,
            file_path=record.file_path,
            is_resubmission=record.is_resubmission,
            verification=verification,
            verification_triggered=verification is not None,
            previously_rejected=bool(verification and verification.outcome.is_rejection),
        )
        name = record.file_path.rsplit("/", 1)[-1].removeprefix(f"{record.id}-")
        self.documents.record(
            document_type,
            DocumentInfo(
                id=document_type.value,
                name=name,
                type=mimetypes.guess_type(name)[0] or "application/octet-stream",
                size=0,
                uploaded_at=record.created_at or datetime.now(timezone.utc),
                path=record.file_path,
                document_id=record.id,
            ),
        )


def _refused(document_type: DocumentType) -> SelectionOutcome:
    LOGGER.info("upload_refused_in_flight", document_type=document_type.value)
    return SelectionOutcome(
        document_type=document_type, accepted=False, error=IN_FLIGHT_MESSAGE
    )
