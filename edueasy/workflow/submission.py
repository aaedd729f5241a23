"""Hand-off of uploaded documents to application submission."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from ..common.dtos import DocumentInfo, DocumentType, VerificationOutcome
from .state_store import UploadStateStore


class ApplicationDocuments:
    """The `documents` collection read by application submission.

    Updated per document type by the uploader; assembled read-only at
    submission time.
    """

    def __init__(self, application_id: Optional[str] = None) -> None:
        self._application_id = application_id
        self._entries: Dict[DocumentType, DocumentInfo] = {}
        self._lock = threading.Lock()

    @property
    def application_id(self) -> Optional[str]:
        return self._application_id

    def record(self, document_type: DocumentType, info: DocumentInfo) -> None:
        with self._lock:
            self._entries[document_type] = info

    def discard(self, document_type: DocumentType) -> None:
        with self._lock:
            self._entries.pop(document_type, None)

    def get(self, document_type: DocumentType) -> Optional[DocumentInfo]:
        with self._lock:
            return self._entries.get(document_type)

    def entries(self) -> Dict[DocumentType, DocumentInfo]:
        with self._lock:
            return dict(self._entries)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize as `{<documentType>: {...}, "applicationId": ...}`."""

        payload: Dict[str, Any] = {
            document_type.value: info.to_payload()
            for document_type, info in self.entries().items()
        }
        payload["applicationId"] = self._application_id
        return payload


def missing_documents(store: UploadStateStore) -> List[DocumentType]:
    """Document types that have not reached `uploaded=True`."""

    return [
        document_type
        for document_type, slot in store.snapshot().items()
        if not slot.uploaded
    ]


def rejected_documents(store: UploadStateStore) -> List[DocumentType]:
    return [
        document_type
        for document_type, slot in store.snapshot().items()
        if slot.verification is not None and slot.verification.outcome.is_rejection
    ]


def unverified_documents(store: UploadStateStore) -> List[DocumentType]:
    return [
        document_type
        for document_type, slot in store.snapshot().items()
        if slot.verification is None
        or slot.verification.outcome is not VerificationOutcome.APPROVED
    ]


def can_submit(store: UploadStateStore, *, require_verification: bool = False) -> bool:
    """True once every document is uploaded and none was rejected.

    With `require_verification`, every document must also be approved.
    """

    if missing_documents(store) or rejected_documents(store):
        return False
    if require_verification and unverified_documents(store):
        return False
    return True
