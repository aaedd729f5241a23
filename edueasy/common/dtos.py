"""Shared DTOs used across workflow modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class DocumentType(str, Enum):
    """Fixed document categories collected for an application."""

    ID_DOCUMENT = "idDocument"
    PROOF_OF_RESIDENCE = "proofOfResidence"
    GRADE_11_RESULTS = "grade11Results"
    GRADE_12_RESULTS = "grade12Results"


DOCUMENT_LABELS: Dict[DocumentType, str] = {
    DocumentType.ID_DOCUMENT: "ID Document",
    DocumentType.PROOF_OF_RESIDENCE: "Proof of Residence",
    DocumentType.GRADE_11_RESULTS: "Grade 11 Results",
    DocumentType.GRADE_12_RESULTS: "Grade 12 Results",
}

DOCUMENT_DESCRIPTIONS: Dict[DocumentType, str] = {
    DocumentType.ID_DOCUMENT: "Upload your South African ID or passport",
    DocumentType.PROOF_OF_RESIDENCE: "Upload a utility bill or bank statement not older than 3 months",
    DocumentType.GRADE_11_RESULTS: "Upload your final Grade 11 results",
    DocumentType.GRADE_12_RESULTS: "Upload your latest Grade 12 results",
}


class StepName(str, Enum):
    SELECT = "Select"
    UPLOAD = "Upload"
    VERIFY = "Verify"
    COMPLETE = "Complete"


class StepStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETE = "complete"
    ERROR = "error"


class VerificationOutcome(str, Enum):
    """Terminal results returned by the verification function."""

    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_RESUBMISSION = "needs_resubmission"

    @property
    def is_rejection(self) -> bool:
        return self is not VerificationOutcome.APPROVED


@dataclass(slots=True, frozen=True)
class LocalFile:
    """File selected by the student, held in memory until uploaded."""

    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


@dataclass(slots=True, frozen=True)
class RetryData:
    """Last attempted file, kept so a failed upload can be replayed."""

    file: LocalFile
    document_type: DocumentType


@dataclass(slots=True, frozen=True)
class VerificationResult:
    outcome: VerificationOutcome
    checked_at: datetime
    reason: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(slots=True)
class DocumentSlot:
    """Upload and verification state for one document category."""

    file: Optional[LocalFile] = None
    uploading: bool = False
    progress: int = 0
    error: Optional[str] = None
    uploaded: bool = False
    document_id: Optional[str] = None
    file_path: Optional[str] = None
    verification_triggered: bool = False
    previously_rejected: bool = False
    is_resubmission: bool = False
    retry_data: Optional[RetryData] = None
    verification: Optional[VerificationResult] = None
    verification_error: Optional[str] = None


@dataclass(slots=True, frozen=True)
class UploadStep:
    name: StepName
    status: StepStatus


@dataclass(slots=True)
class ProcessResult:
    """Outcome of validating and preparing a selected file."""

    valid: bool
    file: Optional[LocalFile] = None
    error: Optional[str] = None


@dataclass(slots=True)
class UploadResult:
    """Outcome of pushing a file to storage and recording its row."""

    success: bool
    document_id: Optional[str] = None
    file_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(slots=True)
class DocumentRecord:
    """Represents one row of the `documents` table."""

    id: str
    user_id: str
    document_type: DocumentType
    file_path: str
    application_id: Optional[str] = None
    storage_url: Optional[str] = None
    verification_status: str = "pending"
    rejection_reason: Optional[str] = None
    is_resubmission: bool = False
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class DocumentInfo:
    """Uploaded document summary handed to application submission."""

    id: str
    name: str
    type: str
    size: int
    uploaded_at: datetime
    path: str
    document_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "uploadedAt": self.uploaded_at.isoformat(),
            "path": self.path,
            "documentId": self.document_id,
        }
