"""Ask the verification service to check an uploaded document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError

from ..common.dtos import DocumentType, VerificationOutcome, VerificationResult
from ..common.errors import (
    MalformedResponseError,
    StorageError,
    VerificationServiceError,
)
from ..common.logging import get_logger
from ..ingest.storage_gateway import DocumentStorageGateway
from ..ingest.verification_client import VerificationClient
from .state_store import UploadStateStore

LOGGER = get_logger(__name__)

NOT_UPLOADED_MESSAGE = "Upload the document before requesting verification"
SIGNED_OUT_MESSAGE = "You must be signed in to verify documents"

_STATUS_TO_OUTCOME: Dict[str, VerificationOutcome] = {
    "approved": VerificationOutcome.APPROVED,
    "rejected": VerificationOutcome.REJECTED,
    "request_resubmission": VerificationOutcome.NEEDS_RESUBMISSION,
    "needs_resubmission": VerificationOutcome.NEEDS_RESUBMISSION,
}


class _VerificationResponse(BaseModel):
    success: bool = True
    documentId: Optional[str] = None
    status: Optional[str] = None
    confidence: Optional[float] = None
    failureReason: Optional[str] = None
    error: Optional[str] = None


def parse_verification_response(
    payload: Dict[str, Any], *, checked_at: datetime
) -> VerificationResult:
    """Convert the function's JSON body into a VerificationResult.

    Raises VerificationServiceError when the service reports a failure and
    MalformedResponseError when the body has no usable terminal status.
    """

    try:
        response = _VerificationResponse.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Unexpected verification response: {exc}") from exc
    if not response.success:
        raise VerificationServiceError(response.error or "Verification failed")
    status = (response.status or "").strip().lower()
    outcome = _STATUS_TO_OUTCOME.get(status)
    if outcome is None:
        raise MalformedResponseError(
            f"Verification returned non-terminal status {response.status!r}"
        )
    return VerificationResult(
        outcome=outcome,
        checked_at=checked_at,
        reason=response.failureReason,
        confidence=response.confidence,
    )


class VerificationTrigger:
    """Runs one verification check per call; never retries on its own."""

    def __init__(
        self,
        store: UploadStateStore,
        client: VerificationClient,
        storage: DocumentStorageGateway,
        user_id: Optional[str],
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._client = client
        self._storage = storage
        self._user_id = user_id
        self._clock = clock

    def verify(self, document_type: DocumentType) -> Optional[VerificationResult]:
        slot = self._store.get(document_type)
        if not slot.uploaded or not slot.document_id or not slot.file_path:
            self._store.set(document_type, verification_error=NOT_UPLOADED_MESSAGE)
            return None
        if not self._user_id:
            self._store.set(document_type, verification_error=SIGNED_OUT_MESSAGE)
            return None

        self._store.set(
            document_type, verification_triggered=True, verification_error=None
        )
        log = LOGGER.bind(document_type=document_type.value, document_id=slot.document_id)
        try:
            image_url = self._storage.signed_url(slot.file_path)
            payload = self._client.request_verification(
                document_id=slot.document_id,
                user_id=self._user_id,
                document_type=document_type,
                image_url=image_url,
            )
            result = parse_verification_response(payload, checked_at=self._clock())
        except (StorageError, VerificationServiceError, MalformedResponseError) as exc:
            log.error("verification_failed", error=str(exc))
            self._store.set(document_type, verification_error=str(exc))
            return None

        updates: Dict[str, Any] = {"verification": result}
        if result.outcome.is_rejection:
            updates["previously_rejected"] = True
        self._store.set(document_type, **updates)
        log.info(
            "verification_completed",
            outcome=result.outcome.value,
            reason=result.reason,
        )
        return result
