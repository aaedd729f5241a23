"""Shared dependency bundle for document workflows."""

from __future__ import annotations

from dataclasses import dataclass

from ..common.repository import DocumentRepository
from ..ingest.storage_gateway import DocumentStorageGateway
from ..ingest.verification_client import VerificationClient
from .file_processor import (
    DEFAULT_COMPRESSION_THRESHOLD_BYTES,
    DEFAULT_MAX_SIZE_BYTES,
)


@dataclass(slots=True)
class WorkflowServices:
    """Aggregated services injected into each workflow instance."""

    repository: DocumentRepository
    storage: DocumentStorageGateway
    verification_client: VerificationClient
    max_upload_bytes: int = DEFAULT_MAX_SIZE_BYTES
    compression_threshold_bytes: int = DEFAULT_COMPRESSION_THRESHOLD_BYTES
    auto_verify: bool = True
    require_verification: bool = False
