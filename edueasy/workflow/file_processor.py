"""Validate and prepare a selected file before it is uploaded."""

from __future__ import annotations

from typing import Callable, FrozenSet, Optional

from ..common.dtos import DocumentType, LocalFile, ProcessResult
from ..common.errors import (
    CompressionError,
    FileValidationError,
    UploadInProgressError,
)
from ..common.logging import get_logger
from ..ingest.image_compression import compress_image
from .state_store import UploadStateStore

LOGGER = get_logger(__name__)

ACCEPTED_CONTENT_TYPES: FrozenSet[str] = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp", "application/pdf"}
)
DEFAULT_MAX_SIZE_BYTES = 5 * 1024 * 1024
DEFAULT_COMPRESSION_THRESHOLD_BYTES = 500 * 1024

PROGRESS_COMPRESSION_STARTED = 10
PROGRESS_COMPRESSION_FINISHED = 30
PROGRESS_READY = 50

Compressor = Callable[[LocalFile], LocalFile]


def validate_file(
    file: Optional[LocalFile],
    *,
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    accepted_types: FrozenSet[str] = ACCEPTED_CONTENT_TYPES,
) -> None:
    """Raise FileValidationError when the file cannot be accepted."""

    if file is None:
        raise FileValidationError("Please select a file to upload")
    if file.size == 0:
        raise FileValidationError(f"{file.name} is empty")
    if file.content_type not in accepted_types:
        allowed = ", ".join(sorted(accepted_types))
        raise FileValidationError(
            f"File type {file.content_type} is not allowed. Allowed types: {allowed}"
        )
    if file.size > max_size_bytes:
        raise FileValidationError(
            f"File size {_megabytes(file.size)}MB exceeds maximum allowed size "
            f"of {_megabytes(max_size_bytes)}MB"
        )


class FileProcessor:
    """Turns a raw selection into a ready-to-upload file or a rejection."""

    def __init__(
        self,
        store: UploadStateStore,
        *,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        compression_threshold_bytes: int = DEFAULT_COMPRESSION_THRESHOLD_BYTES,
        compressor: Compressor = compress_image,
    ) -> None:
        self._store = store
        self._max_size_bytes = max_size_bytes
        self._compression_threshold = compression_threshold_bytes
        self._compressor = compressor

    def needs_compression(self, file: LocalFile) -> bool:
        return file.is_image and file.size > self._compression_threshold

    def process(
        self,
        file: Optional[LocalFile],
        document_type: DocumentType,
        is_resubmission: bool = False,
    ) -> ProcessResult:
        """Validate and prepare `file`.

        Raises UploadInProgressError when the slot already has an upload in
        flight; that slot is left untouched.
        """

        if self._store.get(document_type).uploading:
            raise UploadInProgressError(
                f"An upload for {document_type.value} is already running"
            )
        try:
            validate_file(file, max_size_bytes=self._max_size_bytes)
        except FileValidationError as exc:
            message = str(exc)
            LOGGER.info(
                "file_rejected", document_type=document_type.value, reason=message
            )
            self._store.set(document_type, file=None, error=message, uploaded=False)
            return ProcessResult(valid=False, file=None, error=message)

        self._store.begin_upload(
            document_type,
            file=file,
            progress=0,
            uploaded=False,
            is_resubmission=is_resubmission,
            verification=None,
            verification_error=None,
        )
        try:
            ready = file
            if self.needs_compression(file):
                self._store.set(document_type, progress=PROGRESS_COMPRESSION_STARTED)
                ready = self._compress_or_original(file, document_type)
                self._store.set(document_type, progress=PROGRESS_COMPRESSION_FINISHED)
            self._store.set(document_type, progress=PROGRESS_READY)
        except Exception as exc:
            message = str(exc) or "File processing failed"
            LOGGER.exception("file_processing_failed", document_type=document_type.value)
            self._store.set(document_type, uploading=False, progress=0, error=message)
            return ProcessResult(valid=False, file=None, error=message)
        return ProcessResult(valid=True, file=ready)

    def _compress_or_original(
        self, file: LocalFile, document_type: DocumentType
    ) -> LocalFile:
        try:
            compressed = self._compressor(file)
        except CompressionError as exc:
            LOGGER.warning(
                "compression_failed_using_original",
                document_type=document_type.value,
                error=str(exc),
            )
            return file
        if compressed.size >= file.size:
            LOGGER.info(
                "compression_not_smaller",
                document_type=document_type.value,
                original_bytes=file.size,
                compressed_bytes=compressed.size,
            )
            return file
        LOGGER.info(
            "image_compressed",
            document_type=document_type.value,
            original_bytes=file.size,
            compressed_bytes=compressed.size,
        )
        return compressed


def _megabytes(size: int) -> str:
    return f"{size / 1024 / 1024:.2f}"
