from __future__ import annotations

import pytest

from edueasy.common.dtos import DocumentType, LocalFile
from edueasy.common.errors import (
    CompressionError,
    FileValidationError,
    UploadInProgressError,
)
from edueasy.workflow.controller import DocumentUploadWorkflow
from edueasy.workflow.file_processor import (
    PROGRESS_READY,
    FileProcessor,
    validate_file,
)
from edueasy.workflow.state_store import UploadStateStore
from tests.workflow.fakes import FakeStorage, make_file, make_services


def _processor(store, compressor=None, **kwargs):
    if compressor is None:
        compressor = lambda file: LocalFile(  # noqa: E731
            name="small.jpg", content_type="image/jpeg", data=b"c" * 10
        )
    return FileProcessor(
        store,
        max_size_bytes=kwargs.get("max_size_bytes", 5 * 1024 * 1024),
        compression_threshold_bytes=kwargs.get("threshold", 500 * 1024),
        compressor=compressor,
    )


def test_validate_file_requires_a_file():
    with pytest.raises(FileValidationError, match="select a file"):
        validate_file(None)


def test_validate_file_rejects_empty_payload():
    with pytest.raises(FileValidationError, match="empty"):
        validate_file(LocalFile(name="blank.pdf", content_type="application/pdf", data=b""))


def test_validate_file_reports_sizes_in_megabytes():
    oversized = make_file(size=10 * 1024 * 1024)
    with pytest.raises(FileValidationError) as excinfo:
        validate_file(oversized, max_size_bytes=5 * 1024 * 1024)
    assert "10.00MB" in str(excinfo.value)
    assert "5.00MB" in str(excinfo.value)


def test_disallowed_type_is_rejected_without_upload():
    store = UploadStateStore()
    processor = _processor(store)

    result = processor.process(
        make_file(name="notes.txt", content_type="text/plain"), DocumentType.ID_DOCUMENT
    )

    slot = store.get(DocumentType.ID_DOCUMENT)
    assert not result.valid
    assert "text/plain" in result.error
    assert slot.error == result.error
    assert slot.file is None
    assert not slot.uploading
    assert not slot.uploaded


def test_large_image_is_compressed_before_upload():
    store = UploadStateStore()
    seen = []

    def _compressor(file):
        seen.append(file)
        return LocalFile(name="id.jpg", content_type="image/jpeg", data=b"c" * 2048)

    processor = _processor(store, compressor=_compressor)
    original = make_file(size=800 * 1024)

    result = processor.process(original, DocumentType.ID_DOCUMENT)

    slot = store.get(DocumentType.ID_DOCUMENT)
    assert result.valid
    assert seen == [original]
    assert result.file.name == "id.jpg"
    assert result.file.size == 2048
    assert slot.uploading
    assert slot.progress == PROGRESS_READY
    assert slot.file == original


def test_small_image_and_pdf_skip_compression():
    store = UploadStateStore()
    calls = []
    processor = _processor(store, compressor=lambda file: calls.append(file) or file)

    pdf = make_file(name="results.pdf", content_type="application/pdf", size=900 * 1024)
    small = make_file(size=10 * 1024)
    processor.process(pdf, DocumentType.GRADE_11_RESULTS)
    processor.process(small, DocumentType.GRADE_12_RESULTS)

    assert calls == []


def test_compression_failure_falls_back_to_original():
    store = UploadStateStore()

    def _broken(file):
        raise CompressionError("cannot decode")

    processor = _processor(store, compressor=_broken)
    original = make_file(size=700 * 1024)

    result = processor.process(original, DocumentType.PROOF_OF_RESIDENCE)

    assert result.valid
    assert result.file is original
    assert store.get(DocumentType.PROOF_OF_RESIDENCE).error is None


def test_compression_that_grows_the_file_keeps_original():
    store = UploadStateStore()
    processor = _processor(
        store,
        compressor=lambda file: LocalFile(
            name="big.jpg", content_type="image/jpeg", data=b"c" * (file.size + 1)
        ),
    )
    original = make_file(size=600 * 1024)

    result = processor.process(original, DocumentType.ID_DOCUMENT)

    assert result.file is original


def test_resubmission_flag_recorded_on_slot():
    store = UploadStateStore()
    processor = _processor(store)

    processor.process(make_file(), DocumentType.ID_DOCUMENT, is_resubmission=True)

    assert store.get(DocumentType.ID_DOCUMENT).is_resubmission


class _RecordingStore(UploadStateStore):
    def __init__(self):
        super().__init__()
        self.progress_writes = []

    def set(self, document_type, **partial):
        if "progress" in partial:
            self.progress_writes.append((DocumentType(document_type), partial["progress"]))
        return super().set(document_type, **partial)


def test_compression_reports_progress_in_order():
    store = _RecordingStore()
    processor = _processor(store)

    processor.process(make_file(size=800 * 1024), DocumentType.ID_DOCUMENT)

    assert store.progress_writes == [
        (DocumentType.ID_DOCUMENT, 10),
        (DocumentType.ID_DOCUMENT, 30),
        (DocumentType.ID_DOCUMENT, 50),
    ]


def test_oversized_results_rejected_before_upload():
    storage = FakeStorage()
    workflow = DocumentUploadWorkflow(
        make_services(storage=storage), user_id="user-1", application_id="app-1"
    )
    oversized = make_file(
        name="grade12.pdf", content_type="application/pdf", size=10 * 1024 * 1024
    )

    outcome = workflow.select_file(DocumentType.GRADE_12_RESULTS, oversized)

    slot = workflow.store.get(DocumentType.GRADE_12_RESULTS)
    assert not outcome.accepted
    assert "10.00MB" in slot.error
    assert "5.00MB" in slot.error
    assert slot.file is None
    assert not slot.uploading
    assert not slot.uploaded
    assert storage.store_calls == 0


def test_progress_updates_leave_other_slots_untouched():
    store = UploadStateStore()
    store.set(DocumentType.PROOF_OF_RESIDENCE, progress=30, error="Network error")
    other_before = store.get(DocumentType.PROOF_OF_RESIDENCE)
    seen_during_compression = []

    def _compressor(file):
        seen_during_compression.append(store.get(DocumentType.PROOF_OF_RESIDENCE))
        return LocalFile(name="id.jpg", content_type="image/jpeg", data=b"c" * 10)

    processor = _processor(store, compressor=_compressor)
    processor.process(make_file(size=800 * 1024), DocumentType.ID_DOCUMENT)

    assert seen_during_compression == [other_before]
    assert store.get(DocumentType.PROOF_OF_RESIDENCE) == other_before
    assert store.get(DocumentType.ID_DOCUMENT).progress == PROGRESS_READY


def test_process_refuses_slot_with_upload_in_flight():
    store = UploadStateStore()
    store.begin_upload(DocumentType.ID_DOCUMENT, file=make_file(), progress=50)
    before = store.get(DocumentType.ID_DOCUMENT)
    processor = _processor(store)

    with pytest.raises(UploadInProgressError):
        processor.process(
            make_file(name="notes.txt", content_type="text/plain"), DocumentType.ID_DOCUMENT
        )

    assert store.get(DocumentType.ID_DOCUMENT) == before
