"""Per-document upload state shared by the workflow components."""

from __future__ import annotations

import threading
from dataclasses import fields, replace
from typing import Any, Dict, Union

from ..common.dtos import DocumentSlot, DocumentType
from ..common.errors import SlotStateError, UploadInProgressError

_SLOT_FIELDS = frozenset(f.name for f in fields(DocumentSlot))

DocumentKey = Union[DocumentType, str]


class UploadStateStore:
    """Keyed container holding one DocumentSlot per document category.

    Every workflow instance owns its own store. Writes are serialized per
    document type; two types never share a lock, so concurrent uploads of
    different documents cannot interfere. Reads return copies, so callers
    cannot mutate a slot behind the store's back.
    """

    def __init__(self) -> None:
        self._slots: Dict[DocumentType, DocumentSlot] = {
            document_type: DocumentSlot() for document_type in DocumentType
        }
        self._locks: Dict[DocumentType, threading.Lock] = {
            document_type: threading.Lock() for document_type in DocumentType
        }

    def get(self, document_type: DocumentKey) -> DocumentSlot:
        key = _key(document_type)
        with self._locks[key]:
            return replace(self._slots[key])

    def set(self, document_type: DocumentKey, **partial: Any) -> DocumentSlot:
        """Merge `partial` into the slot and return the updated copy.

        Raises SlotStateError for unknown fields or when the merged slot would
        break an invariant; the stored slot is left untouched in that case.
        """

        key = _key(document_type)
        _check_fields(partial)
        with self._locks[key]:
            merged = replace(self._slots[key], **partial)
            _check_invariants(key, merged)
            self._slots[key] = merged
            return replace(merged)

    def begin_upload(self, document_type: DocumentKey, **partial: Any) -> DocumentSlot:
        """Atomically claim the slot for a new upload.

        Raises UploadInProgressError when an upload is already in flight.
        """

        key = _key(document_type)
        _check_fields(partial)
        with self._locks[key]:
            current = self._slots[key]
            if current.uploading:
                raise UploadInProgressError(f"An upload for {key.value} is already running")
            values = {"progress": 0, **partial, "uploading": True, "error": None}
            merged = replace(current, **values)
            _check_invariants(key, merged)
            self._slots[key] = merged
            return replace(merged)

    def reset(self, document_type: DocumentKey) -> DocumentSlot:
        key = _key(document_type)
        with self._locks[key]:
            self._slots[key] = DocumentSlot()
            return DocumentSlot()

    def snapshot(self) -> Dict[DocumentType, DocumentSlot]:
        return {document_type: self.get(document_type) for document_type in DocumentType}


def _key(document_type: DocumentKey) -> DocumentType:
    try:
        return DocumentType(document_type)
    except ValueError as exc:
        raise SlotStateError(f"Unknown document type: {document_type!r}") from exc


def _check_fields(partial: Dict[str, Any]) -> None:
    unknown = set(partial) - _SLOT_FIELDS
    if unknown:
        raise SlotStateError(f"Unknown slot fields: {', '.join(sorted(unknown))}")


def _check_invariants(document_type: DocumentType, slot: DocumentSlot) -> None:
    if not 0 <= slot.progress <= 100:
        raise SlotStateError(
            f"{document_type.value}: progress must be within 0-100, got {slot.progress}"
        )
    if slot.uploaded and not (slot.document_id and slot.file_path):
        raise SlotStateError(
            f"{document_type.value}: uploaded requires document_id and file_path"
        )
    if slot.uploaded and slot.error is not None:
        raise SlotStateError(f"{document_type.value}: uploaded slot cannot carry an error")
    if slot.uploading and slot.error is not None:
        raise SlotStateError(f"{document_type.value}: uploading slot cannot carry an error")
