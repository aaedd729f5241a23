from __future__ import annotations

from datetime import datetime, timezone

from edueasy.common.dtos import (
    DocumentSlot,
    StepName,
    StepStatus,
    VerificationOutcome,
    VerificationResult,
)
from edueasy.workflow.step_sequencer import STEP_ORDER, active_step, derive_steps
from tests.workflow.fakes import make_file


def _statuses(slot):
    return [step.status for step in derive_steps(slot)]


def test_empty_slot_activates_select():
    assert _statuses(DocumentSlot()) == [
        StepStatus.ACTIVE,
        StepStatus.PENDING,
        StepStatus.PENDING,
        StepStatus.PENDING,
    ]


def test_selected_file_moves_to_upload():
    slot = DocumentSlot(file=make_file(), uploading=True, progress=50)
    assert _statuses(slot) == [
        StepStatus.COMPLETE,
        StepStatus.ACTIVE,
        StepStatus.PENDING,
        StepStatus.PENDING,
    ]


def test_upload_error_halts_at_upload():
    slot = DocumentSlot(file=make_file(), error="Network error")
    steps = derive_steps(slot)
    assert [step.status for step in steps] == [
        StepStatus.COMPLETE,
        StepStatus.ERROR,
        StepStatus.PENDING,
        StepStatus.PENDING,
    ]
    assert active_step(steps).name is StepName.UPLOAD


def test_uploaded_slot_waits_for_verification():
    slot = DocumentSlot(uploaded=True, document_id="doc-1", file_path="a/b.png", progress=100)
    assert _statuses(slot) == [
        StepStatus.COMPLETE,
        StepStatus.COMPLETE,
        StepStatus.ACTIVE,
        StepStatus.PENDING,
    ]


def test_verification_error_halts_at_verify():
    slot = DocumentSlot(
        uploaded=True,
        document_id="doc-1",
        file_path="a/b.png",
        verification_error="function timed out",
    )
    assert active_step(derive_steps(slot)).status is StepStatus.ERROR
    assert active_step(derive_steps(slot)).name is StepName.VERIFY


def test_verified_slot_completes_every_step():
    slot = DocumentSlot(
        uploaded=True,
        document_id="doc-1",
        file_path="a/b.png",
        verification=VerificationResult(
            outcome=VerificationOutcome.APPROVED,
            checked_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        ),
    )
    steps = derive_steps(slot)
    assert [step.name for step in steps] == list(STEP_ORDER)
    assert all(step.status is StepStatus.COMPLETE for step in steps)
    assert active_step(steps) is None


def test_derivation_is_pure():
    slot = DocumentSlot(file=make_file(), uploading=True, progress=30)
    assert derive_steps(slot) == derive_steps(slot)
    assert slot == DocumentSlot(file=make_file(), uploading=True, progress=30)
