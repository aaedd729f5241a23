"""Derive the Select/Upload/Verify/Complete stepper from a slot."""

from __future__ import annotations

from typing import List, Optional, Tuple

from ..common.dtos import DocumentSlot, StepName, StepStatus, UploadStep

STEP_ORDER: Tuple[StepName, ...] = (
    StepName.SELECT,
    StepName.UPLOAD,
    StepName.VERIFY,
    StepName.COMPLETE,
)


def derive_steps(slot: DocumentSlot) -> List[UploadStep]:
    """Return the stepper for `slot`.

    Steps before the first incomplete one are complete, that step is active
    (or error while the slot carries an error) and later steps are pending.
    Pure function of the slot; callers recompute it on every read.
    """

    select_done = slot.file is not None or slot.uploaded
    upload_done = slot.uploaded
    verify_done = upload_done and slot.verification is not None
    done = {
        StepName.SELECT: select_done,
        StepName.UPLOAD: upload_done,
        StepName.VERIFY: verify_done,
        StepName.COMPLETE: select_done and upload_done and verify_done,
    }
    failed = slot.error is not None or slot.verification_error is not None

    steps: List[UploadStep] = []
    halted = False
    for name in STEP_ORDER:
        if halted:
            steps.append(UploadStep(name, StepStatus.PENDING))
        elif done[name]:
            steps.append(UploadStep(name, StepStatus.COMPLETE))
        else:
            steps.append(UploadStep(name, StepStatus.ERROR if failed else StepStatus.ACTIVE))
            halted = True
    return steps


def active_step(steps: List[UploadStep]) -> Optional[UploadStep]:
    """The step currently in progress or blocked by an error, if any."""

    for step in steps:
        if step.status in (StepStatus.ACTIVE, StepStatus.ERROR):
            return step
    return None
