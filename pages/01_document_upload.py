"""Streamlit page for uploading and verifying application documents."""

from __future__ import annotations

import streamlit as st

from edueasy.common.dtos import (
    DOCUMENT_DESCRIPTIONS,
    DOCUMENT_LABELS,
    DocumentType,
    LocalFile,
    StepStatus,
)
from edueasy.common.errors import ConfigError, EduEasyError, RepositoryError
from edueasy.common.logging import (
    bind_upload_context,
    clear_upload_context,
    configure_logging,
    get_logger,
    register_streamlit_sink,
)
from edueasy.common.supabase_client import current_user_id, sign_in_with_password
from edueasy.ui.services import init_services, new_workflow
from edueasy.workflow.controller import DocumentUploadWorkflow

configure_logging()
LOGGER = get_logger(__name__)
st.set_page_config(page_title="Document Upload", page_icon="📄", layout="wide")
st.title("Document Upload")
st.caption("Upload each required document. Verification starts once a file is stored.")

_STEP_ICONS = {
    StepStatus.COMPLETE: "✅",
    StepStatus.ACTIVE: "🔵",
    StepStatus.ERROR: "❌",
    StepStatus.PENDING: "⚪",
}

try:
    client, services = init_services()
except ConfigError as exc:
    st.error(f"Configuration error: {exc}")
    st.stop()

with st.sidebar:
    st.subheader("Account")
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    if st.button("Sign in"):
        try:
            st.session_state["upload_user_id"] = sign_in_with_password(client, email, password)
        except Exception as exc:
            LOGGER.warning("sign_in_failed", error=str(exc))
            st.error("Sign in failed. Check your email and password.")
    application_id = st.text_input("Application ID (optional)") or None

user_id = st.session_state.get("upload_user_id") or current_user_id(client)
if not user_id:
    st.info("Sign in from the sidebar to upload documents.")
    st.stop()

clear_upload_context()
bind_upload_context(user_id=user_id, application_id=application_id)
log_lines = st.session_state.setdefault("upload_log_lines", [])
remove_sink = register_streamlit_sink(log_lines.append)
workflow_key = f"upload_workflow:{user_id}:{application_id or ''}"
workflow = st.session_state.get(workflow_key)
if workflow is None:
    try:
        workflow = new_workflow(services, user_id, application_id)
    except RepositoryError as exc:
        LOGGER.exception("restore_failed")
        st.warning(f"Could not load previously uploaded documents: {exc}")
        workflow = DocumentUploadWorkflow(
            services, user_id=user_id, application_id=application_id
        )
    st.session_state[workflow_key] = workflow


def _to_local_file(upload) -> LocalFile:
    return LocalFile(
        name=upload.name,
        content_type=upload.type or "application/octet-stream",
        data=upload.getvalue(),
    )


def _render_document(document_type: DocumentType) -> None:
    slot = workflow.store.get(document_type)
    st.markdown(f"**{DOCUMENT_LABELS[document_type]}**")
    st.caption(DOCUMENT_DESCRIPTIONS[document_type])

    steps = workflow.steps_for(document_type)
    st.write("  ".join(f"{_STEP_ICONS[step.status]} {step.name.value}" for step in steps))
    if slot.uploading or 0 < slot.progress < 100:
        st.progress(slot.progress)

    if slot.error:
        st.error(slot.error)
        if slot.retry_data and st.button("Retry upload", key=f"retry:{document_type.value}"):
            workflow.retry(document_type)
            st.rerun()
    if slot.verification_error:
        st.warning(slot.verification_error)
    if slot.verification is not None:
        outcome = slot.verification.outcome
        if outcome.is_rejection:
            reason = slot.verification.reason or "No reason given"
            st.error(f"Verification {outcome.value.replace('_', ' ')}: {reason}")
        else:
            st.success("Verified")
    elif slot.uploaded:
        st.success("Uploaded")
        if st.button("Verify now", key=f"verify:{document_type.value}"):
            with st.spinner("Verifying document..."):
                workflow.verify(document_type)
            st.rerun()

    label = "Upload a replacement" if slot.previously_rejected else "Choose file"
    upload = st.file_uploader(
        label,
        type=["jpg", "jpeg", "png", "gif", "webp", "pdf"],
        key=f"file:{document_type.value}",
        disabled=slot.uploading,
    )
    if upload is not None and st.button("Upload", key=f"upload:{document_type.value}"):
        with st.spinner("Uploading document..."):
            outcome = workflow.select_file(document_type, _to_local_file(upload))
        if outcome.error:
            LOGGER.info("upload_not_completed", document_type=document_type.value)
        st.rerun()


columns = st.columns(2)
for index, document_type in enumerate(DocumentType):
    with columns[index % 2]:
        with st.container(border=True):
            try:
                _render_document(document_type)
            except EduEasyError as exc:
                LOGGER.exception("document_render_failed", document_type=document_type.value)
                st.error(str(exc))

st.divider()
missing = workflow.missing_documents()
if missing:
    st.info(
        "Still needed: " + ", ".join(DOCUMENT_LABELS[item] for item in missing)
    )
if workflow.can_submit():
    st.success("All documents are ready for your application.")
    with st.expander("Submission payload"):
        st.json(workflow.submission_payload())

remove_sink()
with st.expander("Activity log"):
    st.code("\n".join(log_lines[-50:]) or "No activity yet.")
