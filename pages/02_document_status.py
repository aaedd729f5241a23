"""Streamlit page that summarizes stored documents and their verification status."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from edueasy.common.dtos import DOCUMENT_LABELS, DocumentType
from edueasy.common.errors import ConfigError, RepositoryError
from edueasy.common.logging import configure_logging, get_logger
from edueasy.common.supabase_client import current_user_id
from edueasy.ui.services import init_services

configure_logging()
LOGGER = get_logger(__name__)
st.set_page_config(page_title="Document Status", page_icon="📊", layout="wide")
st.title("Document Status")

try:
    client, services = init_services()
except ConfigError as exc:
    st.error(f"Configuration error: {exc}")
    st.stop()

user_id = st.session_state.get("upload_user_id") or current_user_id(client)
if not user_id:
    st.info("Sign in on the Document Upload page first.")
    st.stop()

application_id = st.sidebar.text_input("Application ID (optional)") or None
if st.sidebar.button("Refresh"):
    st.rerun()

try:
    records = services.repository.fetch_latest_for_application(user_id, application_id)
except RepositoryError as exc:
    LOGGER.exception("status_lookup_failed")
    st.error(f"Failed to load documents: {exc}")
    st.stop()

table = pd.DataFrame(
    [
        {
            "document": DOCUMENT_LABELS[document_type],
            "status": records[document_type].verification_status
            if document_type in records
            else "missing",
            "resubmission": bool(
                document_type in records and records[document_type].is_resubmission
            ),
            "reason": records[document_type].rejection_reason
            if document_type in records
            else None,
            "uploaded_at": records[document_type].created_at
            if document_type in records
            else None,
        }
        for document_type in DocumentType
    ],
    columns=["document", "status", "resubmission", "reason", "uploaded_at"],
)
st.dataframe(table, hide_index=True)

counts = table["status"].value_counts().rename_axis("status").reset_index(name="count")
st.subheader("Documents by Status")
st.dataframe(counts, hide_index=True)
