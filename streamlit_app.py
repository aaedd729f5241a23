"""Home page for the EduEasy document upload portal."""

from __future__ import annotations

from textwrap import dedent

import streamlit as st

from edueasy.common.dtos import DOCUMENT_DESCRIPTIONS, DOCUMENT_LABELS
from edueasy.common.logging import configure_logging

configure_logging()
st.set_page_config(page_title="EduEasy Documents", page_icon="🎓")
st.title("EduEasy Application Documents")
st.write(
    "Use the sidebar to upload the supporting documents for your application "
    "and to check how far each one has progressed through verification."
)

st.subheader("Available Pages")
st.markdown(
    """
- **Document Upload** — Sign in, choose a file per document, and watch it move from selection to verification. Failed uploads can be retried with the same file.
- **Document Status** — Review the latest stored document per category with its verification status and rejection reason.
"""
)

st.subheader("Required Documents")
for document_type, label in DOCUMENT_LABELS.items():
    st.markdown(f"- **{label}**: {DOCUMENT_DESCRIPTIONS[document_type]}")

st.subheader("Upload Steps")
st.caption(
    "Each document advances through the same four steps. An error stops the "
    "stepper at the failing step until the document is retried or replaced."
)

STEP_DIAGRAM = dedent(
    """
    digraph upload {
        rankdir=LR;
        node [shape=box, style="rounded,filled", fontname="Helvetica"];
        select [label="Select", fillcolor="#9ecae1", color="#3182bd"];
        upload [label="Upload", fillcolor="#c7e9c0", color="#31a354"];
        verify [label="Verify", fillcolor="#fee391", color="#fec44f"];
        complete [label="Complete", fillcolor="#d9d9d9", color="#636363"];
        resubmit [label="Resubmit", fillcolor="#fcbba1", color="#cb181d"];

        select -> upload [label="Valid file"];
        upload -> verify [label="Stored"];
        verify -> complete [label="Approved"];
        verify -> resubmit [label="Rejected", style="dashed"];
        resubmit -> upload [label="New file"];
    }
    """
)
st.graphviz_chart(STEP_DIAGRAM)

st.subheader("Accepted Files")
st.write(
    "JPEG, PNG, GIF, WebP images and PDF documents up to the configured size limit. "
    "Large photos are compressed automatically before upload."
)
