"""Shared helpers for initializing Streamlit services."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from edueasy.common.config import AppConfig, load_config
from edueasy.common.repository import DocumentRepository
from edueasy.common.supabase_client import build_supabase_client
from edueasy.ingest.storage_gateway import DocumentStorageGateway
from edueasy.ingest.verification_client import EdgeFunctionVerificationClient
from edueasy.workflow.controller import DocumentUploadWorkflow
from edueasy.workflow.services import WorkflowServices


def init_services(config: Optional[AppConfig] = None) -> Tuple[Any, WorkflowServices]:
    """Build the Supabase client and the dependency graph shared across pages."""

    config = config or load_config()
    client = build_supabase_client(config)
    services = WorkflowServices(
        repository=DocumentRepository(client, config.documents_table),
        storage=DocumentStorageGateway(client, config.documents_bucket),
        verification_client=EdgeFunctionVerificationClient(
            client, config.verify_function
        ),
        max_upload_bytes=config.max_upload_bytes,
        compression_threshold_bytes=config.compression_threshold_bytes,
        auto_verify=config.auto_verify,
        require_verification=config.require_verification,
    )
    return client, services


def new_workflow(
    services: WorkflowServices,
    user_id: Optional[str],
    application_id: Optional[str] = None,
) -> DocumentUploadWorkflow:
    """Start a workflow seeded with anything already uploaded for the application."""

    workflow = DocumentUploadWorkflow(
        services, user_id=user_id, application_id=application_id
    )
    if user_id:
        workflow.restore()
    return workflow
