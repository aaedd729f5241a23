"""Invoke the document verification edge function."""

from __future__ import annotations

import json
from typing import Any, Dict, Protocol

from ..common.dtos import DocumentType
from ..common.errors import MalformedResponseError, VerificationServiceError


class VerificationClient(Protocol):
    def request_verification(
        self,
        *,
        document_id: str,
        user_id: str,
        document_type: DocumentType,
        image_url: str,
    ) -> Dict[str, Any]: ...


class EdgeFunctionVerificationClient:
    """Calls `verify-document` through the Supabase functions client."""

    def __init__(self, client: Any, function_name: str = "verify-document"):
        self._client = client
        self._function_name = function_name

    def request_verification(
        self,
        *,
        document_id: str,
        user_id: str,
        document_type: DocumentType,
        image_url: str,
    ) -> Dict[str, Any]:
        body = {
            "documentId": document_id,
            "userId": user_id,
            "documentType": document_type.value,
            "imageUrl": image_url,
        }
        try:
            raw = self._client.functions.invoke(
                self._function_name,
                invoke_options={"body": body, "responseType": "json"},
            )
        except Exception as exc:
            raise VerificationServiceError(
                f"Verification service unavailable: {exc}"
            ) from exc
        return _decode(raw)


def _decode(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedResponseError("Verification response is not UTF-8") from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError("Verification response is not JSON") from exc
    if not isinstance(raw, dict):
        raise MalformedResponseError(
            f"Verification response must be an object, got {type(raw).__name__}"
        )
    return raw
