"""
Document layout analysis relay backed by Azure AI Document Intelligence.

The uploaded document is submitted as base64 to the configured model
(``prebuilt-layout`` by default). Polling is left to the SDK's long-running
operation poller; this module only bounds the overall wait and checks the
terminal status. The provider's full operation document (``status``,
timestamps and ``analyzeResult``) is returned unchanged.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from azure.ai.documentintelligence.aio import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import HttpResponseError
from azure.identity.aio import DefaultAzureCredential

from .configuration import DocumentIntelligenceSettings
from .errors import (
    AnalysisRequestError,
    ConfigurationError,
    InvalidInputError,
    PollTimeoutError,
    UnexpectedStatusError,
)
from .models import AnalysisDocument, JobStatus, PollPolicy

logger = logging.getLogger(__name__)


def build_analysis_credential(settings: DocumentIntelligenceSettings):
    return AzureKeyCredential(settings.api_key) if settings.api_key else DefaultAzureCredential()


def build_analysis_client(settings: DocumentIntelligenceSettings, credential) -> DocumentIntelligenceClient:
    return DocumentIntelligenceClient(endpoint=settings.endpoint, credential=credential)


def _strip_data_url(source: str) -> str:
    # Browsers produce "data:<mime>;base64,<payload>" from FileReader.readAsDataURL.
    if source.startswith("data:") and "," in source:
        return source.split(",", 1)[1]
    return source


def _error_body(exc: HttpResponseError) -> Any:
    """Provider ``error`` object from a rejected request, falling back to what the SDK parsed."""
    if exc.response is not None:
        try:
            payload = json.loads(exc.response.text())
        except (TypeError, ValueError):
            payload = None
        if isinstance(payload, dict):
            return payload.get("error", payload)
    if exc.error is not None:
        return {"code": exc.error.code, "message": exc.error.message}
    return {"code": "unexpected", "message": exc.message}


def _full_operation_body(pipeline_response, deserialized, headers) -> AnalysisDocument:
    return pipeline_response.http_response.json()


class AnalysisRelay:
    def __init__(
        self,
        client: DocumentIntelligenceClient,
        settings: DocumentIntelligenceSettings,
        policy: PollPolicy,
        *,
        credential=None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.policy = policy
        self.credential = credential

    @classmethod
    def from_settings(cls, settings: DocumentIntelligenceSettings, policy: PollPolicy) -> "AnalysisRelay":
        if not settings.endpoint:
            raise ConfigurationError("DOCUMENT_INTELLIGENCE_ENDPOINT is not configured")
        credential = build_analysis_credential(settings)
        return cls(build_analysis_client(settings, credential), settings, policy, credential=credential)

    async def analyze_base64(self, base64_source: Any, document_name: Optional[str] = None) -> AnalysisDocument:
        if not isinstance(base64_source, str) or not base64_source.strip():
            raise InvalidInputError("Invalid input: 'base64Image' must be a non-empty base64 string")

        label = document_name or "document"
        try:
            poller = await self.client.begin_analyze_document(
                self.settings.model_id,
                {"base64Source": _strip_data_url(base64_source.strip())},
                locale=self.settings.locale,
                polling_interval=self.policy.interval,
                cls=_full_operation_body,
            )
        except HttpResponseError as exc:
            logger.error(f"Analysis submission for {label} rejected: {exc.message}")
            raise AnalysisRequestError(_error_body(exc)) from exc
        logger.info(f"Analysis of {label} submitted to {self.settings.model_id}")

        try:
            if self.policy.timeout:
                result = await asyncio.wait_for(poller.result(), timeout=self.policy.timeout)
            else:
                result = await poller.result()
        except asyncio.TimeoutError as exc:
            raise PollTimeoutError(f"Analysis of {label} did not finish within {self.policy.timeout}s") from exc
        except HttpResponseError as exc:
            raise UnexpectedStatusError(f"Unexpected status code: {exc.status_code or exc.reason}", details=_error_body(exc)) from exc

        status = result.get("status") if isinstance(result, dict) else None
        if status != JobStatus.SUCCEEDED.value:
            raise UnexpectedStatusError(f"Unexpected analysis status: {status}")

        logger.info(f"Analysis of {label} succeeded")
        return result

    async def aclose(self) -> None:
        await self.client.close()
        # AzureKeyCredential holds no transport; the async DefaultAzureCredential does.
        close = getattr(self.credential, "close", None)
        if close is not None:
            await close()
