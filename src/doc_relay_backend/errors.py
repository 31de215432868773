"""
Error taxonomy for the relay endpoints and the video workflow.

Every failure raised by a service in this package is a ``RelayError``. The
HTTP layer registers a single exception handler for the base class and
renders ``to_body()`` with the error's ``status_code``, so services never
build HTTP responses themselves.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code: int = 500
    error: str = "Relay request failed"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, "details": self.details if self.details is not None else self.message}


class ConfigurationError(RelayError):
    error = "Service is not configured"


class InvalidInputError(RelayError):
    status_code = 400
    error = "Invalid input"


class UpstreamRequestError(RelayError):
    """Non-2xx response from an upstream call."""

    error = "Upstream request failed"

    def __init__(self, message: str, *, upstream_status: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message, details=body if body is not None else message)
        self.upstream_status = upstream_status
        self.body = body


class MalformedResponseError(RelayError):
    error = "Malformed upstream response"


class JobFailedError(RelayError):
    error = "Generation job did not succeed"

    def __init__(self, job_status: str, *, job_id: Optional[str] = None) -> None:
        super().__init__(f"Job {job_id or '<unknown>'} finished with status '{job_status}'", details=job_status)
        self.job_status = job_status
        self.job_id = job_id


class PollTimeoutError(RelayError):
    error = "Timed out waiting for job"


class NoGenerationsError(RelayError):
    error = "No generations"


class DownloadError(UpstreamRequestError):
    error = "Artifact download failed"


class UploadError(RelayError):
    error = "Artifact upload failed"


class AnalysisRequestError(RelayError):
    """Rejected analysis submission; the provider's error body is passed through verbatim."""

    error = "Analysis request rejected"

    def __init__(self, body: Any) -> None:
        super().__init__("Document analysis submission was rejected", details=body)
        self.body = body

    def to_body(self) -> Any:
        return self.body if self.body is not None else {"code": "unexpected"}


class UnexpectedStatusError(RelayError):
    error = "Unexpected analysis status"


class SummarizationError(RelayError):
    error = "Error summarizing text"
