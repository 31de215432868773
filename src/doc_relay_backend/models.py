from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    PREPROCESSING = "preprocessing"
    RUNNING = "running"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED.value, JobStatus.FAILED.value, JobStatus.CANCELLED.value})


class Generation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str


class VideoJob(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str
    generations: List[Generation] = Field(default_factory=list)


class PersistedArtifact(BaseModel):
    job_id: str
    blob_name: str
    local_path: Path
    url: Optional[str] = None


class PollPolicy(BaseModel):
    interval: float = Field(default=5.0, ge=0)
    max_attempts: Optional[int] = Field(default=None, ge=0)
    timeout: Optional[float] = Field(default=None, ge=0)


# Request bodies keep ``text``/``base64Image`` loosely typed so that a wrong
# type is reported as 400 by the relay rather than 422 by the framework.


class AnalyzeRequest(BaseModel):
    documentName: Optional[str] = None
    base64Image: Any = None


class TextRequest(BaseModel):
    text: Any = None


class PingResponse(BaseModel):
    pong: str


class AppNameResponse(BaseModel):
    appName: str


class SummarizeResponse(BaseModel):
    result: str


class VideoResponse(BaseModel):
    success: bool
    jobId: Optional[str] = None
    url: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Any = None


AnalysisDocument = Dict[str, Any]
