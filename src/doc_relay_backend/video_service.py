"""
Text-to-video generation against the Azure OpenAI video generation jobs API.

The workflow is strictly sequential for a single request:

1. submit a generation job for the prompt
2. poll the job until it reaches a terminal status
3. download the first generation's video
4. persist it locally and to remote storage

``VideoGenerationClient`` only speaks HTTP; ``VideoWorkflow`` owns the
sequencing and the failure taxonomy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .configuration import VideoSettings
from .errors import (
    ConfigurationError,
    DownloadError,
    InvalidInputError,
    MalformedResponseError,
    NoGenerationsError,
    UpstreamRequestError,
)
from .models import PersistedArtifact, PollPolicy, VideoJob
from .polling import Sleeper, poll_until_terminal
from .storage_service import ArtifactPersister

logger = logging.getLogger(__name__)

JOBS_PATH = "/openai/v1/video/generations/jobs"
CONTENT_PATH = "/openai/v1/video/generations/{generation_id}/content/video"


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class VideoGenerationClient:
    """
    Thin async client for the video generation jobs endpoints.

    The underlying ``httpx.AsyncClient`` is injected so tests can supply one
    backed by ``httpx.MockTransport``.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: VideoSettings) -> None:
        self._http = http_client
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: VideoSettings) -> "VideoGenerationClient":
        if not settings.endpoint or not settings.api_key:
            raise ConfigurationError("Video generation endpoint and API key must be configured")
        http_client = httpx.AsyncClient(
            base_url=settings.endpoint.rstrip("/"),
            headers={"api-key": settings.api_key},
            timeout=settings.request_timeout,
        )
        return cls(http_client, settings)

    @property
    def _params(self) -> Dict[str, str]:
        return {"api-version": self._settings.api_version}

    async def submit_job(self, prompt: str) -> str:
        body = {
            "model": self._settings.model,
            "prompt": prompt,
            "width": self._settings.width,
            "height": self._settings.height,
            "n_seconds": self._settings.n_seconds,
            "n_variants": self._settings.n_variants,
        }
        response = await self._http.post(JOBS_PATH, params=self._params, json=body)
        if not response.is_success:
            raise UpstreamRequestError(
                f"Video job creation failed with status {response.status_code}",
                upstream_status=response.status_code,
                body=_response_body(response),
            )

        payload = _response_body(response)
        job_id = payload.get("id") if isinstance(payload, dict) else None
        if not job_id:
            raise MalformedResponseError("Video job creation response did not include a job id")
        logger.info(f"Video generation job created: {job_id}")
        return job_id

    async def get_job(self, job_id: str) -> Dict[str, Any]:
        response = await self._http.get(f"{JOBS_PATH}/{job_id}", params=self._params)
        if not response.is_success:
            raise UpstreamRequestError(
                f"Status request for job {job_id} failed with status {response.status_code}",
                upstream_status=response.status_code,
                body=_response_body(response),
            )
        return response.json()

    async def download_content(self, generation_id: str) -> bytes:
        response = await self._http.get(CONTENT_PATH.format(generation_id=generation_id), params=self._params)
        if not response.is_success:
            raise DownloadError(
                f"Download of generation {generation_id} failed with status {response.status_code}",
                upstream_status=response.status_code,
                body=_response_body(response),
            )
        return response.content

    async def aclose(self) -> None:
        await self._http.aclose()


class VideoWorkflow:
    """Submit, poll, fetch and persist a single video generation."""

    def __init__(
        self,
        client: VideoGenerationClient,
        persister: ArtifactPersister,
        policy: PollPolicy,
        *,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.client = client
        self.persister = persister
        self.policy = policy
        self._sleep = sleep

    async def wait_for_job(self, job_id: str) -> VideoJob:
        async def fetch_status() -> Dict[str, Any]:
            return await self.client.get_job(job_id)

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        payload = await poll_until_terminal(fetch_status, self.policy, job_id=job_id, **kwargs)
        return VideoJob.model_validate({"id": job_id, **payload})

    async def fetch_artifact(self, job: VideoJob) -> bytes:
        if not job.generations:
            raise NoGenerationsError(f"Job {job.id} succeeded but reported no generations")
        # Only the first generation is used; n_variants defaults to 1.
        generation = job.generations[0]
        if len(job.generations) > 1:
            logger.info(f"Job {job.id} returned {len(job.generations)} generations; using {generation.id}")
        return await self.client.download_content(generation.id)

    async def run(self, prompt: Any) -> PersistedArtifact:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidInputError("Invalid input: 'text' must be a non-empty string")

        job_id = await self.client.submit_job(prompt)
        job = await self.wait_for_job(job_id)
        content = await self.fetch_artifact(job)
        logger.info(f"Downloaded {len(content)} bytes for job {job_id}")
        return await self.persister.persist(job_id, content)
