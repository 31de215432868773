"""
Pytest configuration and fixtures for Doc Relay Backend tests.

External services are never contacted: the relays are rebuilt around
in-process fakes and swapped in through ``app.dependency_overrides``.
"""

import asyncio
import json
import os
import shutil
import tempfile
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["APP_NAME"] = "Doc Relay Test"
os.environ["OUTPUT_DIR"] = tempfile.mkdtemp(prefix="doc_relay_test_output_")
os.environ["STORAGE_BACKEND"] = "none"

from doc_relay_backend.analysis_service import AnalysisRelay
from doc_relay_backend.main import (
    app,
    get_analysis_relay,
    get_summarization_relay,
    get_video_workflow,
    settings,
)
from doc_relay_backend.models import PollPolicy
from doc_relay_backend.storage_service import ArtifactPersister
from doc_relay_backend.summarization_service import SummarizationRelay
from doc_relay_backend.video_service import VideoGenerationClient, VideoWorkflow


@pytest.fixture(scope="session", autouse=True)
def test_dirs():
    """Cleanup the output directory after all tests."""
    output_dir = os.environ["OUTPUT_DIR"]
    yield {"output": output_dir}
    shutil.rmtree(output_dir, ignore_errors=True)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    yield TestClient(app)
    app.dependency_overrides.clear()


async def no_sleep(_seconds):
    return None


# ---------------------------------------------------------------------------
# Language model fakes
# ---------------------------------------------------------------------------


class FakeCompletions:
    def __init__(self, content="hi", error=None, no_choices=False):
        self.content = content
        self.error = error
        self.no_choices = no_choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.no_choices:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


class FakeOpenAI:
    def __init__(self, content="hi", error=None, no_choices=False):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error, no_choices))

    async def close(self):
        return None


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def summarization_override(fake_openai):
    relay = SummarizationRelay(fake_openai, settings.openai)
    app.dependency_overrides[get_summarization_relay] = lambda: relay
    return relay


# ---------------------------------------------------------------------------
# Document analysis fakes
# ---------------------------------------------------------------------------


class FakeHttpResponse:
    """Just enough of an azure-core HTTP response for ``HttpResponseError``."""

    def __init__(self, status_code, body, reason="Bad Request"):
        self.status_code = status_code
        self.reason = reason
        self._body = body

    def text(self, encoding=None):
        return json.dumps(self._body)


class FakePoller:
    def __init__(self, result=None, error=None, delay=0):
        self._result = result
        self._error = error
        self._delay = delay

    async def result(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._result


class FakeAnalysisClient:
    def __init__(self, result=None, submit_error=None, poll_error=None, poll_delay=0):
        self.result = result
        self.poll_delay = poll_delay
        self.submit_error = submit_error
        self.poll_error = poll_error
        self.calls = []

    async def begin_analyze_document(self, model_id, body, **kwargs):
        self.calls.append({"model_id": model_id, "body": body, **kwargs})
        if self.submit_error is not None:
            raise self.submit_error
        return FakePoller(self.result, self.poll_error, self.poll_delay)

    async def close(self):
        return None


@pytest.fixture
def analyzed_document():
    return {
        "status": "succeeded",
        "createdDateTime": "2024-05-01T10:00:00Z",
        "lastUpdatedDateTime": "2024-05-01T10:00:03Z",
        "analyzeResult": {
            "apiVersion": "2024-11-30",
            "modelId": "prebuilt-layout",
            "content": "Invoice 42",
            "pages": [
                {
                    "pageNumber": 1,
                    "width": 8.5,
                    "height": 11,
                    "unit": "inch",
                    "lines": [{"content": "Invoice 42", "polygon": [1, 1, 3, 1, 3, 2, 1, 2], "spans": [{"offset": 0, "length": 10}]}],
                }
            ],
            "paragraphs": [
                {
                    "content": "Invoice 42",
                    "role": "title",
                    "spans": [{"offset": 0, "length": 10}],
                    "boundingRegions": [{"pageNumber": 1, "polygon": [1, 1, 3, 1, 3, 2, 1, 2]}],
                }
            ],
        },
    }


def install_analysis(client_fake, policy=None):
    relay = AnalysisRelay(client_fake, settings.document_intelligence, policy or PollPolicy(interval=0))
    app.dependency_overrides[get_analysis_relay] = lambda: relay
    return relay


# ---------------------------------------------------------------------------
# Video generation fakes
# ---------------------------------------------------------------------------


class FakeVideoApi:
    """
    Scripted video generation API served through ``httpx.MockTransport``.

    ``statuses`` is consumed one entry per status request; the final payload
    carries ``generations``.
    """

    def __init__(self, statuses, generations=None, job_id="task_01abc", create_status=201, status_code=200, download_status=200):
        self.statuses = list(statuses)
        self.generations = [{"id": "gen_01xyz"}] if generations is None else generations
        self.job_id = job_id
        self.create_status = create_status
        self.status_code = status_code
        self.download_status = download_status
        self.requests = []
        self.status_requests = 0
        self.download_requests = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/video/generations/jobs"):
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json={"error": {"code": "BadRequest", "message": "prompt rejected"}})
            return httpx.Response(self.create_status, json={"object": "video.generation.job", "id": self.job_id, "status": "queued"})
        if request.method == "GET" and path.endswith(f"/video/generations/jobs/{self.job_id}"):
            status = self.statuses[min(self.status_requests, len(self.statuses) - 1)]
            self.status_requests += 1
            if self.status_code >= 400:
                return httpx.Response(self.status_code, json={"error": {"code": "ServiceUnavailable"}})
            body = {"id": self.job_id, "status": status, "generations": []}
            if status == "succeeded":
                body["generations"] = self.generations
            return httpx.Response(200, json=body)
        if request.method == "GET" and path.endswith("/content/video"):
            self.download_requests += 1
            if self.download_status >= 400:
                return httpx.Response(self.download_status, json={"error": {"code": "NotFound"}})
            return httpx.Response(200, content=b"\x00\x00\x00\x18ftypmp42fake-video", headers={"content-type": "video/mp4"})
        return httpx.Response(404)

    def client(self):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url="https://video.test")
        return VideoGenerationClient(http_client, settings.video)


class FakeStore:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []

    def upload(self, name, content, content_type):
        if self.error is not None:
            raise self.error
        self.uploads.append((name, content, content_type))
        return f"https://blobs.test/videos/{name}"


def build_video_workflow(api, output_dir, store=None, policy=None):
    persister = ArtifactPersister(output_dir, store)
    return VideoWorkflow(api.client(), persister, policy or PollPolicy(interval=0, max_attempts=10), sleep=no_sleep)


def install_video(workflow):
    app.dependency_overrides[get_video_workflow] = lambda: workflow
    return workflow
