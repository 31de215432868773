"""
Construction and lifetime of the relay services.

``ServiceRegistry`` builds each external client on first use from the
settings it was given, so a process without, say, video credentials can
still serve analysis requests. The HTTP layer resolves services through the
``get_*`` dependency functions; tests replace those with
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from typing import Optional

from .analysis_service import AnalysisRelay
from .configuration import Settings
from .storage_service import ArtifactPersister, build_artifact_store
from .summarization_service import SummarizationRelay, build_openai_client
from .video_service import VideoGenerationClient, VideoWorkflow

logger = logging.getLogger(__name__)


class ServiceRegistry:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._analysis: Optional[AnalysisRelay] = None
        self._summarization: Optional[SummarizationRelay] = None
        self._video: Optional[VideoWorkflow] = None

    @property
    def analysis(self) -> AnalysisRelay:
        if self._analysis is None:
            self._analysis = AnalysisRelay.from_settings(self.settings.document_intelligence, self.settings.poll)
        return self._analysis

    @property
    def summarization(self) -> SummarizationRelay:
        if self._summarization is None:
            client = build_openai_client(self.settings.openai)
            self._summarization = SummarizationRelay(client, self.settings.openai)
        return self._summarization

    @property
    def video(self) -> VideoWorkflow:
        if self._video is None:
            client = VideoGenerationClient.from_settings(self.settings.video)
            persister = ArtifactPersister(self.settings.storage.output_dir, build_artifact_store(self.settings.storage))
            self._video = VideoWorkflow(client, persister, self.settings.poll)
        return self._video

    async def aclose(self) -> None:
        if self._analysis is not None:
            await self._analysis.aclose()
        if self._summarization is not None:
            await self._summarization.aclose()
        if self._video is not None:
            await self._video.client.aclose()
        self._analysis = self._summarization = self._video = None
        logger.info("Relay service clients closed")
