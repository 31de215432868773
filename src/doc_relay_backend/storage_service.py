"""
Artifact persistence: local disk first, then remote object storage.

This module provides:
- ``ArtifactPersister`` which writes ``output-<jobId>.mp4`` to the output
  directory and uploads the same bytes under the same name
- ``AzureBlobArtifactStore`` for an Azure Blob Storage container
- ``S3ArtifactStore`` for an S3 bucket, returning presigned download URLs

The remote backend is chosen by ``storage.backend`` (``none``, ``azure`` or
``s3``). With ``none`` the upload step is skipped and no URL is returned.
Both stores use blocking SDKs; their calls run in the threadpool.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional, Protocol

import boto3
from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from .configuration import StorageSettings
from .errors import ConfigurationError, UploadError
from .models import PersistedArtifact
from .utils import artifact_name, ensure_directory

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


class ArtifactStore(Protocol):
    """Remote object storage that can hold an artifact and return a reference URL."""

    def upload(self, name: str, content: bytes, content_type: str) -> str:
        ...


class AzureBlobArtifactStore:
    def __init__(self, service_client: BlobServiceClient, container: str) -> None:
        self._service_client = service_client
        self.container = container
        self._container_ready = False

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "AzureBlobArtifactStore":
        if not settings.azure_connection_string:
            raise ConfigurationError("AZURE_STORAGE_CONNECTION_STRING is required for the azure storage backend")
        return cls(BlobServiceClient.from_connection_string(settings.azure_connection_string), settings.azure_container)

    def _ensure_container(self):
        container_client = self._service_client.get_container_client(self.container)
        if not self._container_ready:
            try:
                container_client.create_container()
                logger.info(f"Created blob container {self.container}")
            except ResourceExistsError:
                pass
            self._container_ready = True
        return container_client

    def upload(self, name: str, content: bytes, content_type: str = VIDEO_CONTENT_TYPE) -> str:
        try:
            blob_client = self._ensure_container().get_blob_client(name)
            blob_client.upload_blob(
                content,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )
        except AzureError as exc:
            raise UploadError(f"Upload of {name} to container {self.container} failed: {exc}") from exc
        logger.info(f"Uploaded {name} to blob container {self.container}")
        return blob_client.url


class S3ArtifactStore:
    def __init__(self, client, bucket: str, presign_expiration: int = 3600) -> None:
        self._client = client
        self.bucket = bucket
        self.presign_expiration = presign_expiration

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "S3ArtifactStore":
        if not settings.s3_bucket:
            raise ConfigurationError("S3_BUCKET_NAME is required for the s3 storage backend")
        client = boto3.client("s3", region_name=settings.s3_region) if settings.s3_region else boto3.client("s3")
        return cls(client, settings.s3_bucket, settings.presign_expiration)

    def upload(self, name: str, content: bytes, content_type: str = VIDEO_CONTENT_TYPE) -> str:
        try:
            logger.info(f"Uploading {name} to s3://{self.bucket}/{name}")
            self._client.upload_fileobj(
                io.BytesIO(content),
                self.bucket,
                name,
                ExtraArgs={"ContentType": content_type},
            )
            url = self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": name},
                ExpiresIn=self.presign_expiration,
            )
        except (ClientError, BotoCoreError) as exc:
            raise UploadError(f"Upload of {name} to s3://{self.bucket} failed: {exc}") from exc
        logger.info(f"Upload successful: s3://{self.bucket}/{name} (URL expires in {self.presign_expiration}s)")
        return url


def build_artifact_store(settings: StorageSettings) -> Optional[ArtifactStore]:
    if settings.backend == "azure":
        return AzureBlobArtifactStore.from_settings(settings)
    if settings.backend == "s3":
        return S3ArtifactStore.from_settings(settings)
    return None


class ArtifactPersister:
    """
    Writes an artifact to disk and then to remote storage.

    Names are derived from the job id alone, so persisting the same job twice
    overwrites both copies instead of failing.
    """

    def __init__(self, output_dir: Path, store: Optional[ArtifactStore] = None) -> None:
        self.output_dir = ensure_directory(Path(output_dir))
        self.store = store

    async def persist(self, job_id: str, content: bytes) -> PersistedArtifact:
        name = artifact_name(job_id)
        local_path = self.output_dir / name
        await run_in_threadpool(local_path.write_bytes, content)
        logger.info(f"Wrote {len(content)} bytes to {local_path}")

        url = None
        if self.store is None:
            logger.warning(f"No remote storage configured, skipping upload of {name}")
        else:
            url = await run_in_threadpool(self.store.upload, name, content, VIDEO_CONTENT_TYPE)

        return PersistedArtifact(job_id=job_id, blob_name=name, local_path=local_path, url=url)
