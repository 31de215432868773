from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel

from .models import PollPolicy

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [parent / "config/config.yaml" for parent in _HERE.parents[:4]]

CONFIG_PATH = next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)
if CONFIG_PATH is None:  # pragma: no cover - fail fast in broken installs
    raise FileNotFoundError("Default config.yaml could not be located; the package data appears to be missing.")

STORAGE_BACKENDS = ("none", "azure", "s3")


class AppSettings(BaseModel):
    name: str
    host: str = "127.0.0.1"
    port: int = 3333


class LoggingSettings(BaseModel):
    level: str = "INFO"


class CorsSettings(BaseModel):
    allow_origin_regex: str


class DocumentIntelligenceSettings(BaseModel):
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    model_id: str = "prebuilt-layout"
    locale: str = "en-IN"


class OpenAISettings(BaseModel):
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    api_version: str
    deployment: str
    max_tokens: int = 800
    system_prompt: str


class VideoSettings(BaseModel):
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    api_version: str = "preview"
    model: str = "sora"
    width: int = 480
    height: int = 480
    n_seconds: int = 5
    n_variants: int = 1
    request_timeout: float = 60.0


class StorageSettings(BaseModel):
    output_dir: Path
    backend: str = "none"
    azure_connection_string: Optional[str] = None
    azure_container: str = "videos"
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    presign_expiration: int = 3600


class Settings(BaseModel):
    app: AppSettings
    logging: LoggingSettings
    cors: CorsSettings
    poll: PollPolicy
    document_intelligence: DocumentIntelligenceSettings
    openai: OpenAISettings
    video: VideoSettings
    storage: StorageSettings


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    base = OmegaConf.create(OmegaConf.to_container(_load_default_config(), resolve=False))
    OmegaConf.set_struct(base, True)
    return DictConfig(OmegaConf.merge(base, OmegaConf.create(overrides or {})))


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Build validated settings from the packaged defaults.

    Environment variables (including a local ``.env`` file) are read while
    interpolations resolve, so the result reflects the environment at call
    time. ``overrides`` use the same nested layout as ``config.yaml``; keys
    that do not exist in the defaults are rejected.
    """
    load_dotenv()
    runtime_config = make_runtime_config(overrides)
    container = OmegaConf.to_container(runtime_config, resolve=True, enum_to_str=True)
    settings = Settings.model_validate(container)
    if settings.storage.backend not in STORAGE_BACKENDS:
        raise ValueError(f"Unsupported storage backend '{settings.storage.backend}'; expected one of {STORAGE_BACKENDS}")
    return settings
