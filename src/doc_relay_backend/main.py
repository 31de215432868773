from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .analysis_service import AnalysisRelay
from .configuration import Settings, load_settings
from .dependencies import ServiceRegistry
from .errors import RelayError, SummarizationError
from .models import (
    AnalyzeRequest,
    AppNameResponse,
    ErrorResponse,
    PingResponse,
    SummarizeResponse,
    TextRequest,
    VideoResponse,
)
from .summarization_service import SummarizationRelay
from .video_service import VideoWorkflow

logger = logging.getLogger(__name__)

settings = load_settings()
services = ServiceRegistry(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await services.aclose()


app = FastAPI(title="Doc Relay API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.cors.allow_origin_regex,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def get_settings() -> Settings:
    return settings


def get_analysis_relay() -> AnalysisRelay:
    return services.analysis


def get_summarization_relay() -> SummarizationRelay:
    return services.summarization


def get_video_workflow() -> VideoWorkflow:
    return services.video


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": str(exc)})


@app.get("/ping", response_model=PingResponse)
def ping() -> PingResponse:
    return PingResponse(pong="it worked!")


@app.get("/app-name", response_model=AppNameResponse)
def app_name(current: Settings = Depends(get_settings)) -> AppNameResponse:
    return AppNameResponse(appName=current.app.name)


@app.post("/analyze-base64", responses=ERROR_RESPONSES)
async def analyze_base64(
    payload: Optional[AnalyzeRequest] = None,
    relay: AnalysisRelay = Depends(get_analysis_relay),
) -> JSONResponse:
    payload = payload or AnalyzeRequest()
    try:
        document = await relay.analyze_base64(payload.base64Image, document_name=payload.documentName)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Document analysis failed unexpectedly")
        return JSONResponse(status_code=500, content={"code": "unexpected", "message": str(exc)})
    return JSONResponse(status_code=200, content=document)


@app.post("/summarize-by-text", response_model=SummarizeResponse, responses=ERROR_RESPONSES)
async def summarize_by_text(
    payload: Optional[TextRequest] = None,
    relay: SummarizationRelay = Depends(get_summarization_relay),
) -> SummarizeResponse:
    text = payload.text if payload else None
    try:
        result = await relay.summarize(text)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Summarization failed unexpectedly")
        raise SummarizationError(str(exc)) from exc
    return SummarizeResponse(result=result)


@app.post("/video-from-text", response_model=VideoResponse, response_model_exclude_none=True, responses=ERROR_RESPONSES)
async def video_from_text(
    payload: Optional[TextRequest] = None,
    workflow: VideoWorkflow = Depends(get_video_workflow),
) -> VideoResponse:
    text = payload.text if payload else None
    try:
        artifact = await workflow.run(text)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Video generation failed unexpectedly")
        raise RelayError(f"Error generating video: {exc}", details=str(exc)) from exc
    return VideoResponse(success=True, jobId=artifact.job_id, url=artifact.url)


def run() -> None:
    """Console entry point: ``doc-relay-backend``."""
    import uvicorn

    logging.basicConfig(
        level=settings.logging.level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.app.host, port=settings.app.port, log_level=settings.logging.level.lower())


if __name__ == "__main__":
    run()
