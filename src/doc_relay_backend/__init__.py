"""
Doc Relay Backend - HTTP relay for document analysis, summarization and video generation

This package provides a FastAPI-based web service that sits between a browser
UI and three cloud services. It enables:

- Layout analysis of uploaded images/PDFs (Azure AI Document Intelligence)
- Summarization of extracted text through a hosted language model
- Text-to-video generation, with the resulting video persisted locally and
  uploaded to object storage (Azure Blob Storage or S3)

The backend is stateless: every request runs its workflow to completion and
nothing is kept between requests except the written video files.

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - dependencies: Lazy construction of the external service clients
    - analysis_service / summarization_service: Single-request relays
    - video_service: Submit, poll and fetch a video generation job
    - storage_service: Local and remote artifact persistence
    - polling: Bounded poll-until-terminal loop
    - configuration: OmegaConf defaults with environment overrides
    - errors: Failure taxonomy mapped to HTTP responses

Usage:
    Run the API server with:
        uvicorn doc_relay_backend.main:app --reload --port 3333

    Or use the console script, which applies the configured host, port and
    log level:
        doc-relay-backend
"""
