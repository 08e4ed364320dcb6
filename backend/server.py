import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from loguru import logger
from pydantic import BaseModel, ValidationError

from viralcut.config_manager import AppConfig, ConfigManager
from viralcut.exceptions import InputValidationError
from viralcut.jobs.models import ClipConfig, ClipJob, IngestionJob
from viralcut.service import JobService, build_service
from viralcut.utils.logger import setup_logger

load_dotenv()


# Bridge standard logging (uvicorn) to loguru
class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# --- Data Models ---
class IngestRequest(BaseModel):
    url: Optional[str] = None


class IngestResponse(BaseModel):
    job_id: str
    message: str = "Processing started"


class ProcessRequest(BaseModel):
    job_id: Optional[str] = None
    moment_ids: Optional[List[str]] = None
    config: Optional[ClipConfig] = None


class ProcessResponse(BaseModel):
    clip_job_id: str
    message: str = "Clip processing started"


def load_config(config_path: Optional[str] = None) -> ConfigManager:
    config_path = config_path or os.getenv("VIRALCUT_CONFIG", "config/settings.yaml")
    try:
        return ConfigManager(config_path)
    except FileNotFoundError:
        logger.warning(f"No configuration at {config_path}, using defaults")
        return ConfigManager.from_config(AppConfig())


def create_app(config_manager: Optional[ConfigManager] = None, service: Optional[JobService] = None) -> FastAPI:
    config_manager = config_manager or load_config()
    service = service or build_service(config_manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service.runner.shutdown(wait=False)

    app = FastAPI(title="viralcut", lifespan=lifespan)
    app.state.config = config_manager
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InputValidationError)
    async def input_validation_handler(request: Request, exc: InputValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.post("/api/ingest", response_model=IngestResponse)
    async def ingest(request: Request) -> IngestResponse:
        service: JobService = request.app.state.service
        content_type = request.headers.get("content-type", "")

        if content_type.startswith("application/json"):
            try:
                body = IngestRequest(**(await request.json()))
            except (TypeError, ValueError, ValidationError) as e:
                raise HTTPException(status_code=400, detail=f"Malformed request body: {e}") from e
            job = service.submit_url(body.url)
        elif content_type.startswith("multipart/form-data"):
            form = await request.form()
            upload = form.get("file")
            if upload is None or isinstance(upload, str):
                raise HTTPException(status_code=400, detail="File is required")
            job = await run_in_threadpool(service.submit_upload, upload.filename, upload.file)
        else:
            raise HTTPException(status_code=400, detail="Invalid content type")

        return IngestResponse(job_id=job.id)

    @app.get("/api/status/{job_id}", response_model=IngestionJob)
    async def get_status(job_id: str, request: Request) -> IngestionJob:
        job = request.app.state.service.get_ingestion(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    @app.post("/api/process", response_model=ProcessResponse)
    async def process(body: ProcessRequest, request: Request) -> ProcessResponse:
        service: JobService = request.app.state.service
        job = service.submit_render(body.job_id, body.moment_ids, body.config)
        return ProcessResponse(clip_job_id=job.id)

    @app.get("/api/clips/{clip_job_id}", response_model=ClipJob)
    async def get_clip_job(clip_job_id: str, request: Request) -> ClipJob:
        job = request.app.state.service.get_clip_job(clip_job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Clip job not found")
        return job

    @app.get("/api/download/{clip_id}")
    async def download(clip_id: str, request: Request) -> FileResponse:
        try:
            uuid.UUID(clip_id)
        except ValueError as e:
            raise HTTPException(status_code=404, detail="Clip not found") from e

        clip_path = request.app.state.service.clips.clip_path(clip_id)
        if not clip_path.exists():
            raise HTTPException(status_code=404, detail="Clip not found")
        return FileResponse(clip_path, media_type="video/mp4", filename=f"{clip_id}.mp4")

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


def main(config_manager: Optional[ConfigManager] = None) -> None:
    import uvicorn

    config_manager = config_manager or load_config()
    setup_logger(log_dir=config_manager.paths.log_dir, cfg=config_manager.logging)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.getLogger("uvicorn").handlers = [InterceptHandler()]
    logging.getLogger("uvicorn.access").handlers = [InterceptHandler()]

    uvicorn.run(create_app(config_manager), host=config_manager.server.host, port=config_manager.server.port)


if __name__ == "__main__":
    main()
