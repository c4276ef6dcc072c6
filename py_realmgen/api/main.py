"""FastAPI main application."""

import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import settings
from ..core.worker import (
    CompleteMessage,
    ErrorMessage,
    GenerationRequest,
    Message,
    ProgressMessage,
    run_generation,
)

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Stages of a default run, used for the progress percentage
EXPECTED_STAGES = 12

# Initialize FastAPI app
app = FastAPI(
    title="Realm Generator API",
    description="Procedural world generation: terrain, realms, cultures and diplomacy",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory job registry
jobs: Dict[str, Dict[str, Any]] = {}
jobs_lock = threading.Lock()


# Request/Response models
class WorldGenerationRequest(BaseModel):
    """Request to generate a new world."""

    seed: Optional[str] = Field(None, description="Seed for reproducible generation; random when empty")
    width: int = Field(
        settings.default_grid_width, ge=1, le=settings.max_grid_width, description="Grid width in cells"
    )
    height: int = Field(
        settings.default_grid_height, ge=1, le=settings.max_grid_height, description="Grid height in cells"
    )


class JobResponse(BaseModel):
    """Response with job information."""

    job_id: str
    status: str
    progress_percent: int
    message: str
    seed: Optional[str] = None
    progress: List[str] = Field(default_factory=list, description="Ordered stage statuses")
    error_message: Optional[str] = None


def _job_response(job_id: str, job: Dict[str, Any]) -> JobResponse:
    if job["status"] == "completed":
        percent = 100
    else:
        percent = min(99, len(job["progress"]) * 100 // EXPECTED_STAGES)
    return JobResponse(
        job_id=job_id,
        status=job["status"],
        progress_percent=percent,
        message=f"Job {job['status']}",
        seed=job["seed"],
        progress=list(job["progress"]),
        error_message=job["error_message"],
    )


# Event handlers
@app.on_event("startup")
async def startup_event():
    logger.info("Starting Realm Generator API")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Realm Generator API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Realm Generator API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    with jobs_lock:
        running = sum(1 for job in jobs.values() if job["status"] == "running")
    return {"status": "healthy", "jobs": len(jobs), "running_jobs": running}


@app.post("/worlds/generate", response_model=JobResponse)
async def generate_world(request: WorldGenerationRequest, background_tasks: BackgroundTasks):
    """
    Start world generation job.

    Returns immediately with job ID. Use /jobs/{job_id} to check status.
    """
    logger.info("World generation requested", request=request.model_dump())

    # The job id doubles as the generation id carried by every message
    job_id = str(uuid.uuid4())
    seed = request.seed or str(uuid.uuid4())[:8]

    job = {
        "status": "pending",
        "seed": seed,
        "width": request.width,
        "height": request.height,
        "progress": [],
        "world": None,
        "error_message": None,
        "created_at": datetime.utcnow(),
    }
    with jobs_lock:
        jobs[job_id] = job

    background_tasks.add_task(
        run_world_generation,
        job_id,
        GenerationRequest(generation_id=job_id, seed=seed, width=request.width, height=request.height),
    )

    return _job_response(job_id, job)


@app.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job_status(job_id: str):
    """Get status of a world generation job."""
    with jobs_lock:
        job = jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return _job_response(job_id, job)


@app.get("/jobs/{job_id}/world")
async def get_job_world(job_id: str):
    """Snapshot of the generated world once the job has completed."""
    with jobs_lock:
        job = jobs.get(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job["status"] != "completed":
            raise HTTPException(status_code=409, detail=f"World not available, job {job['status']}")
        return job["world"]


# Background task functions
def run_world_generation(job_id: str, request: GenerationRequest):
    """
    Background task to generate a world.

    Runs in the threadpool; messages from any other generation id are ignored.
    """
    logger.info("Starting world generation", job_id=job_id)

    with jobs_lock:
        jobs[job_id]["status"] = "running"
        jobs[job_id]["started_at"] = datetime.utcnow()

    def on_message(message: Message) -> None:
        if message.generation_id != job_id:
            return
        with jobs_lock:
            job = jobs[job_id]
            if isinstance(message, ProgressMessage):
                job["progress"].append(message.status)
            elif isinstance(message, CompleteMessage):
                job["world"] = message.world
                job["status"] = "completed"
                job["completed_at"] = datetime.utcnow()
            elif isinstance(message, ErrorMessage):
                job["status"] = "failed"
                job["error_message"] = f"{message.error_type}: {message.error}"
                job["completed_at"] = datetime.utcnow()

    result = run_generation(request, on_message)
    if isinstance(result, ErrorMessage):
        logger.error("World generation failed", job_id=job_id, error=result.error)
    else:
        logger.info("World generation completed", job_id=job_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
