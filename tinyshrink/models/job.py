# models/job.py

"""
Job-related data models
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from enum import Enum

from .compression import ArtifactRef


class JobState(str, Enum):
    IDLE = "idle"
    COMPRESSING = "compressing"
    SUCCESS = "success"
    ERROR = "error"


class ImageJob(BaseModel):
    id: str
    original_name: str
    original_bytes: bytes = Field(default=b"", repr=False, exclude=True)
    original_size: int = 0
    source_url: Optional[str] = None
    status: JobState = JobState.IDLE
    progress: int = 0
    compressed_size: Optional[int] = None
    artifact: Optional[ArtifactRef] = Field(default=None, repr=False)
    error: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class JobUpdate(BaseModel):
    """One change to a job, as seen by update subscribers"""
    job_id: str
    patch: Dict[str, Any]


class JobView(BaseModel):
    """Read-only projection of an ImageJob for API consumers"""
    id: str
    original_name: str
    original_size: int
    source_url: Optional[str] = None
    status: JobState
    progress: int
    compressed_size: Optional[int] = None
    artifact_url: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_job(cls, job: ImageJob) -> "JobView":
        artifact_url = None
        if job.artifact is not None:
            if job.artifact.kind == "external":
                artifact_url = job.artifact.url
            else:
                artifact_url = f"/api/jobs/{job.id}/artifact"

        return cls(
            id=job.id,
            original_name=job.original_name,
            original_size=job.original_size,
            source_url=job.source_url,
            status=job.status,
            progress=job.progress,
            compressed_size=job.compressed_size,
            artifact_url=artifact_url,
            error=job.error,
            created_at=job.created_at,
            completed_at=job.completed_at
        )


class UrlJobRequest(BaseModel):
    image_url: str = Field(..., min_length=1, description="Public URL of the image to compress")
    name: Optional[str] = Field(None, description="Display name for the job")
    api_key: Optional[str] = Field(None, description="API key to use instead of the active one")
