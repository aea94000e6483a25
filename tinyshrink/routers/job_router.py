# routers/job_router.py

"""
Image Job API Routes
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.responses import RedirectResponse, Response

from tinyshrink.core.exceptions import CredentialError, InvalidTransitionError
from tinyshrink.core.state import compression_service, credential_resolver
from tinyshrink.models.credential import Credential, Provenance
from tinyshrink.models.job import JobView, UrlJobRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])


async def active_credential(api_key: Optional[str] = None) -> Credential:
    """Explicit key from the request, else whatever the resolver settles on"""
    if api_key and api_key.strip():
        return Credential(secret=api_key.strip(), provenance=Provenance.USER_INPUT)

    credential = credential_resolver.current or await credential_resolver.resolve()
    if credential is None:
        raise HTTPException(status_code=400, detail="API key is required")
    return credential


@router.post("")
async def create_batch_job(
        background_tasks: BackgroundTasks,
        files: List[UploadFile] = File(...),
        api_key: Optional[str] = Form(None)
):
    """Accept a batch of images and compress them in the background"""
    logger.info(f"POST /api/jobs - Received {len(files)} files")
    credential = await active_credential(api_key)

    images = [(f.filename or "image", await f.read()) for f in files]
    try:
        jobs = compression_service.submit_batch(images)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(compression_service.process, jobs, credential)

    return {
        "status": "started",
        "message": f"Compression started for {len(jobs)} images",
        "jobs": [JobView.from_job(job) for job in jobs]
    }


@router.post("/url")
async def create_url_job(request: UrlJobRequest, background_tasks: BackgroundTasks):
    """Compress an image the remote service fetches from a URL"""
    logger.info(f"POST /api/jobs/url - {request.image_url}")
    credential = await active_credential(request.api_key)

    try:
        job = compression_service.submit_url(request.image_url, name=request.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(compression_service.process, [job], credential)
    return {"status": "started", "job": JobView.from_job(job)}


@router.get("", response_model=List[JobView])
async def list_jobs():
    return [JobView.from_job(job) for job in compression_service.list_jobs()]


@router.get("/{job_id}", response_model=JobView)
async def get_job_status(job_id: str):
    """Get status of one image job"""
    job = compression_service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobView.from_job(job)


@router.get("/{job_id}/artifact")
async def get_job_artifact(job_id: str):
    """Download the compressed image of a finished job"""
    job = compression_service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.artifact is None:
        raise HTTPException(status_code=404, detail="Compressed image not available")

    if job.artifact.kind == "external":
        return RedirectResponse(url=job.artifact.url)
    return Response(content=job.artifact.data, media_type=job.artifact.content_type)


@router.post("/{job_id}/retry", response_model=JobView)
async def retry_job(job_id: str, api_key: Optional[str] = Form(None)):
    """Run a failed job through the pipeline again"""
    logger.info(f"POST /api/jobs/{job_id}/retry")
    credential = await active_credential(api_key)

    try:
        job = await compression_service.retry(job_id, credential)
    except KeyError:
        raise HTTPException(status_code=404, detail="Job not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CredentialError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JobView.from_job(job)


@router.delete("/{job_id}")
async def remove_job(job_id: str):
    """Stop tracking a job"""
    if not compression_service.remove(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return {"message": f"Removed job {job_id}"}
