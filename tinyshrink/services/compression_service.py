# services/compression_service.py

"""
Compression service - tracks image jobs and drives them through the
remote compression pipeline concurrently
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple

from tinyshrink.clients.tinify_client import RemoteCompressionClient
from tinyshrink.core.exceptions import CompressionError, CredentialError, InvalidTransitionError
from tinyshrink.models.compression import ExternalArtifact, InlineArtifact
from tinyshrink.models.credential import Credential
from tinyshrink.models.job import ImageJob, JobState, JobUpdate
from tinyshrink.services.history_service import HistoryStore
from tinyshrink.services.state_machine import (
    JobStateMachine,
    PROGRESS_ARTIFACT_FETCHED,
    PROGRESS_POINTER_RECEIVED,
    PROGRESS_SUBMITTED,
)
from tinyshrink.utils.file_handler import save_compressed_image

logger = logging.getLogger(__name__)


class CompressionService:
    def __init__(self, client: RemoteCompressionClient, history: HistoryStore,
                 artifacts_dir: Optional[str] = None, artifacts_url_prefix: str = "/compressed"):
        self.client = client
        self.history = history
        self.artifacts_dir = artifacts_dir
        self.artifacts_url_prefix = artifacts_url_prefix
        self.jobs: Dict[str, ImageJob] = {}
        self._subscribers: List[asyncio.Queue] = []
        logger.info("CompressionService initialized")

    # ---------- intake ----------

    def submit_batch(self, images: Iterable[Tuple[str, bytes]]) -> List[ImageJob]:
        """Create one idle job per (name, bytes) pair"""
        images = list(images)
        for name, data in images:
            if not data:
                raise ValueError(f"Image file '{name}' is empty")

        created = []
        for name, data in images:
            job = ImageJob(
                id=str(uuid.uuid4()),
                original_name=name or "image",
                original_bytes=data,
                original_size=len(data),
                created_at=datetime.now().isoformat()
            )
            self.jobs[job.id] = job
            created.append(job)

        logger.info(f"Accepted batch of {len(created)} images")
        return created

    def submit_url(self, image_url: str, name: Optional[str] = None, original_size: int = 0) -> ImageJob:
        if not image_url or not image_url.strip():
            raise ValueError("Image URL is required")
        job = ImageJob(
            id=str(uuid.uuid4()),
            original_name=name or image_url.rstrip("/").rsplit("/", 1)[-1] or "image",
            source_url=image_url,
            original_size=original_size,
            created_at=datetime.now().isoformat()
        )
        self.jobs[job.id] = job
        logger.info(f"Accepted URL job {job.id} for {image_url}")
        return job

    def get_job(self, job_id: str) -> Optional[ImageJob]:
        return self.jobs.get(job_id)

    def list_jobs(self) -> List[ImageJob]:
        return list(self.jobs.values())

    def remove(self, job_id: str) -> bool:
        """Stop tracking a job; an in-flight request is left to finish on its own"""
        return self.jobs.pop(job_id, None) is not None

    # ---------- update channel ----------

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def updates(self) -> AsyncIterator[JobUpdate]:
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)

    def _publish(self, update: JobUpdate):
        for queue in self._subscribers:
            queue.put_nowait(update)

    # ---------- pipeline ----------

    async def process(self, jobs: Iterable[ImageJob], credential: Optional[Credential]) -> None:
        """Compress every eligible job concurrently; returns once all of them are terminal"""
        if credential is None or not credential.usable:
            raise CredentialError("API key is required")

        # flip to compressing before any await so a second caller sees them taken;
        # a job listed twice is no longer eligible on its second appearance
        eligible = []
        skipped = 0
        for job in jobs:
            machine = JobStateMachine(job, self._publish)
            if not machine.is_eligible:
                skipped += 1
                continue
            machine.begin()
            eligible.append(machine)
        if skipped:
            logger.info(f"Skipping {skipped} jobs that are already compressing or done")

        logger.info(f"Processing batch of {len(eligible)} images")
        await asyncio.gather(*(self._run(machine, credential) for machine in eligible))

        succeeded = sum(1 for m in eligible if m.job.status == JobState.SUCCESS)
        logger.info(f"Batch completed: {succeeded}/{len(eligible)} images compressed")

    async def retry(self, job_id: str, credential: Optional[Credential]) -> ImageJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise KeyError(job_id)
        if job.status != JobState.ERROR:
            raise InvalidTransitionError(job_id, job.status.value, "retry")
        if credential is None or not credential.usable:
            raise CredentialError("API key is required")

        logger.info(f"Retrying job {job_id}")
        JobStateMachine(job, self._publish).reset()
        await self.process([job], credential)
        return job

    async def _run(self, machine: JobStateMachine, credential: Credential):
        job = machine.job
        try:
            machine.advance(PROGRESS_SUBMITTED)
            if job.source_url:
                pointer = await self.client.submit(credential, image_url=job.source_url, filename=job.original_name)
            else:
                pointer = await self.client.submit(credential, image_bytes=job.original_bytes,
                                                   filename=job.original_name)
            machine.advance(PROGRESS_POINTER_RECEIVED)

            artifact = await self.client.fetch_artifact(pointer, credential)
            machine.advance(PROGRESS_ARTIFACT_FETCHED)

            if artifact.stored_url:
                ref = ExternalArtifact(url=artifact.stored_url)
            elif self.artifacts_dir:
                filename = await asyncio.to_thread(save_compressed_image, artifact.data, self.artifacts_dir,
                                                   job.original_name, artifact.content_type)
                ref = ExternalArtifact(url=f"{self.artifacts_url_prefix}/{filename}")
            else:
                ref = InlineArtifact(data=artifact.data, content_type=artifact.content_type)

            machine.succeed(pointer.compressed_size, ref)
        except (CompressionError, CredentialError, ValueError, OSError) as e:
            logger.warning(f"Compression of '{job.original_name}' failed: {e}")
            machine.fail(str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected error compressing '{job.original_name}': {e}", exc_info=True)
            machine.fail(str(e) or "Unknown error")
            return

        try:
            await self.history.append(job)
        except Exception as e:
            logger.error(f"Failed to record job {job.id} in history: {e}", exc_info=True)
