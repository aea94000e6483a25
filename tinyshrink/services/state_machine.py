# services/state_machine.py

"""
Per-image state machine: idle -> compressing -> success | error
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from tinyshrink.core.exceptions import InvalidTransitionError
from tinyshrink.models.compression import ArtifactRef
from tinyshrink.models.job import ImageJob, JobState, JobUpdate

logger = logging.getLogger(__name__)

# Pipeline milestones
PROGRESS_SUBMITTED = 25
PROGRESS_POINTER_RECEIVED = 50
PROGRESS_ARTIFACT_FETCHED = 75
PROGRESS_DONE = 100

ELIGIBLE_STATES = (JobState.IDLE, JobState.ERROR)


class JobStateMachine:
    def __init__(self, job: ImageJob, on_update: Optional[Callable[[JobUpdate], None]] = None):
        self.job = job
        self.on_update = on_update

    @property
    def is_eligible(self) -> bool:
        return self.job.status in ELIGIBLE_STATES

    def _apply(self, **patch):
        for field, value in patch.items():
            setattr(self.job, field, value)
        if self.on_update is not None:
            self.on_update(JobUpdate(job_id=self.job.id, patch=patch))

    def _require(self, action: str, *states: JobState):
        if self.job.status not in states:
            raise InvalidTransitionError(self.job.id, self.job.status.value, action)

    def begin(self):
        self._require("begin compressing", *ELIGIBLE_STATES)
        self._apply(
            status=JobState.COMPRESSING,
            progress=0,
            error=None,
            compressed_size=None,
            artifact=None,
            completed_at=None
        )
        logger.debug(f"Job {self.job.id} compressing")

    def advance(self, progress: int):
        self._require("report progress", JobState.COMPRESSING)
        progress = max(0, min(PROGRESS_DONE, int(progress)))
        if progress <= self.job.progress:
            return
        self._apply(progress=progress)

    def succeed(self, compressed_size: int, artifact: ArtifactRef):
        self._require("succeed", JobState.COMPRESSING)
        if compressed_size is None or artifact is None:
            raise ValueError("A successful job needs both a compressed size and an artifact")
        self._apply(
            status=JobState.SUCCESS,
            progress=PROGRESS_DONE,
            compressed_size=compressed_size,
            artifact=artifact,
            completed_at=datetime.now().isoformat()
        )
        logger.debug(f"Job {self.job.id} succeeded ({compressed_size} bytes)")

    def fail(self, message: str):
        self._require("fail", JobState.COMPRESSING)
        self._apply(
            status=JobState.ERROR,
            error=message or "Unknown error",
            completed_at=datetime.now().isoformat()
        )
        logger.debug(f"Job {self.job.id} failed: {message}")

    def reset(self):
        self._require("reset", JobState.ERROR)
        self._apply(status=JobState.IDLE, progress=0, error=None, completed_at=None)
