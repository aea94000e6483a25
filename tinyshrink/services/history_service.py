# services/history_service.py

"""
History service - bounded, newest-first log of completed compressions
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import List, Union

from pydantic import ValidationError

from tinyshrink.models.compression import EncodedArtifact, ExternalArtifact, InlineArtifact
from tinyshrink.models.history import HistoryEntry
from tinyshrink.models.job import ImageJob, JobState
from tinyshrink.utils.file_handler import to_data_url
from tinyshrink.utils.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "compression-history"
MAX_HISTORY_ENTRIES = 50


def savings_percent(original_size: int, compressed_size: int) -> float:
    if not original_size:
        return 0.0
    return (original_size - compressed_size) / original_size * 100


class HistoryStore:
    def __init__(self, store: KeyValueStore, max_entries: int = MAX_HISTORY_ENTRIES):
        self.store = store
        self.max_entries = max_entries
        self._lock = asyncio.Lock()

    def list(self) -> List[HistoryEntry]:
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return [HistoryEntry(**item) for item in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Stored history is unreadable, treating it as empty: {e}")
            return []

    def entry_from_job(self, job: ImageJob) -> HistoryEntry:
        """Freeze a successful job into a history entry, encoding transient artifacts"""
        if job.status != JobState.SUCCESS or job.compressed_size is None or job.artifact is None:
            raise ValueError(f"Job {job.id} has no completed compression to record")

        if isinstance(job.artifact, InlineArtifact):
            artifact = EncodedArtifact(data_url=to_data_url(job.artifact.data, job.artifact.content_type))
        else:
            # already durable elsewhere, keep only the reference
            artifact = ExternalArtifact(url=job.artifact.url)

        return HistoryEntry(
            id=job.id,
            original_name=job.original_name,
            original_size=job.original_size,
            compressed_size=job.compressed_size,
            compressed_at=datetime.now().isoformat(),
            savings_percent=savings_percent(job.original_size, job.compressed_size),
            artifact=artifact
        )

    async def append(self, item: Union[ImageJob, HistoryEntry]) -> HistoryEntry:
        entry = self.entry_from_job(item) if isinstance(item, ImageJob) else item

        # store I/O runs off the event loop; the lock keeps read-modify-write whole
        async with self._lock:
            entries = await asyncio.to_thread(self.list)
            entries.insert(0, entry)
            del entries[self.max_entries:]
            payload = json.dumps([e.model_dump(mode="json") for e in entries])
            await asyncio.to_thread(self.store.set, HISTORY_KEY, payload)

        logger.info(f"Recorded '{entry.original_name}' in history ({entry.savings_percent:.1f}% saved)")
        return entry

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self.store.remove, HISTORY_KEY)
        logger.info("History cleared")
