# services/stats_service.py

"""
Summary statistics over the current batch and the history
"""

from typing import Iterable, Optional

from tinyshrink.models.history import CompressionStats, HistoryEntry, StatsSummary
from tinyshrink.models.job import ImageJob, JobState


def _stats(pairs) -> CompressionStats:
    pairs = list(pairs)
    if not pairs:
        return CompressionStats(has_data=False)

    total_original = sum(original for original, _ in pairs)
    total_compressed = sum(compressed for _, compressed in pairs)
    saved = total_original - total_compressed

    return CompressionStats(
        has_data=True,
        count=len(pairs),
        total_original_size=total_original,
        total_compressed_size=total_compressed,
        saved_bytes=saved,
        savings_percent=(saved / total_original * 100) if total_original else 0.0
    )


def compute_stats(jobs: Optional[Iterable[ImageJob]] = None,
                  entries: Optional[Iterable[HistoryEntry]] = None) -> CompressionStats:
    """Totals over successful jobs and history entries together"""
    pairs = []
    for job in jobs or []:
        if job.status == JobState.SUCCESS:
            pairs.append((job.original_size, job.compressed_size or 0))
    for entry in entries or []:
        pairs.append((entry.original_size, entry.compressed_size))
    return _stats(pairs)


def summarize(jobs: Iterable[ImageJob], entries: Iterable[HistoryEntry]) -> StatsSummary:
    return StatsSummary(
        current=compute_stats(jobs=jobs),
        all_time=compute_stats(entries=entries)
    )


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.1f} MB"
