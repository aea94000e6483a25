# models/history.py

"""
History data models
"""

from pydantic import BaseModel
from typing import Optional

from .compression import StoredArtifact


class HistoryEntry(BaseModel):
    id: str
    original_name: str
    original_size: int
    compressed_size: int
    compressed_at: str
    savings_percent: float
    artifact: Optional[StoredArtifact] = None


class CompressionStats(BaseModel):
    has_data: bool
    count: int = 0
    total_original_size: int = 0
    total_compressed_size: int = 0
    saved_bytes: int = 0
    savings_percent: float = 0.0


class StatsSummary(BaseModel):
    current: CompressionStats
    all_time: CompressionStats
