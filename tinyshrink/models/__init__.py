# models/__init__.py

from .compression import (
    CompressionPointer,
    Artifact,
    InlineArtifact,
    ExternalArtifact,
    EncodedArtifact,
    ArtifactRef,
    StoredArtifact,
    ShrinkUrlRequest,
    ShrinkResponse,
    ApiKeyStatus,
    StoredArtifactInfo
)
from .job import JobState, ImageJob, JobUpdate, JobView, UrlJobRequest
from .history import HistoryEntry, CompressionStats, StatsSummary
from .credential import Provenance, Credential, CredentialStatus, SaveCredentialRequest

__all__ = [
    'CompressionPointer',
    'Artifact',
    'InlineArtifact',
    'ExternalArtifact',
    'EncodedArtifact',
    'ArtifactRef',
    'StoredArtifact',
    'ShrinkUrlRequest',
    'ShrinkResponse',
    'ApiKeyStatus',
    'StoredArtifactInfo',
    'JobState',
    'ImageJob',
    'JobUpdate',
    'JobView',
    'UrlJobRequest',
    'HistoryEntry',
    'CompressionStats',
    'StatsSummary',
    'Provenance',
    'Credential',
    'CredentialStatus',
    'SaveCredentialRequest'
]
