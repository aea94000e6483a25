# services/__init__.py

from .compression_service import CompressionService
from .credential_service import CredentialResolver, build_resolver
from .history_service import HistoryStore
from .state_machine import JobStateMachine
from .stats_service import compute_stats, summarize, format_size

__all__ = [
    'CompressionService',
    'CredentialResolver',
    'build_resolver',
    'HistoryStore',
    'JobStateMachine',
    'compute_stats',
    'summarize',
    'format_size'
]
