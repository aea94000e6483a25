# core/state.py

"""
Shared service instances for the routers
"""

from tinyshrink.clients.companion_client import CompanionClient
from tinyshrink.clients.tinify_client import build_compression_client
from tinyshrink.core.config import settings
from tinyshrink.services.compression_service import CompressionService
from tinyshrink.services.credential_service import build_resolver
from tinyshrink.services.history_service import HistoryStore
from tinyshrink.utils.kv_store import JsonFileStore

store = JsonFileStore(settings.state_file)

history_store = HistoryStore(store, max_entries=settings.max_history_entries)

companion = CompanionClient(settings.companion_url) if settings.companion_url else None

credential_resolver = build_resolver(store, api_key=settings.tinify_api_key, companion=companion)

compression_service = CompressionService(
    build_compression_client(),
    history_store,
    artifacts_dir=settings.artifacts_dir if settings.persist_artifacts else None
)
