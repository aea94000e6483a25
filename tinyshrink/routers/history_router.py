# routers/history_router.py

"""
History, Stats and Credential API Routes
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from tinyshrink.core.exceptions import CredentialError
from tinyshrink.core.state import compression_service, credential_resolver, history_store
from tinyshrink.models.credential import CredentialStatus, SaveCredentialRequest
from tinyshrink.models.history import HistoryEntry, StatsSummary
from tinyshrink.services.stats_service import summarize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["History"])


@router.get("/history", response_model=List[HistoryEntry])
async def get_history():
    return history_store.list()


@router.delete("/history")
async def clear_history():
    """Remove every history entry"""
    await history_store.clear()
    return {"message": "History cleared"}


@router.get("/stats", response_model=StatsSummary)
async def get_stats():
    """Totals for the jobs in memory and for the stored history"""
    return summarize(compression_service.list_jobs(), history_store.list())


@router.get("/credential", response_model=CredentialStatus)
async def get_credential_status():
    if credential_resolver.current is None:
        await credential_resolver.resolve()
    return credential_resolver.status()


@router.put("/credential", response_model=CredentialStatus)
async def save_credential(request: SaveCredentialRequest):
    """Save an API key; an empty key only switches to edit mode"""
    if credential_resolver.current is None:
        await credential_resolver.resolve()
    try:
        credential_resolver.save(request.api_key)
    except CredentialError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return credential_resolver.status()
