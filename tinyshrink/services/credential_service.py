# services/credential_service.py

"""
Credential service - decides which API key is active and where it came from
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from tinyshrink.clients.companion_client import CompanionClient
from tinyshrink.core.exceptions import CredentialError
from tinyshrink.models.credential import Credential, CredentialStatus, Provenance
from tinyshrink.utils.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "tinyPngApiKey"


class CredentialStrategy:
    name = "base"

    async def find(self) -> Optional[Credential]:
        raise NotImplementedError


class SettingsCredentialStrategy(CredentialStrategy):
    """Key configured for this process (TINYSHRINK_TINIFY_API_KEY)"""
    name = "settings"

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    async def find(self) -> Optional[Credential]:
        if self.api_key:
            return Credential(secret=self.api_key, provenance=Provenance.ENVIRONMENT)
        return None


class CompanionCredentialStrategy(CredentialStrategy):
    """Key held by a companion server; the secret stays on the server"""
    name = "companion"

    def __init__(self, companion: CompanionClient):
        self.companion = companion

    async def find(self) -> Optional[Credential]:
        if not await self.companion.health():
            logger.warning(f"Companion server at {self.companion.base_url} is down, skipping its credential")
            return None
        try:
            status = await self.companion.api_key_status()
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning(f"Companion credential probe failed, falling back: {e}")
            return None

        if status.hasKey and status.source == Provenance.ENVIRONMENT.value:
            return Credential(secret=None, provenance=Provenance.ENVIRONMENT)
        return None


class StoredCredentialStrategy(CredentialStrategy):
    name = "stored"

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def find(self) -> Optional[Credential]:
        value = self.store.get(CREDENTIAL_KEY)
        if value:
            return Credential(secret=value, provenance=Provenance.STORED_LOCAL)
        return None


class CredentialResolver:
    def __init__(self, strategies: List[CredentialStrategy], store: KeyValueStore):
        self.strategies = strategies
        self.store = store
        self.current: Optional[Credential] = None
        self.editing = False

    async def resolve(self) -> Optional[Credential]:
        """First strategy that finds a credential wins"""
        for strategy in self.strategies:
            credential = await strategy.find()
            if credential is not None:
                logger.info(f"Using credential from {strategy.name} ({credential.provenance.value})")
                self.current = credential
                self.editing = False
                return credential

        logger.info("No credential configured; one must be entered")
        self.current = None
        return None

    def save(self, value: str) -> Optional[Credential]:
        """Store a user-entered key; an empty value only switches to edit mode"""
        value = (value or "").strip()
        if not value:
            self.editing = True
            return self.current

        if self.current is not None and self.current.provenance == Provenance.ENVIRONMENT:
            raise CredentialError("API key is configured on the server and cannot be changed")

        self.store.set(CREDENTIAL_KEY, value)
        self.current = Credential(secret=value, provenance=Provenance.USER_INPUT)
        self.editing = False
        logger.info("Saved user-supplied credential")
        return self.current

    def status(self) -> CredentialStatus:
        return CredentialStatus(
            active=self.current is not None,
            provenance=self.current.provenance if self.current else None,
            editing=self.editing,
            can_override=self.current is None or self.current.provenance != Provenance.ENVIRONMENT
        )


def build_resolver(store: KeyValueStore, api_key: Optional[str] = None,
                   companion: Optional[CompanionClient] = None) -> CredentialResolver:
    strategies: List[CredentialStrategy] = [SettingsCredentialStrategy(api_key)]
    if companion is not None:
        strategies.append(CompanionCredentialStrategy(companion))
    strategies.append(StoredCredentialStrategy(store))
    return CredentialResolver(strategies, store)
