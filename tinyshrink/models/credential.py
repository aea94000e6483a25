# models/credential.py

"""
Credential data models
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class Provenance(str, Enum):
    ENVIRONMENT = "environment"
    STORED_LOCAL = "stored_local"
    USER_INPUT = "user_input"


class Credential(BaseModel):
    # None when the key lives on a companion server and is injected there
    secret: Optional[str] = Field(default=None, repr=False)
    provenance: Provenance

    @property
    def server_managed(self) -> bool:
        return self.secret is None and self.provenance == Provenance.ENVIRONMENT

    @property
    def usable(self) -> bool:
        return bool(self.secret) or self.server_managed


class CredentialStatus(BaseModel):
    active: bool
    provenance: Optional[Provenance] = None
    editing: bool = False
    can_override: bool = True


class SaveCredentialRequest(BaseModel):
    api_key: str = ""
