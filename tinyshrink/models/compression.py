# models/compression.py

"""
Remote compression data models
"""

from pydantic import BaseModel, Field
from typing import Optional, Union, Literal, Annotated


class CompressionPointer(BaseModel):
    """Where the remote service left the compressed artifact, plus its metadata"""
    location: str
    compressed_size: int
    content_type: Optional[str] = None
    input_size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None


class Artifact(BaseModel):
    data: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"
    stored_url: Optional[str] = None


class InlineArtifact(BaseModel):
    kind: Literal["inline"] = "inline"
    data: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"


class ExternalArtifact(BaseModel):
    kind: Literal["external"] = "external"
    url: str


class EncodedArtifact(BaseModel):
    kind: Literal["encoded"] = "encoded"
    data_url: str = Field(repr=False)


ArtifactRef = Annotated[Union[InlineArtifact, ExternalArtifact], Field(discriminator="kind")]

StoredArtifact = Annotated[Union[EncodedArtifact, ExternalArtifact], Field(discriminator="kind")]


class ShrinkUrlRequest(BaseModel):
    apiKey: Optional[str] = None
    imageUrl: str = Field(..., min_length=1, description="Public URL of the image to compress")


class ShrinkResponse(BaseModel):
    output: dict
    location: Optional[str] = None


class ApiKeyStatus(BaseModel):
    hasKey: bool
    source: Optional[str] = None


class StoredArtifactInfo(BaseModel):
    name: str
    url: str
    size: int
    modified_at: str
