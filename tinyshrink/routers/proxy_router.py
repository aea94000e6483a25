# routers/proxy_router.py

"""
Companion Server Routes - Tinify proxy, credential probe and
persisted artifact management
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from tinyshrink.clients.tinify_client import STORED_URL_HEADER, TinifyTransport
from tinyshrink.core.config import settings
from tinyshrink.core.exceptions import CompressionError
from tinyshrink.models.compression import ApiKeyStatus, CompressionPointer, ShrinkUrlRequest
from tinyshrink.models.credential import Credential, Provenance
from tinyshrink.utils.file_handler import delete_compressed_image, list_compressed_images, save_compressed_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Proxy"])
tinify_transport = TinifyTransport()


def _credential(api_key: Optional[str]) -> Optional[Credential]:
    if api_key:
        return Credential(secret=api_key, provenance=Provenance.USER_INPUT)
    if settings.tinify_api_key:
        return Credential(secret=settings.tinify_api_key, provenance=Provenance.ENVIRONMENT)
    return None


def _shrink_body(pointer: CompressionPointer) -> dict:
    output = {"size": pointer.compressed_size, "type": pointer.content_type, "url": pointer.location}
    if pointer.width is not None:
        output["width"] = pointer.width
    if pointer.height is not None:
        output["height"] = pointer.height
    return {"output": output, "location": pointer.location}


def _relay_error(e: CompressionError) -> JSONResponse:
    logger.error(f"Error proxying to TinyPNG: {e.message}")
    return JSONResponse(status_code=e.status_code or 500, content={"error": e.message})


@router.post("/tinypng/shrink/file")
async def shrink_file(image: Optional[UploadFile] = File(None), apiKey: Optional[str] = Form(None)):
    """Upload an image to Tinify for compression"""
    credential = _credential(apiKey)
    if credential is None:
        return JSONResponse(status_code=400, content={"error": "API key is required"})

    data = await image.read() if image is not None else b""
    if not data:
        return JSONResponse(status_code=400, content={"error": "Image file is required"})

    logger.info(f"Proxying file '{image.filename}' ({len(data)} bytes) to TinyPNG")
    try:
        pointer = await tinify_transport.shrink(credential, image_bytes=data, filename=image.filename or "image")
    except CompressionError as e:
        return _relay_error(e)
    return _shrink_body(pointer)


@router.post("/tinypng/shrink/url")
async def shrink_url(request: ShrinkUrlRequest):
    """Have Tinify fetch and compress an image from a URL"""
    credential = _credential(request.apiKey)
    if credential is None:
        return JSONResponse(status_code=400, content={"error": "API key is required"})

    logger.info(f"Proxying URL {request.imageUrl} to TinyPNG")
    try:
        pointer = await tinify_transport.shrink(credential, image_url=request.imageUrl)
    except CompressionError as e:
        return _relay_error(e)
    return _shrink_body(pointer)


@router.get("/tinypng/output")
async def download_output(request: Request, url: Optional[str] = Query(None), apiKey: Optional[str] = Query(None)):
    """Download a compressed image from Tinify, keeping a copy when persistence is on"""
    credential = _credential(apiKey)
    if not url or credential is None:
        return JSONResponse(status_code=400, content={"error": "URL and API key are required"})

    try:
        response = await tinify_transport.download(url, credential)
    except CompressionError as e:
        return _relay_error(e)

    if not response.is_success:
        logger.error(f"Error downloading from TinyPNG: HTTP {response.status_code}")
        return JSONResponse(status_code=response.status_code,
                            content={"error": "Failed to download compressed image"})

    content_type = response.headers.get("content-type", "application/octet-stream")
    headers = {}
    if settings.persist_artifacts:
        name = urlparse(url).path.rstrip("/").rsplit("/", 1)[-1] or "image"
        try:
            filename = await asyncio.to_thread(save_compressed_image, response.content,
                                               settings.artifacts_dir, name, content_type)
        except OSError as e:
            logger.error(f"Could not persist compressed image from {url}: {e}")
        else:
            headers[STORED_URL_HEADER] = f"{str(request.base_url).rstrip('/')}/compressed/{filename}"
            logger.info(f"Persisted compressed image as {filename}")

    return Response(content=response.content, media_type=content_type, headers=headers)


@router.get("/config/api-key-status", response_model=ApiKeyStatus)
async def api_key_status():
    """Whether a server-side key is configured; the key itself is never returned"""
    if settings.tinify_api_key:
        return ApiKeyStatus(hasKey=True, source=Provenance.ENVIRONMENT.value)
    return ApiKeyStatus(hasKey=False)


@router.get("/compressed")
async def list_compressed():
    """List compressed images persisted on this server"""
    files = list_compressed_images(settings.artifacts_dir)
    return {"success": True, "files": files}


@router.delete("/compressed/{name}")
async def delete_compressed(name: str):
    try:
        deleted = delete_compressed_image(settings.artifacts_dir, name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="File not found")
    logger.info(f"Deleted persisted artifact {name}")
    return {"success": True, "message": f"Deleted {name}"}
