# utils/file_handler.py

"""
File handling utilities
"""

import base64
import mimetypes
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from tinyshrink.models.compression import StoredArtifactInfo


def to_data_url(data: bytes, content_type: str) -> str:
    """Encode bytes as a base64 data URL"""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def safe_filename(name: str) -> str:
    """Strip path separators and odd characters from a user-supplied file name"""
    base = os.path.basename(name.replace("\\", "/"))
    cleaned = "".join(c for c in base if c.isalnum() or c in ('-', '_', '.'))
    return cleaned.lstrip(".") or "image"


def extension_for(content_type: Optional[str], fallback_name: str = "") -> str:
    ext = mimetypes.guess_extension(content_type or "") if content_type else None
    if ext == ".jpe":
        ext = ".jpg"
    if not ext:
        ext = Path(fallback_name).suffix or ".bin"
    return ext


def save_compressed_image(data: bytes, artifacts_dir: str, original_name: str,
                          content_type: Optional[str] = None) -> str:
    """Save compressed bytes under artifacts_dir and return the file name"""
    Path(artifacts_dir).mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    stem = Path(safe_filename(original_name)).stem[:40]
    filename = f"{stem}_{timestamp}_{uuid.uuid4().hex[:8]}{extension_for(content_type, original_name)}"

    filepath = os.path.join(artifacts_dir, filename)
    with open(filepath, 'wb') as f:
        f.write(data)

    return filename


def list_compressed_images(artifacts_dir: str, url_prefix: str = "/compressed") -> List[StoredArtifactInfo]:
    """List saved artifacts, newest first"""
    root = Path(artifacts_dir)
    if not root.exists():
        return []

    # every saved file is listed, whatever extension its content type produced
    files = [p for p in root.iterdir() if p.is_file() and not p.name.startswith(".")]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)

    return [
        StoredArtifactInfo(
            name=p.name,
            url=f"{url_prefix}/{p.name}",
            size=p.stat().st_size,
            modified_at=datetime.fromtimestamp(p.stat().st_mtime).isoformat()
        )
        for p in files
    ]


def delete_compressed_image(artifacts_dir: str, name: str) -> bool:
    """Delete one saved artifact; False when it does not exist"""
    if name != safe_filename(name):
        raise ValueError(f"Invalid artifact name: {name}")

    filepath = Path(artifacts_dir) / name
    if not filepath.is_file():
        return False
    filepath.unlink()
    return True
