# src/auditai/attachments.py
from __future__ import annotations
import base64
import binascii
import logging
import math
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional

from .core.types import AttachedFile

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_MIME_TYPES = frozenset({
    "application/pdf",
    "text/plain",
    "text/markdown",
    "application/json",
    "image/jpeg",
    "image/png",
    "image/webp",
    DOCX_MIME,
})

# Decoded and inlined as text on the OpenAI-compatible path
TEXT_MIME_TYPES = frozenset({"text/plain", "text/markdown", "application/json"})

# Not every platform's mimetypes table knows these
_EXTRA_TYPES = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".webp": "image/webp",
    ".docx": DOCX_MIME,
}


def guess_mime_type(path: Path) -> str:
    extra = _EXTRA_TYPES.get(path.suffix.lower())
    if extra:
        return extra
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "application/octet-stream"


def is_supported_mime(mime_type: str) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


def format_file_size(size: int) -> str:
    """Human readable size: 0 Bytes, 1.5 KB, 2 MB ..."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / (1024 ** i), 2)
    return f"{value:g} {units[i]}"


def from_bytes(name: str, data: bytes, mime_type: Optional[str] = None) -> AttachedFile:
    mime = mime_type or guess_mime_type(Path(name))
    return AttachedFile(
        name=name,
        mime_type=mime,
        size_bytes=len(data),
        data=base64.b64encode(data).decode("ascii"),
    )


def from_path(path: Path, mime_type: Optional[str] = None) -> AttachedFile:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Attachment not found: {path}")
    return from_bytes(path.name, path.read_bytes(), mime_type or guess_mime_type(path))


# ----- per-protocol representations -----

def to_inline_bytes(file: AttachedFile) -> bytes:
    """Raw bytes for the native SDK's inline-data part."""
    return file.raw_bytes()


def to_openai_part(file: AttachedFile) -> Optional[Dict[str, Any]]:
    """
    Content part for an OpenAI-style user message.
    - image/*            -> image_url part with a data: URI
    - text/markdown/json -> decoded text between FILE START / FILE END markers
    - anything else      -> a text note telling the model the file may be unreadable
    Returns None when a text attachment cannot be decoded; the caller skips it.
    """
    mime = file.mime_type
    if mime.startswith("image/"):
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{mime};base64,{file.data}"},
        }

    if mime in TEXT_MIME_TYPES:
        try:
            text = file.raw_bytes().decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            logger.warning("Failed to decode text file %s: %s", file.name, e)
            return None
        return {
            "type": "text",
            "text": f"\n\n--- FILE START: {file.name} ---\n{text}\n--- FILE END ---\n",
        }

    return {
        "type": "text",
        "text": (
            f"\n[System note: file {file.name} ({mime}) was uploaded, but the OpenAI-compatible mode "
            "may not be able to parse this format natively (only images and plain text are supported). "
            "If the model cannot read the file, switch to Google Gemini mode or convert the file to plain text.]"
        ),
    }
