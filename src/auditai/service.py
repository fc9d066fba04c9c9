# src/auditai/service.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Sequence

from auditai.core.errors import AuthenticationError, PayloadTooLargeError, ProviderError
from auditai.core.ports import Provider
from auditai.core.types import AttachedFile, Settings, StreamCallback
from auditai.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key is missing. Please set it in Settings."
PAYLOAD_TOO_LARGE_MESSAGE = (
    "The files are too large for this API's direct processing limit. "
    "Split the files or extract their text before uploading."
)


def _status_of(exc: Exception) -> Optional[int]:
    # ProviderHTTPError/httpx use status_code, google-genai APIError uses code
    for attr in ("status_code", "code"):
        val = getattr(exc, attr, None)
        if isinstance(val, int):
            return val
    return None


def _classify_exception(exc: Exception) -> ProviderError:
    """
    Single classification pass:
    - entity-too-large (413) -> PayloadTooLargeError with guidance
    - ProviderError          -> unchanged
    - anything else          -> ProviderError carrying the original message
    """
    status = _status_of(exc)
    if status == 413 or (status is None and "413" in str(exc)):
        return PayloadTooLargeError(PAYLOAD_TOO_LARGE_MESSAGE)
    if isinstance(exc, ProviderError):
        return exc
    return ProviderError(str(exc) or exc.__class__.__name__)


def generate_case_analysis(
    prompt: str,
    files: Sequence[AttachedFile],
    settings: Settings,
    on_stream: Optional[StreamCallback] = None,
    *,
    provider_cfg: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Send one analysis request to the configured provider.

    on_stream receives the cumulative text as it grows. Returns the final text,
    identical to the last value passed to on_stream. Single attempt, no retries.
    """
    if not settings.api_key and settings.requires_api_key:
        raise AuthenticationError(MISSING_KEY_MESSAGE)

    Adapter = ProviderRegistry.get(settings.provider)
    try:
        adapter: Provider = Adapter.create(provider_cfg=provider_cfg)
        return adapter.generate(prompt, list(files), settings, on_stream)
    except KeyboardInterrupt:
        raise
    except Exception as e:
        logger.error("AI service error (%s): %s", settings.provider.value, e)
        classified = _classify_exception(e)
        if classified is e:
            raise
        raise classified from e
