# src/auditai/providers/openai_compat.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from auditai.attachments import to_openai_part
from auditai.core.errors import ProviderError, ProviderHTTPError
from auditai.core.types import PROVIDER_DEFAULTS, AIProvider, AttachedFile, Settings, StreamCallback
from auditai.providers.registry import ProviderRegistry
from auditai.providers.sse import SSEDecoder, iter_sse_deltas

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"
FALLBACK_MODEL = "qwen2.5:14b"
MAX_TOKENS = 8192
TEMPERATURE = 0.3  # literal analysis over creative variation
DEFAULT_TIMEOUT = 120.0
DEFAULT_REFERER = "http://localhost"
DEFAULT_TITLE = "AuditAI"


def resolve_endpoint(settings: Settings, configured_base_url: Optional[str] = None) -> str:
    base = settings.base_url or configured_base_url or PROVIDER_DEFAULTS[settings.provider]["base_url"]
    if not base:
        raise ProviderError(f"No base URL for provider '{settings.provider.value}'")
    return base.rstrip("/") + COMPLETIONS_PATH


def build_messages(prompt: str, files: Sequence[AttachedFile], system_instruction: Optional[str]) -> List[Dict[str, Any]]:
    messages: List[Dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})

    content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
    for f in files:
        part = to_openai_part(f)
        if part is not None:
            content.append(part)
    messages.append({"role": "user", "content": content})
    return messages


@ProviderRegistry.register(AIProvider.OPENROUTER.value)
@ProviderRegistry.register(AIProvider.LOCAL.value)
class OpenAICompatibleAdapter:
    """
    Chat-completions over plain HTTP with SSE streaming. Serves both the hosted
    aggregator and self-hosted servers; they differ only in base URL, headers
    and default model.
    - a fresh httpx.Client per call
    - non-2xx -> ProviderHTTPError(status, body)
    - transport failures -> ProviderError with the original message
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        referer: str = DEFAULT_REFERER,
        title: str = DEFAULT_TITLE,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url
        self.referer = referer
        self.title = title
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def create(cls, *, provider_cfg: Optional[Dict[str, Any]] = None) -> "OpenAICompatibleAdapter":
        cfg = provider_cfg or {}
        timeout = cfg.get("timeout", DEFAULT_TIMEOUT)
        return cls(
            base_url=cfg.get("base_url"),
            referer=cfg.get("referer") or DEFAULT_REFERER,
            title=cfg.get("title") or DEFAULT_TITLE,
            timeout=float(timeout) if timeout is not None else None,
            transport=cfg.get("transport"),
        )

    def _headers(self, settings: Settings) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.api_key}",
        }
        if settings.provider is AIProvider.OPENROUTER:
            headers["HTTP-Referer"] = self.referer
            headers["X-Title"] = self.title
        return headers

    def build_request(
        self, prompt: str, files: Sequence[AttachedFile], settings: Settings
    ) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        url = resolve_endpoint(settings, self.base_url)
        body = {
            "model": settings.model or FALLBACK_MODEL,
            "messages": build_messages(prompt, files, settings.system_instruction),
            "stream": True,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        return url, self._headers(settings), body

    def generate(
        self,
        prompt: str,
        files: Sequence[AttachedFile],
        settings: Settings,
        on_stream: Optional[StreamCallback] = None,
    ) -> str:
        url, headers, body = self.build_request(prompt, files, settings)
        logger.info("POST %s (model=%s, files=%d)", url, body["model"], len(files))

        client_kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if self.transport is not None:
            client_kwargs["transport"] = self.transport

        full_text = ""
        decoder = SSEDecoder()
        try:
            with httpx.Client(**client_kwargs) as client:
                with client.stream("POST", url, headers=headers, json=body) as response:
                    if not response.is_success:
                        err = response.read().decode("utf-8", errors="replace")
                        raise ProviderHTTPError(response.status_code, err)
                    for delta in iter_sse_deltas(response.iter_bytes(), decoder):
                        full_text += delta
                        if on_stream:
                            on_stream(full_text)
        except httpx.StreamError as e:
            raise ProviderError(f"No response body: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(str(e) or e.__class__.__name__) from e

        if decoder.warnings:
            logger.info("Stream finished with %d undecodable line(s)", len(decoder.warnings))
        return full_text
