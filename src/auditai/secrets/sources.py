# src/auditai/secrets/sources.py

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Protocol, Union
import logging
import os

import keyring
from keyring.errors import KeyringError

from auditai.core.types import AIProvider

logger = logging.getLogger(__name__)

# keyring entries live under one service; the username is the key name
KEYRING_SERVICE = "auditai"

DEFAULT_KEY_NAMES: Dict[AIProvider, str] = {
    AIProvider.GOOGLE: "GEMINI_API_KEY",
    AIProvider.OPENROUTER: "OPENROUTER_API_KEY",
    AIProvider.LOCAL: "LOCAL_LLM_API_KEY",
}


class SecretSource(Protocol):
    def get(self, key_name: str) -> Optional[str]: ...


class EnvSource:
    def get(self, key_name: str) -> Optional[str]:
        val = os.getenv(key_name, "").strip()
        return val or None


class KeyringSource:
    """Reads `keyring.get_password("auditai", <key name>)`."""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def get(self, key_name: str) -> Optional[str]:
        try:
            val = keyring.get_password(self.service, key_name)
        except KeyringError as e:
            logger.debug("keyring lookup failed for %s/%s: %s", self.service, key_name, e)
            return None
        return val.strip() if val and val.strip() else None


_SOURCES = {"env": EnvSource, "keyring": KeyringSource}


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    methods = [method] if isinstance(method, str) else list(method)
    sources: List[SecretSource] = []
    seen = set()
    for m in methods:
        key = str(m).strip().lower()
        if key not in _SOURCES:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_SOURCES)}")
        if key not in seen:
            seen.add(key)
            sources.append(_SOURCES[key]())
    return sources


class SecretsResolver:
    """
    Resolve a provider's API key from the configured sources, first hit wins.

    mapping overrides the key name per provider, e.g.
      { "openrouter": { "api_key": "MY_OPENROUTER_KEY" } }
    Unmapped providers use DEFAULT_KEY_NAMES.
    """

    def __init__(self, method: Union[str, Iterable[str]], mapping: Optional[Dict[str, Dict[str, str]]] = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def key_name(self, provider: Union[str, AIProvider]) -> str:
        p = AIProvider(str(getattr(provider, "value", provider)).lower())
        return self._map.get(p.value, {}).get("api_key") or DEFAULT_KEY_NAMES[p]

    def api_key(self, provider: Union[str, AIProvider]) -> Optional[str]:
        name = self.key_name(provider)
        for src in self._sources:
            val = src.get(name)
            if val:
                return val
        logger.debug("no API key found under %s", name)
        return None
