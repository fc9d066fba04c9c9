from __future__ import annotations
import base64
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional


class AIProvider(str, Enum):
    GOOGLE = "google"          # native google-genai SDK
    OPENROUTER = "openrouter"  # hosted OpenAI-compatible aggregator
    LOCAL = "local"            # self-hosted OpenAI-compatible server (Ollama, vLLM)


StreamCallback = Callable[[str], None]

LOCAL_DUMMY_KEY = "sk-dummy"

PROVIDER_DEFAULTS: Dict[AIProvider, Dict[str, Optional[str]]] = {
    AIProvider.GOOGLE: {"base_url": None, "model": "gemini-3-pro-preview"},
    AIProvider.OPENROUTER: {"base_url": "https://openrouter.ai/api/v1", "model": "anthropic/claude-3-opus"},
    AIProvider.LOCAL: {"base_url": "http://localhost:11434/v1", "model": "qwen2.5:14b"},
}


def _default_system_instruction() -> str:
    path = Path(__file__).resolve().parents[1] / "prompts" / "system.txt"
    return path.read_text(encoding="utf-8").strip() if path.exists() else ""


DEFAULT_SYSTEM_INSTRUCTION = _default_system_instruction()

DEFAULT_ANALYSIS_PROMPT = (
    "Perform a detailed contradiction detection and compliance review of the uploaded case files."
)


@dataclass(frozen=True)
class Settings:
    provider: AIProvider
    api_key: str = ""
    model: str = ""
    base_url: Optional[str] = None
    system_instruction: Optional[str] = None

    def __post_init__(self):
        # accept plain strings ("google", "LOCAL") from config and callers
        object.__setattr__(self, "provider", AIProvider(str(getattr(self.provider, "value", self.provider)).lower()))

    @property
    def requires_api_key(self) -> bool:
        return self.provider is not AIProvider.LOCAL

    @classmethod
    def for_provider(cls, provider, **overrides) -> "Settings":
        """
        Build settings pre-filled with the provider's default base URL and model.
        Local deployments get a dummy bearer token when no key is given.
        """
        p = AIProvider(str(getattr(provider, "value", provider)).lower())
        defaults = PROVIDER_DEFAULTS[p]
        values = {
            "api_key": LOCAL_DUMMY_KEY if p is AIProvider.LOCAL else "",
            "model": defaults["model"] or "",
            "base_url": defaults["base_url"],
            "system_instruction": DEFAULT_SYSTEM_INSTRUCTION or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(provider=p, **values)


@dataclass(frozen=True)
class AttachedFile:
    name: str
    mime_type: str
    size_bytes: int
    data: str  # base64 payload, no data: prefix

    def __post_init__(self):
        if self.size_bytes < 0:
            raise ValueError(f"size_bytes must be >= 0 (got {self.size_bytes})")

    def raw_bytes(self) -> bytes:
        # MIME-wrapped payloads carry line breaks; anything else must be base64
        return base64.b64decode("".join(self.data.split()), validate=True)
