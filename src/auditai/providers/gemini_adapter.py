# src/auditai/providers/gemini_adapter.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types

from auditai.attachments import to_inline_bytes
from auditai.core.types import PROVIDER_DEFAULTS, AIProvider, AttachedFile, Settings, StreamCallback
from auditai.providers.model_policy import ModelCapabilities
from auditai.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 8192

# Block only high-severity content so legal/forensic material is not filtered
SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
)


def safety_settings() -> List[types.SafetySetting]:
    return [
        types.SafetySetting(category=c, threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH)
        for c in SAFETY_CATEGORIES
    ]


@ProviderRegistry.register(AIProvider.GOOGLE.value)
class GeminiAdapter:
    """
    Native multimodal adapter on the google-genai SDK.
    - attachments go inline as bytes parts, prompt text last
    - SDK errors propagate unmodified; the dispatcher classifies them
    """

    def __init__(self, *, capabilities: Optional[ModelCapabilities] = None):
        self.capabilities = capabilities or ModelCapabilities.default()

    @classmethod
    def create(cls, *, provider_cfg: Optional[Dict[str, Any]] = None) -> "GeminiAdapter":
        cfg = provider_cfg or {}
        capabilities = cfg.get("capabilities")
        if capabilities is None and cfg.get("capabilities_file"):
            capabilities = ModelCapabilities.load(Path(cfg["capabilities_file"]))
        return cls(capabilities=capabilities)

    def build_contents(self, prompt: str, files: Sequence[AttachedFile]) -> List[types.Content]:
        parts = [types.Part.from_bytes(data=to_inline_bytes(f), mime_type=f.mime_type) for f in files]
        parts.append(types.Part.from_text(text=prompt))
        return [types.Content(role="user", parts=parts)]

    def build_config(self, model_id: str, system_instruction: Optional[str]) -> types.GenerateContentConfig:
        thinking = None
        if not self.capabilities.supports_thinking(model_id):
            # models outside the thinking families reject a non-zero budget
            thinking = types.ThinkingConfig(thinking_budget=0)
        return types.GenerateContentConfig(
            system_instruction=system_instruction or None,
            safety_settings=safety_settings(),
            max_output_tokens=MAX_OUTPUT_TOKENS,
            thinking_config=thinking,
        )

    def generate(
        self,
        prompt: str,
        files: Sequence[AttachedFile],
        settings: Settings,
        on_stream: Optional[StreamCallback] = None,
    ) -> str:
        model_id = settings.model or PROVIDER_DEFAULTS[AIProvider.GOOGLE]["model"]
        client = genai.Client(api_key=settings.api_key)
        logger.info("generate_content_stream (model=%s, files=%d)", model_id, len(files))

        stream = client.models.generate_content_stream(
            model=model_id,
            contents=self.build_contents(prompt, files),
            config=self.build_config(model_id, settings.system_instruction),
        )

        full_text = ""
        for chunk in stream:
            # chunk.text is the new fragment only; accumulate here
            text = getattr(chunk, "text", None)
            if text:
                full_text += text
                if on_stream:
                    on_stream(full_text)
        return full_text
