from __future__ import annotations
from typing import Protocol, Sequence, Optional

from .types import AttachedFile, Settings, StreamCallback


class Provider(Protocol):
    """
    Interface the dispatcher uses to talk to any LLM backend.
    """

    def generate(
        self,
        prompt: str,
        files: Sequence[AttachedFile],
        settings: Settings,
        on_stream: Optional[StreamCallback] = None,
    ) -> str:
        """
        Streaming call. Invokes on_stream with the cumulative text after every
        non-empty piece and returns the final text once the stream ends.
        """
        ...
