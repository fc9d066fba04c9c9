# src/auditai/providers/sse.py
"""
Server-sent-event decoding for OpenAI-compatible chat completion streams.

Wire format, one record per line:

    data: {"choices":[{"delta":{"content":"<text>"}}]}
    ...
    data: [DONE]

Bytes arrive in arbitrary chunks; a line (or a multi-byte UTF-8 character) may
be split across two reads, so the decoder keeps a carry-over buffer and only
processes complete lines.
"""
from __future__ import annotations
import codecs
import json
import logging
from typing import Any, Iterable, Iterator, List

from auditai.core.errors import DecodeWarning

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def _extract_delta(record: Any) -> str:
    try:
        piece = record["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
    return piece if isinstance(piece, str) else ""


class SSEDecoder:
    """Incremental decoder: feed() byte chunks, get back text deltas in order."""

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.warnings: List[DecodeWarning] = []

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._utf8.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._decode_lines(lines)

    def close(self) -> List[str]:
        """
        Flush at end of stream. A trailing line without a newline still counts.
        """
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return self._decode_lines([tail]) if tail.strip() else []

    def _decode_lines(self, lines: Iterable[str]) -> List[str]:
        deltas: List[str] = []
        for line in lines:
            trimmed = line.strip()
            if not trimmed.startswith(DATA_PREFIX):
                continue
            payload = trimmed[len(DATA_PREFIX):]
            if payload == DONE_SENTINEL:
                continue
            try:
                record = json.loads(payload)
            except ValueError as e:
                warning = DecodeWarning(line=trimmed, reason=f"Error parsing stream chunk ({e})")
                self.warnings.append(warning)
                logger.warning("%s", warning)
                continue
            delta = _extract_delta(record)
            if delta:
                deltas.append(delta)
        return deltas


def iter_sse_deltas(chunks: Iterable[bytes], decoder: SSEDecoder | None = None) -> Iterator[str]:
    decoder = decoder or SSEDecoder()
    for chunk in chunks:
        if chunk:
            yield from decoder.feed(chunk)
    yield from decoder.close()
