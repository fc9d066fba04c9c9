# tests/unit/test_openai_compat_adapter.py

from __future__ import annotations
import base64
import json
import sys
from pathlib import Path
from typing import List

import httpx
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from auditai.core.errors import ProviderError, ProviderHTTPError
from auditai.core.types import AIProvider, AttachedFile, Settings
from auditai.providers.openai_compat import OpenAICompatibleAdapter


# -------- fakes for the wire --------

class ChunkStream(httpx.SyncByteStream):
    def __init__(self, chunks: List[bytes]) -> None:
        self.chunks = chunks

    def __iter__(self):
        yield from self.chunks


def sse(*pieces: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": p}}]}) + "\n"
        for p in pieces
    ]
    return ("".join(lines) + "data: [DONE]\n").encode("utf-8")


class Recorder:
    def __init__(self, response_factory):
        self.requests: List[httpx.Request] = []
        self.response_factory = response_factory

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response_factory(request)

    @property
    def body(self):
        return json.loads(self.requests[-1].content)


def ok_stream(chunks: List[bytes]):
    return Recorder(lambda _req: httpx.Response(
        200, headers={"content-type": "text/event-stream"}, stream=ChunkStream(chunks)
    ))


def adapter_for(recorder, **kwargs) -> OpenAICompatibleAdapter:
    return OpenAICompatibleAdapter(transport=httpx.MockTransport(recorder), **kwargs)


def local_settings(**kw) -> Settings:
    base = {"api_key": "sk-dummy", "model": "qwen2.5:14b", "base_url": None, "system_instruction": None}
    base.update(kw)
    return Settings(provider=AIProvider.LOCAL, **base)


# -------- tests --------

def test_streams_cumulative_text_and_returns_total():
    rec = ok_stream([sse("Con", "tradiction ", "found.")])
    seen: List[str] = []
    out = adapter_for(rec).generate("check", [], local_settings(), seen.append)

    assert out == "Contradiction found."
    assert seen == ["Con", "Contradiction ", "Contradiction found."]
    assert seen[-1] == out


def test_chunk_split_mid_record_gives_same_result():
    raw = sse("alpha ", "beta")
    rec = ok_stream([raw[:17], raw[17:40], raw[40:]])
    assert adapter_for(rec).generate("p", [], local_settings()) == "alpha beta"


def test_malformed_line_does_not_interrupt_stream():
    raw = sse("before ") + b"data: {oops\n" + sse("after")
    rec = ok_stream([raw])
    seen: List[str] = []
    assert adapter_for(rec).generate("p", [], local_settings(), seen.append) == "before after"
    assert seen == ["before ", "before after"]


def test_request_body_and_endpoint_for_local():
    rec = ok_stream([sse("ok")])
    settings = local_settings(base_url="http://gpu-box:8000/v1/", model="", system_instruction="Be literal.")
    adapter_for(rec).generate("Review", [], settings)

    req = rec.requests[0]
    assert str(req.url) == "http://gpu-box:8000/v1/chat/completions"
    assert req.method == "POST"
    assert req.headers["authorization"] == "Bearer sk-dummy"
    assert req.headers["content-type"] == "application/json"
    assert "x-title" not in req.headers
    assert "http-referer" not in req.headers

    body = rec.body
    assert body["model"] == "qwen2.5:14b"   # fallback when unset
    assert body["stream"] is True
    assert body["max_tokens"] == 8192
    assert body["temperature"] == 0.3
    assert body["messages"][0] == {"role": "system", "content": "Be literal."}
    assert body["messages"][1]["role"] == "user"
    assert body["messages"][1]["content"][0] == {"type": "text", "text": "Review"}


def test_no_system_message_when_instruction_empty():
    rec = ok_stream([sse("ok")])
    adapter_for(rec).generate("Review", [], local_settings())
    messages = rec.body["messages"]
    assert len(messages) == 1 and messages[0]["role"] == "user"


def test_openrouter_headers_and_default_endpoint():
    rec = ok_stream([sse("ok")])
    settings = Settings(provider=AIProvider.OPENROUTER, api_key="sk-or", model="anthropic/claude-3-opus")
    adapter_for(rec, referer="https://audit.example", title="AuditAI").generate("p", [], settings)

    req = rec.requests[0]
    assert str(req.url) == "https://openrouter.ai/api/v1/chat/completions"
    assert req.headers["authorization"] == "Bearer sk-or"
    assert req.headers["http-referer"] == "https://audit.example"
    assert req.headers["x-title"] == "AuditAI"
    assert rec.body["model"] == "anthropic/claude-3-opus"


def test_attachment_parts_in_input_order():
    png = AttachedFile("scene.png", "image/png", 4, "iVBORw0K")
    txt = AttachedFile("note.txt", "text/plain", 5, base64.b64encode(b"Hello").decode())
    pdf = AttachedFile("case.pdf", "application/pdf", 3, base64.b64encode(b"pdf").decode())
    rec = ok_stream([sse("ok")])
    adapter_for(rec).generate("Review", [png, txt, pdf], local_settings())

    content = rec.body["messages"][-1]["content"]
    assert content[0] == {"type": "text", "text": "Review"}
    image_parts = [p for p in content if p["type"] == "image_url"]
    assert image_parts == [{"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0K"}}]
    assert content[1]["type"] == "image_url"
    assert "FILE START: note.txt" in content[2]["text"] and "Hello" in content[2]["text"]
    assert "case.pdf" in content[3]["text"]
    assert len(content) == 4


def test_non_success_status_raises_with_status_and_body():
    rec = Recorder(lambda _req: httpx.Response(401, text='{"error":"bad key"}'))
    seen: List[str] = []
    with pytest.raises(ProviderHTTPError) as ei:
        adapter_for(rec).generate("p", [], local_settings(), seen.append)
    assert ei.value.status_code == 401
    assert "401" in str(ei.value) and "bad key" in str(ei.value)
    assert seen == []


def test_transport_failure_becomes_provider_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)
    with pytest.raises(ProviderError) as ei:
        adapter_for(Recorder(boom)).generate("p", [], local_settings())
    assert "connection refused" in str(ei.value)


def test_create_reads_provider_cfg():
    a = OpenAICompatibleAdapter.create(provider_cfg={"base_url": "http://x/v1", "title": "T", "timeout": 5})
    assert a.base_url == "http://x/v1"
    assert a.title == "T"
    assert a.timeout == 5.0
