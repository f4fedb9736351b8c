import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from sitegen import images, llm_client, projects


def gemini_body(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


class FakeGemini:
    """Scripted generateContent endpoint; replies are consumed in order."""

    def __init__(self) -> None:
        self.replies: List[Dict[str, Any]] = []
        self.requests: List[Dict[str, Any]] = []
        self.headers: List[httpx.Headers] = []

    def reply(self, text: Optional[str] = None, *, status: int = 200, body: Any = None, error: bool = False) -> None:
        self.replies.append({"text": text, "status": status, "body": body, "error": error})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if not self.replies:
            return httpx.Response(500, text="no scripted reply left")
        r = self.replies.pop(0)
        if r["error"]:
            raise httpx.ConnectError("connection refused", request=request)
        if r["body"] is not None:
            return httpx.Response(r["status"], json=r["body"])
        if r["status"] != 200:
            return httpx.Response(r["status"], text="upstream unavailable")
        return httpx.Response(200, json=gemini_body(r["text"] or ""))


@pytest.fixture
def gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(llm_client, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(
        llm_client,
        "_make_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)),
    )
    monkeypatch.setattr(images, "UNSPLASH_ACCESS_KEY", "")
    return fake


@pytest.fixture
def store(monkeypatch):
    fresh = projects.MemoryProjectStore()
    monkeypatch.setattr(projects, "store", fresh)
    return fresh
