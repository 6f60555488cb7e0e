from __future__ import annotations

import httpx
import pytest

from intranet.core.exceptions import EmbeddingProviderError
from intranet.models.ticket import EMBEDDING_DIM
from intranet.services import embedding_queue, embeddings
from intranet.services.embedding_queue import EmbeddingJob, EmbeddingQueue


def test_queue_retries_failed_jobs_at_the_back_then_drops() -> None:
    calls: list[str] = []

    def processor(job: EmbeddingJob) -> None:
        calls.append(job.key)
        if job.item_id == "flaky":
            raise EmbeddingProviderError("embedding_request_failed")

    queue = EmbeddingQueue(max_retries=2, processor=processor)
    queue.enqueue("page", "flaky")
    queue.enqueue("ticket", "ok")

    while queue.process_next():
        pass

    assert calls == ["page-flaky", "ticket-ok", "page-flaky", "page-flaky"]
    assert len(queue) == 0
    assert queue.status() == {"queue_length": 0, "processing": False}


def test_queue_rejects_unknown_kind_and_clears() -> None:
    queue = EmbeddingQueue(processor=lambda _job: None)
    with pytest.raises(ValueError):
        queue.enqueue("book", "b-1")

    queue.enqueue("page", "p-1")
    queue.enqueue("page", "p-2")
    assert queue.clear() == 2
    assert queue.process_next() is False


def test_enqueue_embedding_is_noop_without_provider(monkeypatch) -> None:
    monkeypatch.setattr(embedding_queue.settings, "EMBEDDING_QUEUE_ENABLED", True)
    monkeypatch.setattr(embedding_queue.settings, "EMBEDDING_API_KEY", "")

    assert embedding_queue.enqueue_embedding("page", "p-1") is False


def test_clean_for_embedding_strips_markup_and_caps_length() -> None:
    assert embeddings.clean_for_embedding("<h1>VPN</h1>\n<p>Connect&nbsp;via   client</p>") == "VPN Connect via client"
    assert len(embeddings.clean_for_embedding("a " * 10_000)) == embeddings.MAX_EMBEDDING_CHARS


def _patch_client(monkeypatch, handler) -> None:
    real_client = httpx.Client
    monkeypatch.setattr(
        embeddings.httpx,
        "Client",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    monkeypatch.setattr(embeddings.settings, "EMBEDDING_API_KEY", "sk-test")
    monkeypatch.setattr(embeddings.settings, "EMBEDDING_DIM", EMBEDDING_DIM)


def test_compute_embedding_reads_openai_compatible_payload(monkeypatch) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [{"embedding": [0.5] * EMBEDDING_DIM}]})

    _patch_client(monkeypatch, handler)

    vector = embeddings.compute_embedding("Reset my password")

    assert len(vector) == EMBEDDING_DIM
    assert seen[0].url.path.endswith("/embeddings")
    assert seen[0].headers["Authorization"] == "Bearer sk-test"


def test_compute_embedding_rejects_wrong_dimension(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda _request: httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2]}]}))

    with pytest.raises(EmbeddingProviderError):
        embeddings.compute_embedding("Reset my password")


def test_compute_embedding_wraps_http_errors(monkeypatch) -> None:
    _patch_client(monkeypatch, lambda _request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(EmbeddingProviderError):
        embeddings.compute_embedding("Reset my password")


def test_compute_embedding_rejects_empty_text() -> None:
    with pytest.raises(ValueError):
        embeddings.compute_embedding("<p> </p>")
