"""
Inference worker message handling.
"""

import time
from unittest.mock import MagicMock

import pytest

from fetchmoji.core.messages import (
    DisposeRequest,
    EmbedRequest,
    PreloadRequest,
    parse_message,
    parse_request,
    request_payload,
)
from fetchmoji.core.worker import ProcessInferenceWorker, WorkerRuntime
from fetchmoji.vector.embeddings import DeterministicHashEmbedding


@pytest.fixture
def runtime():
    posted = []
    factory = MagicMock(side_effect=lambda: DeterministicHashEmbedding(dimension=16))
    return WorkerRuntime(factory, posted.append), posted, factory


def statuses(posted):
    return [message["status"] for message in posted]


def test_parse_requests():
    assert isinstance(parse_request({"type": "preload"}), PreloadRequest)
    assert isinstance(parse_request({"type": "dispose"}), DisposeRequest)

    request = parse_request({"text": "hi", "noCache": True})
    assert isinstance(request, EmbedRequest)
    assert request.no_cache is True
    assert request_payload(request) == {"text": "hi", "noCache": True}


def test_parse_message_keeps_unknown_fields():
    message = parse_message({"status": "progress", "file": "model.onnx"})

    assert message.status == "progress"
    assert message.embedding is None


def test_preload_loads_model_once(runtime):
    worker, posted, factory = runtime

    worker.handle({"type": "preload"})
    worker.handle({"type": "preload"})

    assert statuses(posted) == ["initiate", "ready"]
    assert factory.call_count == 1
    assert worker.loaded


def test_text_request_posts_embedding(runtime):
    worker, posted, _ = runtime

    worker.handle({"text": "🎉 party"})

    assert statuses(posted) == ["initiate", "ready", "complete"]
    embedding = posted[-1]["embedding"]
    assert embedding == DeterministicHashEmbedding(dimension=16).embed_text("🎉 party")
    assert all(isinstance(x, float) for x in embedding)


def test_no_cache_reloads_model(runtime):
    worker, posted, factory = runtime
    worker.handle({"type": "preload"})

    worker.handle({"text": "again", "noCache": True})

    assert statuses(posted) == ["initiate", "ready", "initiate", "ready", "complete"]
    assert factory.call_count == 2


def test_dispose(runtime):
    worker, posted, _ = runtime
    worker.handle({"type": "preload"})

    worker.handle({"type": "dispose"})

    assert posted[-1] == {"status": "disposed"}
    assert not worker.loaded


def test_invalid_request_posts_error(runtime, caplog):
    worker, posted, factory = runtime

    worker.handle({"noCache": True})

    assert "Rejected worker request" in caplog.text

    assert statuses(posted) == ["error"]
    assert "invalid request" in posted[0]["error"]
    factory.assert_not_called()


def test_provider_failure_posts_error():
    posted = []
    worker = WorkerRuntime(MagicMock(side_effect=OSError("model download failed")), posted.append)

    worker.handle({"text": "hello"})

    assert posted[-1] == {"status": "error", "error": "model download failed"}
    assert not worker.loaded


def test_embed_failure_posts_error():
    posted = []
    provider = MagicMock()
    provider.get_dimension.return_value = 16
    provider.embed_text.side_effect = RuntimeError("inference failed")
    worker = WorkerRuntime(lambda: provider, posted.append)

    worker.handle({"text": "hello"})

    assert statuses(posted) == ["initiate", "ready", "error"]
    assert worker.loaded


def test_process_worker_round_trip():
    """The spawned worker answers preload and text requests, then shuts down."""
    received = []
    worker = ProcessInferenceWorker(provider_name="hash")
    worker.add_listener(received.append)
    try:
        worker.post_message({"type": "preload"})
        worker.post_message({"text": "shout"})

        deadline = time.monotonic() + 60
        while time.monotonic() < deadline and "complete" not in statuses(received):
            time.sleep(0.05)
    finally:
        worker.terminate()

    assert statuses(received)[:3] == ["initiate", "ready", "complete"]
    assert len(received[2]["embedding"]) > 0
    assert not worker.alive


def test_post_after_terminate_fails():
    worker = ProcessInferenceWorker(provider_name="hash")
    worker.terminate()

    with pytest.raises(RuntimeError):
        worker.post_message({"text": "late"})


def test_crashed_process_reports_error():
    """Listeners get an error message when the worker process dies."""
    received = []
    worker = ProcessInferenceWorker(provider_name="hash")
    worker.add_listener(received.append)
    try:
        worker.post_message({"type": "preload"})
        deadline = time.monotonic() + 60
        while time.monotonic() < deadline and "ready" not in statuses(received):
            time.sleep(0.05)
        assert "ready" in statuses(received)

        worker._process.kill()

        deadline = time.monotonic() + 10
        while time.monotonic() < deadline and "error" not in statuses(received):
            time.sleep(0.05)
    finally:
        worker.terminate()

    assert received[-1]["status"] == "error"
    assert "exited with code" in received[-1]["error"]
