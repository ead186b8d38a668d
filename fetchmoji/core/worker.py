"""
Inference worker.

Embedding inference runs in its own process so the coordinator's event loop
never blocks on the model and the model's memory is returned to the OS when
the process exits. ``WorkerRuntime`` holds the message handling; it is also
usable in-process for tests.
"""

from abc import ABC, abstractmethod
import asyncio
import multiprocessing
import queue
import threading
from typing import Callable, List, Optional

from pydantic import ValidationError as MessageValidationError

from fetchmoji.util.logging import logger
from fetchmoji.vector.embeddings import IEmbeddingProvider

from . import config
from .messages import DisposeRequest, PreloadRequest, parse_request

Listener = Callable[[dict], None]


class WorkerRuntime:
    """Handles worker requests one at a time, posting replies through ``post``."""

    def __init__(self, provider_factory: Callable[[], IEmbeddingProvider], post: Callable[[dict], None]):
        self._provider_factory = provider_factory
        self._post = post
        self._provider: Optional[IEmbeddingProvider] = None

    @property
    def loaded(self) -> bool:
        return self._provider is not None

    def _get_provider(self, no_cache: bool = False) -> IEmbeddingProvider:
        if no_cache and self._provider is not None:
            self.dispose()

        if self._provider is None:
            self._post({"status": "initiate"})
            provider = self._provider_factory()
            # Touching the dimension forces the model to load now
            provider.get_dimension()
            self._provider = provider
            self._post({"status": "ready"})
        return self._provider

    def dispose(self) -> None:
        if self._provider is not None:
            self._provider.dispose()
        self._provider = None

    def handle(self, data: dict) -> None:
        try:
            request = parse_request(data)
        except MessageValidationError as e:
            logger.warning(f"Rejected worker request: {e.errors()[0]['msg']}")
            self._post({"status": "error", "error": f"invalid request: {e.errors()[0]['msg']}"})
            return

        try:
            if isinstance(request, DisposeRequest):
                self.dispose()
                self._post({"status": "disposed"})
                return

            provider = self._get_provider(no_cache=bool(request.no_cache))
            if isinstance(request, PreloadRequest):
                return

            embedding = provider.embed_text(request.text)
            self._post({"status": "complete", "embedding": [float(x) for x in embedding]})
        except Exception as e:
            logger.log_worker_event("request", {"error": str(e)}, status="failed")
            self._post({"status": "error", "error": str(e)})


def run_worker(inbox, outbox, provider_name: str = None, model_name: str = None) -> None:
    """Process target: serve requests from ``inbox`` until a ``None`` arrives."""

    def provider_factory():
        return config.get_embedding_provider(provider_name, model_name=model_name)

    runtime = WorkerRuntime(provider_factory, outbox.put)
    try:
        while True:
            data = inbox.get()
            if data is None:
                break
            runtime.handle(data)
    finally:
        runtime.dispose()
        outbox.put(None)


class IInferenceWorker(ABC):
    """Bidirectional message channel to an inference worker."""

    @abstractmethod
    def post_message(self, data: dict) -> None:
        pass

    @abstractmethod
    def add_listener(self, listener: Listener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, listener: Listener) -> None:
        pass

    @abstractmethod
    def terminate(self) -> None:
        """Stop the worker and free its memory."""
        pass


class ProcessInferenceWorker(IInferenceWorker):
    """Inference worker running in a spawned process.

    The process starts on the first posted message. Replies are read by a
    pump thread and handed to listeners on the asyncio loop that was running
    when the process started (or called directly when there was none).
    """

    def __init__(self, provider_name: str = None, model_name: str = None, join_timeout: float = 5.0):
        self.provider_name = provider_name
        self.model_name = model_name
        self.join_timeout = join_timeout

        self._ctx = multiprocessing.get_context("spawn")
        self._inbox = self._ctx.Queue()
        self._outbox = self._ctx.Queue()
        self._process = None
        self._pump = None
        self._loop = None
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self._stopping = threading.Event()

    @property
    def alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(self) -> None:
        if self._process is not None:
            return
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        self._process = self._ctx.Process(
            target=run_worker,
            args=(self._inbox, self._outbox, self.provider_name, self.model_name),
            name="fetchmoji-inference",
            daemon=True,
        )
        self._process.start()
        self._pump = threading.Thread(target=self._pump_messages, name="fetchmoji-worker-pump", daemon=True)
        self._pump.start()
        logger.log_worker_event("start", {"pid": self._process.pid})

    def post_message(self, data: dict) -> None:
        if self._stopping.is_set():
            raise RuntimeError("inference worker has been terminated")
        self.start()
        self._inbox.put(dict(data))

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _deliver(self, data: dict) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(listener, data)
            else:
                listener(data)

    def _pump_messages(self) -> None:
        while not self._stopping.is_set():
            try:
                data = self._outbox.get(timeout=0.1)
            except queue.Empty:
                if self._process is not None and not self._process.is_alive() and not self._stopping.is_set():
                    exitcode = self._process.exitcode
                    logger.log_worker_event("exit", {"exitcode": exitcode}, status="failed")
                    self._deliver({"status": "error", "error": f"inference worker exited with code {exitcode}"})
                    return
                continue
            if data is None:
                return
            self._deliver(data)

    def terminate(self) -> None:
        """
        Stop the process and the pump thread.

        Blocking: waits up to ``join_timeout`` for a clean exit, then kills the
        process and waits again.
        """
        if self._stopping.is_set():
            return
        self._stopping.set()

        if self._process is not None:
            self._inbox.put({"type": "dispose"})
            self._inbox.put(None)
            self._process.join(self.join_timeout)
            if self._process.is_alive():
                self._process.kill()
                self._process.join(self.join_timeout)
            logger.log_worker_event("terminate", {"pid": self._process.pid, "exitcode": self._process.exitcode})

        if self._pump is not None and self._pump is not threading.current_thread():
            self._pump.join(1.0)

        with self._lock:
            self._listeners.clear()
        for q in (self._inbox, self._outbox):
            q.cancel_join_thread()
            q.close()
