"""
Search coordinator.

Reconciles two readiness signals that complete in any order: the inference
worker (``model_ready``) and the vector store load (``db_ready``). A query
whose embedding arrives before the store is ready waits on a one-shot
store-ready future instead of failing.

All state is mutated on the event loop thread. The only suspension points are
awaiting the store-ready future and awaiting the search itself.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, List, Optional, Set

from fetchmoji.util.logging import logger
from fetchmoji.vector.index import IVectorStore
from fetchmoji.vector.types import SearchResult

from . import config
from .messages import parse_message
from .worker import IInferenceWorker


@dataclass
class CoordinatorState:
    """Snapshot of the UI-facing search state."""

    matched: Optional[List[str]]
    model_ready: bool
    db_ready: bool
    is_searching: bool


@dataclass
class SearchDeps:
    """Collaborators injected into the coordinator."""

    load_store: Callable[[], Awaitable[IVectorStore]]
    search: Callable[[IVectorStore, List[float]], Awaitable[List[SearchResult]]]
    create_worker: Callable[[], IInferenceWorker]


def store_search(match_threshold: float = None, limit: int = None):
    """Build a ``SearchDeps.search`` that queries a store off the event loop."""
    match_threshold = config.MATCH_THRESHOLD if match_threshold is None else match_threshold
    limit = config.SEARCH_LIMIT if limit is None else limit

    async def search(store: IVectorStore, embedding: List[float]) -> List[SearchResult]:
        return await asyncio.to_thread(store.search_embeddings, embedding, match_threshold, limit)

    return search


class SearchCoordinator:
    """State machine between the text box, the inference worker and the store."""

    def __init__(
        self,
        deps: SearchDeps,
        on_state_change: Callable[[], None] = None,
        debounce_sec: float = None,
    ):
        self.deps = deps
        self.on_state_change = on_state_change or (lambda: None)
        self.debounce_sec = config.get_debounce_seconds() if debounce_sec is None else debounce_sec

        # State
        self.matched: Optional[List[str]] = None
        self.model_ready = False
        self.db_ready = False
        self.is_searching = False
        self.store_error: Optional[BaseException] = None

        # Internal
        self._store: Optional[IVectorStore] = None
        self._store_ready: Optional[asyncio.Future] = None
        self._load_task: Optional[asyncio.Task] = None
        self._debounce: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._destroyed = False

        self.worker = deps.create_worker()
        self.worker.add_listener(self.on_worker_message)

    def get_state(self) -> CoordinatorState:
        return CoordinatorState(
            matched=list(self.matched) if self.matched is not None else None,
            model_ready=self.model_ready,
            db_ready=self.db_ready,
            is_searching=self.is_searching,
        )

    def _notify(self, event: str) -> None:
        logger.log_coordinator_event(event, asdict(self.get_state()))
        self.on_state_change()

    def initialize(self, no_cache: bool = False) -> asyncio.Task:
        """
        Start loading the store and preloading the model, concurrently.

        Must be called from a running event loop, once per session. A repeat
        call returns the existing load task.
        """
        if self._load_task is not None:
            return self._load_task

        loop = asyncio.get_running_loop()
        self._store_ready = loop.create_future()
        self._load_task = loop.create_task(self._load_store())

        self.worker.post_message({"type": "preload", "noCache": no_cache})
        return self._load_task

    async def _load_store(self) -> None:
        try:
            store = await self.deps.load_store()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # No retry: db_ready stays False and waiting queries keep waiting
            self.store_error = e
            logger.log_coordinator_event("store_load", {"error": str(e)}, status="failed")
            return

        self._store = store
        self.db_ready = True
        self._notify("db_ready")

        if self._store_ready is not None and not self._store_ready.done():
            self._store_ready.set_result(store)

    def classify(self, text: str, no_cache: bool = False) -> None:
        """Debounce a query; only the last text in a burst reaches the worker."""
        self._cancel_debounce()

        if not text.strip():
            self.matched = None
            self.is_searching = False
            self._notify("cleared")
            return

        self.is_searching = True
        self._notify("searching")

        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(self.debounce_sec, self._dispatch, text, no_cache)

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _dispatch(self, text: str, no_cache: bool) -> None:
        self._debounce = None
        self.worker.post_message({"text": text, "noCache": no_cache})

    def on_worker_message(self, data) -> Optional[asyncio.Task]:
        """Handle a message posted by the inference worker."""
        if self._destroyed:
            return None

        message = parse_message(data)

        if message.status == "initiate":
            self.model_ready = False
            self._notify("model_loading")
        elif message.status == "ready":
            self.model_ready = True
            self._notify("model_ready")
        elif message.status == "complete":
            if not message.embedding:
                self.is_searching = False
                self._notify("no_embedding")
                return None
            task = asyncio.get_running_loop().create_task(self._complete(message.embedding))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return task
        elif message.status == "error":
            logger.log_worker_event("error", {"error": message.error}, status="failed")
            self.is_searching = False
            self._notify("worker_error")
        else:
            logger.debug(f"Ignoring worker message with status {message.status!r}")
        return None

    async def _complete(self, embedding: List[float]) -> None:
        store = self._store
        if store is None and self._store_ready is not None:
            store = await self._store_ready
        if store is None:
            self.is_searching = False
            self._notify("no_store")
            return

        try:
            results = await self.deps.search(store, embedding)
        except Exception as e:
            logger.log_coordinator_event("search", {"error": str(e)}, status="failed")
            self.is_searching = False
            self._notify("search_failed")
            return

        self.matched = [result.identifier for result in results]
        self.is_searching = False
        self._notify("matched")

    def destroy(self) -> None:
        """
        Cancel timers and pending work, detach from the worker and terminate it.

        Blocks until the worker process exits (see ``ProcessInferenceWorker.terminate``),
        so call it on shutdown only.
        """
        if self._destroyed:
            return
        self._destroyed = True

        self._cancel_debounce()
        self.worker.remove_listener(self.on_worker_message)
        self.worker.terminate()

        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        for task in list(self._tasks):
            task.cancel()
        if self._store_ready is not None and not self._store_ready.done():
            self._store_ready.cancel()
