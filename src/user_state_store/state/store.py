"""In-process store that serializes dispatches through the reducer."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Callable, List, Optional
from uuid import uuid4

from ..config.settings import AppConfig, get_app_config
from ..monitoring.logger import correlation_scope, get_logger
from ..monitoring.metrics import METRICS, MetricsRegistry
from .actions import Action, update_version
from .reducer import UserStateReducer
from .schemas import UserState

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..persistence.storage import SnapshotStorage

Subscriber = Callable[[UserState], None]


class UserStateStore:
    """Holds the current :class:`UserState` and applies actions one at a time.

    Each dispatch runs the reducer under a lock, persists the new snapshot (when
    a storage backend is attached) and only then publishes it, so readers see
    either the previous snapshot or the next one. Subscribers are notified
    after the lock is released.
    """

    def __init__(
        self,
        initial_state: Optional[UserState] = None,
        *,
        reducer: Optional[UserStateReducer] = None,
        storage: Optional["SnapshotStorage"] = None,
        metrics: MetricsRegistry = METRICS,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._config = config or get_app_config()
        self._reducer = reducer or UserStateReducer.from_config(self._config)
        self._storage = storage
        self._persist = storage is not None and self._config.storage.persist_on_dispatch
        self._metrics = metrics
        self._state = initial_state if initial_state is not None else self._reducer.initial_state()
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()
        self._logger = get_logger(__name__)

    @classmethod
    def open(
        cls,
        storage: "SnapshotStorage",
        *,
        reducer: Optional[UserStateReducer] = None,
        metrics: MetricsRegistry = METRICS,
        config: Optional[AppConfig] = None,
    ) -> "UserStateStore":
        """Restore the stored snapshot (or defaults) and reconcile it with the running build."""

        restored = storage.load()
        store = cls(restored, reducer=reducer, storage=storage, metrics=metrics, config=config)
        store._logger.info(
            "Opened user state store",
            extra={"restored": restored is not None, "build_id": store._reducer.build_id},
        )
        store.dispatch(update_version())
        return store

    @property
    def state(self) -> UserState:
        return self._state

    def get_state(self) -> UserState:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for new snapshots; returns an unsubscribe function."""

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def dispatch(self, action: Action) -> UserState:
        kind = action.kind.value
        with correlation_scope(uuid4().hex[:12]):
            with self._lock:
                started = time.perf_counter()
                previous = self._state
                next_state = self._reducer(previous, action)
                if next_state is not previous and self._persist and self._storage is not None:
                    self._storage.save(next_state)
                self._state = next_state
                subscribers = list(self._subscribers)
                self._record_metrics(kind, next_state, time.perf_counter() - started)
            self._logger.debug("Dispatched %s", kind, extra={"action": action.to_dict()})
            if next_state is not previous:
                self._notify(subscribers, next_state)
        return next_state

    def _record_metrics(self, kind: str, state: UserState, elapsed: float) -> None:
        self._metrics.increment("actions.total")
        self._metrics.increment(f"actions.{kind}")
        self._metrics.observe("actions.latency_ms", elapsed * 1000.0)
        self._metrics.gauge("registry.tokens", sum(len(items) for items in state.tokens.values()))
        self._metrics.gauge("registry.pairs", sum(len(items) for items in state.pairs.values()))

    def _notify(self, subscribers: List[Subscriber], state: UserState) -> None:
        for callback in subscribers:
            try:
                callback(state)
            except Exception:  # noqa: BLE001 - subscriber errors are logged only
                self._logger.exception("User state subscriber failed")


__all__ = ["Subscriber", "UserStateStore"]
