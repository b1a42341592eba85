"""
    Timers that sit next to the (synchronous) command engine.

    • ``Debouncer``       – single-shot resettable timer; a new call
                            replaces the pending one instead of queueing.
                            Used to validate a staged property edit only
                            after the user pauses typing.
    • ``TransientFlags``  – short-lived cosmetic flags such as "just
                            added".  Expiry looks the node up by id and
                            is a no-op if it has been deleted meanwhile.

    Neither touches graph structure.  With the default ``daemon_timer``
    callbacks run on a worker thread; a ``threading.Lock`` guards the
    little state they share with the caller, but whatever the callback
    does (validation, editor observers) is not marshalled back.  A host
    with an event loop passes a ``timer_factory`` whose timers fire on
    that loop (e.g. a single-shot UI timer) so the engine stays on one
    thread.  Tests use the same hook to drive time by hand.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional, Set, Tuple

from workflow_api.models.graph import Graph

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


def daemon_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class Debouncer:
    """
    Run a function once, ``delay`` seconds after the most recent ``call``.

    Usage:
        debouncer = Debouncer(0.3)
        debouncer.call(validate, 'title')   # pending
        debouncer.call(validate, 'title')   # replaces the pending call
    """

    def __init__(self, delay: float, timer_factory: Optional[TimerFactory] = None):
        self._delay = delay
        self._timer_factory = timer_factory or daemon_timer
        self._lock = threading.Lock()
        self._timer = None
        self._pending: Optional[Tuple[Callable[..., Any], tuple, dict]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> None:
        """Schedule ``fn``; any call still waiting is cancelled first."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation
            self._pending = (fn, args, kwargs)
            self._timer = self._timer_factory(self._delay, lambda: self._fire(generation))
            self._timer.start()

    def cancel(self) -> bool:
        """Drop the pending call, if any. Returns whether one was pending."""
        with self._lock:
            had_pending = self._pending is not None
            self._cancel_locked()
            return had_pending

    def flush(self) -> Any:
        """Run the pending call now (on the caller's thread)."""
        with self._lock:
            pending = self._pending
            self._cancel_locked()
        if pending is None:
            return None
        fn, args, kwargs = pending
        return fn(*args, **kwargs)

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending = None
        self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A replaced or cancelled timer may still fire once; ignore it
            if generation != self._generation or self._pending is None:
                return
            fn, args, kwargs = self._pending
            self._pending = None
            self._timer = None
        try:
            fn(*args, **kwargs)
        except Exception as exc:
            logger.error("Debounced call %s failed: %s", getattr(fn, '__name__', fn), exc)


class TransientFlags:
    """
    Per-node cosmetic flags that clear themselves after ``duration``.

    Args:
        graph:         Graph used to check that a node still exists.
        duration:      Seconds a flag stays set.
        on_change:     Optional ``callback(node_id, flagged)``.
        timer_factory: Same contract as for ``Debouncer``.
    """

    def __init__(self, graph: Graph, duration: float,
                 on_change: Optional[Callable[[str, bool], None]] = None,
                 timer_factory: Optional[TimerFactory] = None):
        self._graph = graph
        self._duration = duration
        self._on_change = on_change
        self._timer_factory = timer_factory or daemon_timer
        self._lock = threading.Lock()
        self._timers: Dict[str, Any] = {}
        self._flagged: Set[str] = set()

    def mark(self, node_id: str) -> None:
        """Flag ``node_id``; re-marking restarts its timer."""
        with self._lock:
            previous = self._timers.pop(node_id, None)
            if previous is not None:
                previous.cancel()
            self._flagged.add(node_id)
            timer = self._timer_factory(self._duration, lambda: self._expire(node_id))
            self._timers[node_id] = timer
            timer.start()
        self._emit(node_id, True)

    def is_flagged(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self._flagged and self._graph.has_node(node_id)

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._flagged.clear()

    def _expire(self, node_id: str) -> None:
        with self._lock:
            self._timers.pop(node_id, None)
            was_flagged = node_id in self._flagged
            self._flagged.discard(node_id)
            exists = self._graph.has_node(node_id)
        if not exists:
            logger.debug("Flag expired for deleted node '%s'; ignored", node_id)
            return
        if was_flagged:
            self._emit(node_id, False)

    def _emit(self, node_id: str, flagged: bool) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(node_id, flagged)
        except Exception as exc:
            logger.error("Flag listener failed for '%s': %s", node_id, exc)
