"""
Minimal dependency-tracking reactive runtime.

Three primitives drive every binding in the engine:

- ``Signal``: a writable value.
- ``Computed``: a lazily recomputed value derived from other sources.
- ``Effect``: a side effect re-run when any source it read has changed.

Reads inside a ``Computed`` or ``Effect`` are tracked automatically.
Writes mark dependents dirty and schedule effects; effects are flushed in
creation order once the outermost write (or ``batch()``) completes, so every
effect observes a consistent snapshot. Writes made by effects during a
flush are handled within the same flush. An effect that re-runs more than
``MAX_EFFECT_RUNS_PER_FLUSH`` times in one flush is skipped for the rest of
that flush and an error is logged; this breaks derivation loops. An effect
that raises during a flush is logged and the flush continues.

The runtime is single-threaded and not thread-safe.
"""

import itertools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Set, TypeVar

logger = logging.getLogger("dynaforms.reactive")

T = TypeVar("T")

MAX_EFFECT_RUNS_PER_FLUSH = 10

_ids = itertools.count()
_observer: Optional["_Observer"] = None
_batch_depth = 0
_flushing = False
_pending: Dict[int, "Effect"] = {}


def default_equals(a: Any, b: Any) -> bool:
    """Same object, or equal values of the same type (so True != 1)."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    try:
        return bool(a == b)
    except Exception:
        return False


class _Source:
    """Something that can be read and tracked."""

    def __init__(self) -> None:
        self._version = 0
        self._subscribers: Set["_Observer"] = set()

    def _track(self) -> None:
        if _observer is not None:
            _observer._add_source(self)

    def _refresh(self) -> None:
        """Brings the source up to date before its version is compared."""

    def _notify_subscribers(self) -> None:
        for subscriber in list(self._subscribers):
            subscriber._mark_stale()


class _Observer:
    """Something that reads sources and reacts when they change."""

    def __init__(self) -> None:
        self._id = next(_ids)
        self._sources: Dict[_Source, int] = {}

    def _add_source(self, source: _Source) -> None:
        if source not in self._sources:
            self._sources[source] = source._version
            source._subscribers.add(self)

    def _sources_changed(self) -> bool:
        for source, seen_version in list(self._sources.items()):
            source._refresh()
            if source._version != seen_version:
                return True
        return False

    def _clear_sources(self) -> None:
        for source in self._sources:
            source._subscribers.discard(self)
        self._sources = {}

    def _run_tracked(self, fn: Callable[[], T]) -> T:
        global _observer
        self._clear_sources()
        previous = _observer
        _observer = self
        try:
            return fn()
        finally:
            _observer = previous

    def _mark_stale(self) -> None:
        raise NotImplementedError


class Signal(_Source, Generic[T]):
    """A writable reactive value."""

    def __init__(
        self,
        value: T,
        equals: Callable[[Any, Any], bool] = default_equals,
        name: Optional[str] = None,
    ):
        super().__init__()
        self._value = value
        self._equals = equals
        self.name = name

    def __call__(self) -> T:
        return self.get()

    def get(self) -> T:
        self._track()
        return self._value

    def peek(self) -> T:
        """Reads without tracking."""
        return self._value

    def set(self, value: T) -> None:
        if self._equals(self._value, value):
            return
        self._value = value
        self._version += 1
        self._notify_subscribers()
        _flush_if_idle()

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def __repr__(self) -> str:
        return f"Signal({self.name or ''}={self._value!r})"


class Computed(_Source, _Observer, Generic[T]):
    """A read-only value derived from other sources, recomputed lazily."""

    def __init__(
        self,
        fn: Callable[[], T],
        equals: Callable[[Any, Any], bool] = default_equals,
        name: Optional[str] = None,
    ):
        _Source.__init__(self)
        _Observer.__init__(self)
        self._fn = fn
        self._equals = equals
        self._value: Any = None
        self._stale = True
        self._initialized = False
        self._computing = False
        self.name = name

    def __call__(self) -> T:
        return self.get()

    def get(self) -> T:
        self._refresh()
        self._track()
        return self._value

    def peek(self) -> T:
        self._refresh()
        return self._value

    def _refresh(self) -> None:
        if not self._stale:
            return
        if self._initialized and not self._sources_changed():
            self._stale = False
            return
        if self._computing:
            raise RuntimeError(f"Cycle detected in computed value {self.name or ''}")
        self._computing = True
        try:
            value = self._run_tracked(self._fn)
        finally:
            self._computing = False
        self._stale = False
        if not self._initialized or not self._equals(self._value, value):
            self._value = value
            self._version += 1
        self._initialized = True

    def _mark_stale(self) -> None:
        if self._stale:
            return
        self._stale = True
        self._notify_subscribers()

    def __repr__(self) -> str:
        return f"Computed({self.name or ''})"


class Effect(_Observer):
    """
    Runs ``fn`` now and again whenever a source it read changes.

    ``fn`` may return a cleanup callable, invoked before the next run and on
    dispose.
    """

    def __init__(self, fn: Callable[[], Any], name: Optional[str] = None):
        super().__init__()
        self._fn = fn
        self._cleanup: Optional[Callable[[], None]] = None
        self._disposed = False
        self._scheduled = False
        self._runs_this_flush = 0
        self.name = name
        self._run()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _run(self) -> None:
        self._call_cleanup()
        result = self._run_tracked(self._fn)
        self._cleanup = result if callable(result) else None

    def _call_cleanup(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            cleanup()

    def _mark_stale(self) -> None:
        if self._disposed or self._scheduled:
            return
        self._scheduled = True
        _pending[self._id] = self

    def _execute(self) -> None:
        self._scheduled = False
        if self._disposed or not self._sources_changed():
            return
        self._runs_this_flush += 1
        if self._runs_this_flush > MAX_EFFECT_RUNS_PER_FLUSH:
            if self._runs_this_flush == MAX_EFFECT_RUNS_PER_FLUSH + 1:
                logger.error(
                    "effect_run_limit_exceeded",
                    extra={"effect": self.name, "limit": MAX_EFFECT_RUNS_PER_FLUSH},
                )
            # Re-baseline so the effect resumes on the next external change
            for source in self._sources:
                self._sources[source] = source._version
            return
        self._run()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        _pending.pop(self._id, None)
        self._clear_sources()
        self._call_cleanup()

    def __repr__(self) -> str:
        return f"Effect({self.name or self._id})"


def _flush_if_idle() -> None:
    if _batch_depth == 0 and not _flushing:
        flush()


def flush() -> None:
    """Runs every scheduled effect, in creation order, until none remain."""
    global _flushing
    if _flushing:
        return
    _flushing = True
    ran: List[Effect] = []
    try:
        while _pending:
            effect_id = min(_pending)
            effect = _pending.pop(effect_id)
            ran.append(effect)
            try:
                effect._execute()
            except Exception as error:
                # The remaining effects still run
                logger.error(
                    "effect_failed",
                    extra={"effect": effect.name, "error": str(error)},
                    exc_info=True,
                )
    finally:
        for effect in ran:
            effect._runs_this_flush = 0
        _flushing = False


@contextmanager
def batch() -> Iterator[None]:
    """Defers effects until the outermost batch exits."""
    global _batch_depth
    _batch_depth += 1
    try:
        yield
    finally:
        _batch_depth -= 1
        if _batch_depth == 0:
            flush()


def untracked(fn: Callable[[], T]) -> T:
    """Calls ``fn`` without recording its reads as dependencies."""
    global _observer
    previous = _observer
    _observer = None
    try:
        return fn()
    finally:
        _observer = previous


def signal(value: T, name: Optional[str] = None) -> Signal[T]:
    return Signal(value, name=name)


def computed(fn: Callable[[], T], name: Optional[str] = None) -> Computed[T]:
    return Computed(fn, name=name)


def effect(fn: Callable[[], Any], name: Optional[str] = None) -> Effect:
    return Effect(fn, name=name)
