"""ObservableBox — a value holder that publishes on replacement and on
changes to selected nested attributes.

    box = ObservableBox(Progress(total=5), ["completed"])
    box.stream.subscribe(print)      # prints the Progress right away
    box.get().completed += 1         # prints the same Progress again
    box.set(Progress(total=3))       # prints the new Progress

Subscribers always receive the whole current value, never the changed
attribute on its own.

Watch registrations are owned by the box and always target the current
value. They are cancelled by destroy(), on leaving a `with box:` block, or
when the box is garbage collected. The stream is shared by reference and
keeps working (send/emit) after the box is gone.

Thread safety: set() is not atomic. Either serialize calls yourself or call
set_scheduler() once from the owning thread; after that, any set() from
another thread is auto-marshaled through the scheduler.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Callable, Generic, Iterable, TypeVar

from pathbox._errors import BoxDestroyedError, ConfigurationError
from pathbox.stream import ValueStream
from pathbox.watch import WatchHandle, watch

V = TypeVar("V")

Watcher = Callable[[object, str, Callable[[], None]], WatchHandle]

logger = logging.getLogger("pathbox.box")

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread ObservableBox.set().

    Call once from the main/UI thread:
        pathbox.set_scheduler(app.call_from_thread)

    After this, any set() from a background thread is passed to
    scheduler(fn) instead of running in place. Same-thread set() remains
    synchronous. set_scheduler(None) turns marshaling off.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


def _cancel_all(watches: list[WatchHandle]) -> None:
    for handle in watches:
        handle.cancel()
    watches.clear()


class ObservableBox(Generic[V]):
    """Holds a value and publishes it whenever it or a watched path changes."""

    __slots__ = ("_value", "_paths", "_watcher", "_watches", "_stream", "_finalizer", "__weakref__")

    def __init__(
        self,
        value: V,
        paths: str | Iterable[str] = (),
        *,
        watcher: Watcher = watch,
    ) -> None:
        self._paths: tuple[str, ...] = (paths,) if isinstance(paths, str) else tuple(paths)
        self._watcher = watcher
        self._watches: list[WatchHandle] = []
        self._value = value
        self._attach(value)
        self._stream: ValueStream[V] = ValueStream(value)
        # The finalizer only references the list, never the box.
        self._finalizer = weakref.finalize(self, _cancel_all, self._watches)

    @property
    def paths(self) -> tuple[str, ...]:
        return self._paths

    @property
    def stream(self) -> ValueStream[V]:
        """The subscribable side of this box."""
        return self._stream

    @property
    def value(self) -> V:
        return self._value

    @value.setter
    def value(self, value: V) -> None:
        self.set(value)

    @property
    def destroyed(self) -> bool:
        return not self._finalizer.alive

    def get(self) -> V:
        return self._value

    def set(self, value: V) -> None:
        """Replace the value. Always publishes, even if value is unchanged.

        Raises ConfigurationError (box left unchanged) if a watched path
        cannot be resolved on the new value.
        """
        if self.destroyed:
            raise BoxDestroyedError("cannot set a value on a destroyed ObservableBox")
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            _scheduler(lambda v=value: self._set_direct(v))
        else:
            self._set_direct(value)

    def _set_direct(self, value: V) -> None:
        """Re-wire watches onto value, then publish. Runs on the scheduler thread."""
        if self.destroyed:
            return
        old = self._value
        _cancel_all(self._watches)
        self._value = value
        try:
            self._attach(value)
        except Exception:
            self._value = old
            self._reattach(old)
            raise
        logger.debug("Replaced value; %d paths re-watched", len(self._watches))
        self._stream.send(value)

    def _on_change_callback(self) -> Callable[[], None]:
        ref = weakref.ref(self)

        def _on_change() -> None:
            box = ref()
            if box is not None:
                box._stream.send(box._value)

        return _on_change

    def _attach(self, value: V) -> None:
        """Register one watch per path on value. All-or-nothing."""
        on_change = self._on_change_callback()
        try:
            for path in self._paths:
                self._watches.append(self._watcher(value, path, on_change))
        except Exception:
            _cancel_all(self._watches)
            raise

    def _reattach(self, value: V) -> None:
        """Restore watches on a value that was current before a rejected set().

        The value may have drifted since it was first watched (a nested
        intermediate set to None), so the default watcher binds leniently.
        Paths that still fail are logged and left unwatched; the caller
        re-raises the original error.
        """
        on_change = self._on_change_callback()
        for path in self._paths:
            try:
                try:
                    handle = self._watcher(value, path, on_change)
                except ConfigurationError:
                    if self._watcher is not watch:
                        raise
                    handle = watch(value, path, on_change, strict=False)
            except Exception:
                logger.exception("Could not re-watch %r after a rejected set()", path)
                continue
            self._watches.append(handle)

    def destroy(self) -> None:
        """Cancel every watch. Idempotent. The stream stays usable."""
        if self._finalizer.alive:
            logger.debug("Destroying box with %d watches", len(self._watches))
            self._finalizer()

    def __enter__(self) -> ObservableBox[V]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.destroy()

    def __repr__(self) -> str:
        state = "destroyed" if self.destroyed else f"paths={list(self._paths)!r}"
        return f"ObservableBox({self._value!r}, {state})"


def published(value: V, *paths: str, watcher: Watcher = watch) -> ObservableBox[V]:
    """Factory: box value and publish changes to any of paths.

    Usage:
        progress = published(Progress(total=5), "completed")
        progress.stream.subscribe(lambda p: print(p.completed))
    """
    return ObservableBox(value, paths, watcher=watcher)
