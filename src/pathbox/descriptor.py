"""PublishedPath — class-attribute form of ObservableBox.

    class Downloads:
        progress = PublishedPath("completed", "total")

        def __init__(self):
            self.progress = Progress(total=5)

    d = Downloads()
    stream_of(d, "progress").subscribe(render)
    d.progress.completed += 1      # render(d.progress)
    d.progress = Progress(total=3) # render(new progress)

Each instance gets its own box, created on first assignment and stored in
the instance __dict__.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pathbox.box import ObservableBox, Watcher
from pathbox.stream import ValueStream
from pathbox.watch import watch

V = TypeVar("V")


class PublishedPath(Generic[V]):
    """Data descriptor that keeps one ObservableBox per instance."""

    def __init__(self, *paths: str, watcher: Watcher = watch) -> None:
        self._paths = paths
        self._watcher = watcher
        self._name = ""
        self._slot = ""

    def __set_name__(self, owner, name: str) -> None:
        self._name = name
        self._slot = f"_{name}_box"

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return self.box_for(instance).get()

    def __set__(self, instance, value: V) -> None:
        box = instance.__dict__.get(self._slot)
        if box is None:
            instance.__dict__[self._slot] = ObservableBox(value, self._paths, watcher=self._watcher)
        else:
            box.set(value)

    def box_for(self, instance) -> ObservableBox[V]:
        try:
            return instance.__dict__[self._slot]
        except KeyError:
            raise AttributeError(
                f"{type(instance).__name__!r} object has no value for {self._name!r} yet"
            ) from None


def stream_of(instance, name: str) -> ValueStream:
    """The stream behind instance.<name>, where name is a PublishedPath."""
    descriptor = getattr(type(instance), name, None)
    if not isinstance(descriptor, PublishedPath):
        raise TypeError(f"{type(instance).__name__}.{name} is not a PublishedPath")
    return descriptor.box_for(instance).stream
