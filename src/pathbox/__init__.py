"""pathbox: observable value boxes that publish on nested attribute changes."""

from importlib.metadata import version as _version

__version__ = _version("pathbox")

from pathbox._errors import PathboxError, ConfigurationError, BoxDestroyedError
from pathbox.watch import Watchable, WatchHandle, watch, notify
from pathbox.stream import ValueStream, Subscription
from pathbox.box import ObservableBox, published, set_scheduler
from pathbox.descriptor import PublishedPath, stream_of

__all__ = [
    "ObservableBox",
    "published",
    "set_scheduler",
    "ValueStream",
    "Subscription",
    "Watchable",
    "WatchHandle",
    "watch",
    "notify",
    "PublishedPath",
    "stream_of",
    "PathboxError",
    "ConfigurationError",
    "BoxDestroyedError",
]
