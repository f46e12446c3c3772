"""Process-wide state shared across API modules."""

from __future__ import annotations

from collections import OrderedDict
from concurrent.futures import Executor, ProcessPoolExecutor

import structlog

from gitpanel.dispatch import DiffDispatchChannel
from gitpanel.settings import settings

logger = structlog.get_logger(__name__)

# One channel per client so each client's newest request wins independently.
# Ordered by last use; the oldest entries are evicted past settings.max_channels().
_channels: OrderedDict[str, DiffDispatchChannel] = OrderedDict()
_executor: Executor | None = None


def _get_executor() -> Executor:
    global _executor
    if _executor is None:
        _executor = ProcessPoolExecutor(max_workers=settings.dispatch_workers())
        logger.info("Started diff worker pool", workers=settings.dispatch_workers())
    return _executor


def set_executor(executor: Executor | None) -> None:
    """Replace the shared executor (tests use an in-process one)."""
    global _executor
    _executor = executor
    _channels.clear()


def get_channel(client_id: str) -> DiffDispatchChannel:
    """Get or create the dispatch channel of *client_id*."""
    channel = _channels.get(client_id)
    if channel is not None:
        _channels.move_to_end(client_id)
        return channel

    channel = DiffDispatchChannel(_get_executor())
    _channels[client_id] = channel
    limit = settings.max_channels()
    while len(_channels) > limit:
        evicted, _ = _channels.popitem(last=False)
        logger.debug("Evicted idle dispatch channel", client_id=evicted, limit=limit)
    return channel


def shutdown() -> None:
    """Drop all channels and stop the worker pool."""
    global _executor
    _channels.clear()
    if _executor is not None:
        _executor.shutdown(wait=False)
        _executor = None
