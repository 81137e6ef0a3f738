"""Notification surface shared by sessions, channels and the orchestrator."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from enum import Enum
from functools import partial
from typing import Any

_LOGGER = logging.getLogger(__name__)


class RemoteEvent(str, Enum):
    """Notifications emitted to subscribers."""

    READY = "ready"
    SECRET = "secret"
    ERROR = "error"
    UNPAIRED = "unpaired"
    VOLUME = "volume"
    CURRENT_APP = "current_app"
    POWERED = "powered"


EventCallback = Callable[..., Any]


class EventSource:
    """Explicit publish/subscribe helper.

    Usage:
        channel.subscribe(RemoteEvent.VOLUME, on_volume)
        unsubscribe = channel.subscribe(RemoteEvent.READY, on_ready)
        unsubscribe()

    Coroutine callbacks are scheduled as tasks on the running loop.
    """

    def __init__(self) -> None:
        self._subscribers: dict[RemoteEvent, list[EventCallback]] = {}
        self._callback_tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, event: RemoteEvent, callback: EventCallback) -> Callable[[], None]:
        """Register callback for event, returns a callable that removes it."""
        callbacks = self._subscribers.setdefault(RemoteEvent(event), [])
        callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def forward(
        self, source: EventSource, *events: RemoteEvent
    ) -> Callable[[], None]:
        """Re-emit the given events of another source from this one.

        Returns a callable that stops forwarding.
        """
        unsubscribers = [
            source.subscribe(
                event, lambda *args, _event=event: self._emit(_event, *args)
            )
            for event in events
        ]

        def _unforward() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return _unforward

    def _emit(self, event: RemoteEvent, *args: Any) -> None:
        for callback in list(self._subscribers.get(event, ())):
            try:
                result = callback(*args)
            except Exception as err:
                _LOGGER.exception("%s callback error: %s", event.value, err)
                continue
            if inspect.iscoroutine(result):
                task = asyncio.create_task(result)
                self._callback_tasks.add(task)
                task.add_done_callback(partial(self._callback_done, event))

    def _callback_done(self, event: RemoteEvent, task: asyncio.Task[Any]) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("%s callback error: %s", event.value, err, exc_info=err)
