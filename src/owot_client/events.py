"""Minimal observable event channel."""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventHub:
    """
    Named events with any number of listeners.
    
    Listeners run synchronously in registration order. A listener that
    returns a coroutine is scheduled as a task on the running loop. A
    listener that raises is logged and the remaining listeners still run.
    """
    
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()
    
    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener. Returns it so this can be used as a decorator."""
        self._listeners[event].append(listener)
        return listener
    
    def off(self, event: str, listener: Listener) -> None:
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)
    
    def listen(self, event: str) -> Callable[[Listener], Listener]:
        """Decorator form of :meth:`on`."""
        def register(listener: Listener) -> Listener:
            return self.on(event, listener)
        return register
    
    def emit(self, event: str, *args: Any) -> int:
        """Call every listener for ``event``; returns how many there were."""
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
        return len(listeners)
    
    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Event listener failed", exc_info=task.exception())
