"""Event emitter for batch and lifecycle notifications."""
import asyncio
import inspect
import logging
from typing import Callable, Dict, List, Set

logger = logging.getLogger(__name__)


class EventEmitter:
    """Simple event emitter.

    Listeners may be plain callables or coroutine functions. Coroutine
    listeners are scheduled on the running loop; emitting never blocks the
    caller and a failing listener never breaks the emitter.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners."""
        for callback in self._listeners.get(event_name, [])[:]:
            try:
                if inspect.iscoroutinefunction(callback):
                    self._schedule(event_name, callback(*args, **kwargs))
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    def _schedule(self, event_name: str, coro):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(f"No running loop for async listener of {event_name}")
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(lambda done: self._finished(event_name, done))

    def _finished(self, event_name: str, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error in event listener for {event_name}: {error}")
