"""
Bridge between the UI and the control side of the shell.

The UI only ever holds a Bridge. It can read the backend base URL and pass
messages over named channels; it has no way to reach the supervisor or
register control handlers itself. Payloads are passed through untouched.
"""

import inspect
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from . import config
from .client import BackendClient, BackendResponse
from .errors import BridgeDeliveryError

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class _Subscribers:
    """Thread-safe channel -> callbacks registry."""

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks: Dict[str, List[Callable[..., Any]]] = {}

    def add(self, channel: str, callback: Callable[..., Any]) -> Unsubscribe:
        with self._lock:
            self._callbacks.setdefault(channel, []).append(callback)

        def unsubscribe() -> None:
            self.remove(channel, callback)

        return unsubscribe

    def remove(self, channel: str, callback: Callable[..., Any]) -> None:
        with self._lock:
            callbacks = self._callbacks.get(channel)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._callbacks[channel]

    def clear(self, channel: str) -> None:
        with self._lock:
            self._callbacks.pop(channel, None)

    def snapshot(self, channel: str) -> List[Callable[..., Any]]:
        with self._lock:
            return list(self._callbacks.get(channel, ()))

    def count(self, channel: str) -> int:
        with self._lock:
            return len(self._callbacks.get(channel, ()))


def _deliver(subscribers: _Subscribers, channel: str, args: tuple) -> None:
    for callback in subscribers.snapshot(channel):
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Handler for channel '{channel}' failed: {e}")


class ControlChannel:
    """Control side of the bridge: request handlers and outbound messages."""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[str, Callable[..., Any]] = {}
        self._listeners = _Subscribers()
        self._ui_subscribers = _Subscribers()

    def handle(self, channel: str, handler: Callable[..., Any]) -> None:
        """Register the request/response handler for a channel."""
        with self._lock:
            if channel in self._handlers:
                raise ValueError(f"A handler for channel '{channel}' is already registered")
            self._handlers[channel] = handler

    def remove_handler(self, channel: str) -> None:
        with self._lock:
            self._handlers.pop(channel, None)

    def listen(self, channel: str, listener: Callable[..., Any]) -> Unsubscribe:
        """Receive fire-and-forget messages sent by the UI."""
        return self._listeners.add(channel, listener)

    def emit(self, channel: str, *args: Any) -> None:
        """Push a message to every UI subscriber of a channel."""
        _deliver(self._ui_subscribers, channel, args)

    def _handler_for(self, channel: str) -> Optional[Callable[..., Any]]:
        with self._lock:
            return self._handlers.get(channel)


class Bridge:
    """
    The fixed capability set exposed to the UI.

    Capabilities: backend_url, send, invoke, on, once, clear. Nothing can be
    added or replaced after construction, and the control channel itself is
    not reachable from here.
    """

    __slots__ = ("_backend_url", "_dispatch", "_lookup", "_subscribers")

    def __init__(self, control: ControlChannel, static_config: Optional[Dict[str, Any]] = None):
        if static_config is None:
            static_config = config.load_static_config()
        backend_url = static_config.get(config.BACKEND_BASE_URL_KEY) or config.DEFAULT_BACKEND_BASE_URL
        listeners = control._listeners
        lookup_handler = control._handler_for

        def dispatch(channel: str, args: tuple) -> None:
            _deliver(listeners, channel, args)

        def lookup(channel: str) -> Optional[Callable[..., Any]]:
            return lookup_handler(channel)

        object.__setattr__(self, "_backend_url", str(backend_url))
        object.__setattr__(self, "_dispatch", dispatch)
        object.__setattr__(self, "_lookup", lookup)
        object.__setattr__(self, "_subscribers", control._ui_subscribers)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Bridge capabilities are read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Bridge capabilities are read-only")

    @property
    def backend_url(self) -> str:
        return self._backend_url

    def send(self, channel: str, *args: Any) -> None:
        """Fire-and-forget message to the control side."""
        self._dispatch(channel, args)

    async def invoke(self, channel: str, *args: Any) -> Any:
        """
        Request/response call to the control side.

        Raises:
            BridgeDeliveryError: If no handler is registered or the handler failed
        """
        handler = self._lookup(channel)
        if handler is None:
            raise BridgeDeliveryError(f"No handler registered for channel '{channel}'")

        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Invoke on channel '{channel}' failed: {e}")
            raise BridgeDeliveryError(f"Error invoking '{channel}': {e}") from e
        return result

    def on(self, channel: str, callback: Callable[..., Any]) -> Unsubscribe:
        """Subscribe to inbound messages until unsubscribed."""
        return self._subscribers.add(channel, callback)

    def once(self, channel: str, callback: Callable[..., Any]) -> Unsubscribe:
        """Subscribe to the next inbound message only."""
        subscribers = self._subscribers

        def wrapper(*args: Any) -> None:
            subscribers.remove(channel, wrapper)
            callback(*args)

        return subscribers.add(channel, wrapper)

    def clear(self, channel: str) -> None:
        """Remove every UI-side handler for a channel."""
        self._subscribers.clear(channel)


def register_init_db_handler(control: ControlChannel, client: BackendClient) -> None:
    """Define the init-db control handler: provision the store, return the raw reply."""

    async def init_db() -> BackendResponse:
        try:
            return await client.init_db()
        except Exception as e:
            logger.error(f"Error in control init-db: {e}")
            raise

    control.handle(config.CHANNEL_INIT_DB, init_db)
