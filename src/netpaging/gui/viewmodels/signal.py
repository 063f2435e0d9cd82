"""Pure Python observer primitives for view models (no Qt dependency)."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

_logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """Handle returned by :meth:`Signal.connect`; ``cancel()`` disconnects."""

    handler: Callable
    active: bool = True
    _signal: Optional["Signal"] = field(default=None, repr=False)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._signal is not None:
            self._signal.disconnect(self.handler)
            self._signal = None


class Signal:
    """Observer list with logged, isolated handler failures.

    Handlers may be connected or disconnected from any thread; emission calls
    a snapshot of the handler list.
    """

    def __init__(self) -> None:
        self._handlers: list[Callable] = []
        self._lock = threading.Lock()

    def connect(self, handler: Callable) -> Connection:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return Connection(handler=handler, _signal=self)

    def disconnect(self, handler: Callable) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                _logger.error("Signal handler %r failed: %s", handler, exc)

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)


class ObservableProperty:
    """Value holder emitting ``changed(new, old)`` when the value changes."""

    def __init__(self, initial_value: Any = None) -> None:
        self._value = initial_value
        self.changed = Signal()

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        if self._value == new_value:
            return
        old_value = self._value
        self._value = new_value
        self.changed.emit(new_value, old_value)

    def bind(self, handler: Callable[[Any, Any], None], *, emit_current: bool = False) -> Connection:
        """Connect *handler*; optionally call it once with the current value."""
        connection = self.changed.connect(handler)
        if emit_current:
            handler(self._value, None)
        return connection
