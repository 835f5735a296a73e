from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

Listener = Callable[..., Any]


@dataclass
class BuilderEvent:
    """
    Payload handed to builder-level listeners.

    `before_*` events can be rejected with `prevent_default()`; changer
    events carry a `value` that listeners may replace.
    """

    name: str
    builder: Any = None
    detail: Dict[str, Any] = field(default_factory=dict)
    value: Any = None
    _prevented: bool = False

    def prevent_default(self) -> None:
        self._prevented = True

    @property
    def is_default_prevented(self) -> bool:
        return self._prevented


class Notifier:
    """
    Named event -> ordered list of listeners. Delivery is synchronous and
    follows registration order.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def off(self, event: str, listener: Optional[Listener] = None) -> None:
        """Remove one listener, or every listener of `event` when omitted."""
        if listener is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def once(self, event: str, listener: Listener) -> Listener:
        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def emit(self, event: str, *args: Any) -> None:
        # snapshot so listeners can unsubscribe while being called
        for listener in list(self._listeners.get(event, ())):
            listener(*args)

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, ()))

    def clear(self) -> None:
        self._listeners.clear()
