"""Filter and action hooks.

A small in-process hook system used as the extension point between the
field type registry, plugins contributing field types, and the submission
lifecycle (mailer events). Filters pass a value through every callback and
return the result; actions call every callback for its side effects.

Callbacks run in priority order (lower first), then in registration order.
Registering the same callback twice on the same hook and priority is a
no-op, so repeated wiring inside one request does not double-fire.
"""

from collections import defaultdict
from collections.abc import Callable
from threading import Lock
from typing import Any

from core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PRIORITY = 10


class Hooks:
    """Registry of named filter and action callbacks"""

    def __init__(self):
        self._filters: dict[str, dict[int, list[Callable]]] = defaultdict(lambda: defaultdict(list))
        self._actions: dict[str, dict[int, list[Callable]]] = defaultdict(lambda: defaultdict(list))
        self._lock = Lock()

    @staticmethod
    def _add(table, hook_name: str, callback: Callable, priority: int) -> bool:
        callbacks = table[hook_name][priority]
        if callback in callbacks:
            return False
        callbacks.append(callback)
        return True

    @staticmethod
    def _remove(table, hook_name: str, callback: Callable, priority: int) -> bool:
        if hook_name not in table or priority not in table[hook_name]:
            return False
        callbacks = table[hook_name][priority]
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        if not callbacks:
            del table[hook_name][priority]
        if not table[hook_name]:
            del table[hook_name]
        return True

    @staticmethod
    def _ordered(table, hook_name: str) -> list[Callable]:
        if hook_name not in table:
            return []
        ordered = []
        for priority in sorted(table[hook_name]):
            ordered.extend(table[hook_name][priority])
        return ordered

    def add_filter(self, hook_name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> bool:
        """Register a filter callback. Returns False if it was already registered."""
        with self._lock:
            return self._add(self._filters, hook_name, callback, priority)

    def remove_filter(self, hook_name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> bool:
        with self._lock:
            return self._remove(self._filters, hook_name, callback, priority)

    def has_filter(self, hook_name: str, callback: Callable | None = None) -> bool:
        callbacks = self._ordered(self._filters, hook_name)
        if callback is None:
            return bool(callbacks)
        return callback in callbacks

    def apply_filters(self, hook_name: str, value: Any, *args: Any) -> Any:
        with self._lock:
            callbacks = self._ordered(self._filters, hook_name)
        for callback in callbacks:
            value = callback(value, *args)
        return value

    def add_action(self, hook_name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> bool:
        """Register an action callback. Returns False if it was already registered."""
        with self._lock:
            return self._add(self._actions, hook_name, callback, priority)

    def remove_action(self, hook_name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> bool:
        with self._lock:
            return self._remove(self._actions, hook_name, callback, priority)

    def has_action(self, hook_name: str, callback: Callable | None = None) -> bool:
        callbacks = self._ordered(self._actions, hook_name)
        if callback is None:
            return bool(callbacks)
        return callback in callbacks

    def do_action(self, hook_name: str, *args: Any) -> int:
        """Run every callback registered on an action. Returns how many ran."""
        with self._lock:
            callbacks = self._ordered(self._actions, hook_name)
        for callback in callbacks:
            callback(*args)
        if callbacks:
            logger.debug(f"Action '{hook_name}' ran {len(callbacks)} callback(s)")
        return len(callbacks)
