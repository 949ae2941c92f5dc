"""Nested-path application state with subscriptions and bounded undo."""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from pos_terminal.config import SCREEN_ORDER_CREATION, STATE_HISTORY_LIMIT, WILDCARD_PATH
from pos_terminal.debug_log import log_debug

Subscriber = Callable[..., None]

_MISSING = object()


def default_state() -> dict[str, Any]:
    """Fresh root state for a new session."""
    return {
        "cart": [],
        "currentCategory": "all",
        "searchQuery": "",
        "orders": [],
        "products": [],
        "categories": [],
        "extraIngredients": [],
        "user": {"name": "Administrator", "role": "admin"},
        "ui": {"currentScreen": SCREEN_ORDER_CREATION, "loading": False, "error": None},
    }


@dataclass(frozen=True)
class HistoryEntry:
    """State captured before one mutation."""

    timestamp: str
    state: dict[str, Any]


def _child(node: Any, key: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(key, _MISSING)
    if isinstance(node, Sequence) and not isinstance(node, str):
        if not key.lstrip("-").isdigit():
            return _MISSING
        idx = int(key)
        if not (-len(node) <= idx < len(node)):
            return _MISSING
        return node[idx]
    if node is None:
        return _MISSING
    return getattr(node, key, _MISSING)


def _assign(node: Any, key: str, value: Any) -> None:
    if isinstance(node, MutableMapping):
        node[key] = value
    elif isinstance(node, MutableSequence):
        idx = int(key) if key.lstrip("-").isdigit() else None
        if idx == len(node):
            node.append(value)
        elif idx is not None and -len(node) <= idx < len(node):
            node[idx] = value
        else:
            raise IndexError(f"list index {key!r} out of range for length {len(node)}")
    elif node is not None and hasattr(node, "__dict__"):
        setattr(node, key, value)
    else:
        raise TypeError(f"Cannot set {key!r} on {type(node).__name__}")


class StateStore:
    """Single root state tree addressed by dot-separated paths.

    Every mutation snapshots the previous state into a bounded history,
    applies the change, notifies subscribers of the exact mutated path and
    then the wildcard subscribers. Subscriber errors are logged and never
    reach the caller.
    """

    def __init__(self, initial_state: Mapping[str, Any] | None = None, history_limit: int = STATE_HISTORY_LIMIT) -> None:
        self._state: dict[str, Any] = {**default_state(), **(initial_state or {})}
        self._listeners: dict[str, list[Subscriber]] = {}
        self._history: deque[HistoryEntry] = deque(maxlen=max(1, history_limit))

    @property
    def history_size(self) -> int:
        return len(self._history)

    def get(self, path: str | None = None, default: Any = None) -> Any:
        """Read the value at ``path``, or a shallow copy of the whole state."""
        if not path:
            return dict(self._state)
        node: Any = self._state
        for key in path.split("."):
            node = _child(node, key)
            if node is _MISSING:
                return default
        return node

    def set_path(self, path: str, value: Any) -> None:
        """Set one leaf, creating intermediate mappings as needed.

        A list index outside the list (other than appending at its end) is
        logged and the write abandoned; a scalar intermediate raises TypeError.
        """
        if not path:
            raise ValueError("path must be a non-empty dot-separated string")
        old_state = self._snapshot()

        keys = path.split(".")
        node: Any = self._state
        try:
            for key in keys[:-1]:
                child = _child(node, key)
                if child is _MISSING or child is None:
                    child = {}
                    _assign(node, key, child)
                node = child
            _assign(node, keys[-1], value)
        except IndexError as exc:
            self._state = old_state
            log_debug(f"state_set_abandoned path={path!r} error={exc!r}")
            return
        except TypeError:
            self._state = old_state
            raise

        self._push_history(old_state)
        self._notify(path, value, old_state)
        self._notify_wildcard(old_state)

    def merge_patch(self, patch: Mapping[str, Any]) -> None:
        """Shallow-merge top-level keys into the state."""
        old_state = self._snapshot()
        self._state = {**self._state, **patch}
        self._push_history(old_state)
        for key, value in patch.items():
            self._notify(key, value, old_state)
        self._notify_wildcard(old_state)

    def update(self, path: str, updater: Callable[[Any], Any]) -> None:
        """Read-modify-write the value at ``path``."""
        self.set_path(path, updater(self.get(path)))

    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for mutations of exactly ``path``; returns an unsubscribe function."""
        callbacks = self._listeners.setdefault(path, [])
        if callback not in callbacks:
            callbacks.append(callback)

        def unsubscribe() -> None:
            registered = self._listeners.get(path)
            if registered and callback in registered:
                registered.remove(callback)

        return unsubscribe

    def undo(self) -> bool:
        """Restore the state captured before the latest mutation."""
        if not self._history:
            return False
        entry = self._history.pop()
        old_state = self._state
        self._state = entry.state
        self._notify_wildcard(old_state)
        return True

    def reset(self) -> None:
        old_state = self._state
        self._state = default_state()
        self._history.clear()
        self._notify_wildcard(old_state)

    def teardown(self) -> None:
        self._listeners.clear()
        self._history.clear()

    def _snapshot(self) -> dict[str, Any]:
        return deepcopy(self._state)

    def _push_history(self, state: dict[str, Any]) -> None:
        self._history.append(HistoryEntry(timestamp=datetime.now(timezone.utc).isoformat(), state=state))

    def _notify(self, path: str, value: Any, old_state: dict[str, Any]) -> None:
        if path == WILDCARD_PATH:
            return
        for callback in list(self._listeners.get(path, [])):
            try:
                callback(value, self.get(path), old_state)
            except Exception as exc:
                log_debug(f"state_listener_error path={path!r} error={exc!r}")

    def _notify_wildcard(self, old_state: dict[str, Any]) -> None:
        for callback in list(self._listeners.get(WILDCARD_PATH, [])):
            try:
                callback(self.get(), old_state)
            except Exception as exc:
                log_debug(f"state_global_listener_error error={exc!r}")
