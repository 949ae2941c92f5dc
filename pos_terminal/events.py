"""Global event delegation, channel pub/sub and the debounced screen switch."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterator

from pos_terminal.config import SCREEN_SWITCH_COOLDOWN_MS, SEARCH_INPUT_CLASS
from pos_terminal.debug_log import log_debug
from pos_terminal.store import StateStore

_DELEGATED_PREFIXES = ("click:", "input:", "change:", "submit:")


@dataclass(eq=False)
class Element:
    """The parts of a UI element the router inspects."""

    tag: str = "div"
    id: str | None = None
    classes: tuple[str, ...] = ()
    dataset: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, str] = field(default_factory=dict)
    disabled: bool = False
    value: str | None = None
    fields: dict[str, str] = field(default_factory=dict)
    parent: Element | None = None
    listeners: dict[str, list[Callable[[UIEvent], None]]] = field(default_factory=dict, repr=False)

    @property
    def action(self) -> str | None:
        return self.dataset.get("action")

    @property
    def is_disabled(self) -> bool:
        return self.disabled or "disabled" in self.attributes

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def lineage(self) -> Iterator[Element]:
        """Yield this element and then each ancestor, closest first."""
        node: Element | None = self
        while node is not None:
            yield node
            node = node.parent

    def add_event_listener(self, event_type: str, handler: Callable[[UIEvent], None]) -> None:
        self.listeners.setdefault(event_type, []).append(handler)

    def remove_event_listener(self, event_type: str, handler: Callable[[UIEvent], None]) -> None:
        handlers = self.listeners.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)


@dataclass(eq=False)
class UIEvent:
    """A raw input event from the presentation layer."""

    kind: str
    target: Element | None = None
    key: str | None = None
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class EventPayload:
    """What a channel handler receives."""

    target: Element | None = None
    event: UIEvent | None = None
    data: dict[str, str] = field(default_factory=dict)
    value: str | None = None
    query: str | None = None
    form_data: dict[str, str] | None = None
    key: str | None = None


Handler = Callable[[EventPayload], None]


@dataclass(frozen=True)
class _KeyBinding:
    key: str
    callback: Handler
    ctrl: bool
    alt: bool
    shift: bool

    def matches(self, event: UIEvent) -> bool:
        if event.key != self.key:
            return False
        if self.ctrl and not event.ctrl:
            return False
        if self.alt and not event.alt:
            return False
        if self.shift and not event.shift:
            return False
        return True


class EventRouter:
    """Classifies raw UI events into named channels and fans them out.

    ``dispatch`` is the single attachment point for every raw event. Direct
    element bindings run first (target, then ancestors); the event is then
    classified by kind and at most the documented set of channels fires.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Handler]] = {}
        self._delegated: set[str] = set()
        self._key_bindings: list[_KeyBinding] = []

    # --- channel pub/sub -----------------------------------------------------

    def on(self, channel: str, callback: Handler) -> Callable[[], None]:
        callbacks = self._listeners.setdefault(channel, [])
        if callback not in callbacks:
            callbacks.append(callback)
        if channel.startswith(_DELEGATED_PREFIXES):
            self._delegated.add(channel)

        def unsubscribe() -> None:
            registered = self._listeners.get(channel)
            if registered and callback in registered:
                registered.remove(callback)

        return unsubscribe

    def off(self, channel: str, callback: Handler | None = None) -> None:
        callbacks = self._listeners.get(channel)
        if not callbacks:
            return
        if callback is None:
            callbacks.clear()
        elif callback in callbacks:
            callbacks.remove(callback)

    def emit(self, channel: str, payload: EventPayload | None = None) -> int:
        """Call every handler on ``channel``; returns how many ran without error."""
        payload = payload if payload is not None else EventPayload()
        ok = 0
        for callback in list(self._listeners.get(channel, [])):
            try:
                callback(payload)
                ok += 1
            except Exception as exc:
                log_debug(f"event_handler_error channel={channel!r} error={exc!r}")
        return ok

    def has_handlers(self, channel: str) -> bool:
        return channel in self._delegated and bool(self._listeners.get(channel))

    def on_click(self, selector: str, callback: Handler) -> Callable[[], None]:
        return self.on(f"click:{selector}", callback)

    def on_input(self, selector: str, callback: Handler) -> Callable[[], None]:
        return self.on(f"input:{selector}", callback)

    def on_change(self, selector: str, callback: Handler) -> Callable[[], None]:
        return self.on(f"change:{selector}", callback)

    def on_action(self, action: str, callback: Handler) -> Callable[[], None]:
        return self.on(f"action:{action}", callback)

    # --- raw event entry point -----------------------------------------------

    def dispatch(self, event: UIEvent) -> list[str]:
        """Route one raw event; returns the channel names emitted for it."""
        self._run_bound_listeners(event)
        if event.kind == "click":
            return self._handle_click(event)
        if event.kind in {"input", "change"}:
            return self._handle_value(event)
        if event.kind == "submit":
            return self._handle_submit(event)
        if event.kind == "keydown":
            self._handle_keydown(event)
            return []
        log_debug(f"event_unknown_kind kind={event.kind!r}")
        return []

    def _run_bound_listeners(self, event: UIEvent) -> None:
        if event.target is None:
            return
        for element in event.target.lineage():
            for handler in list(element.listeners.get(event.kind, [])):
                try:
                    handler(event)
                except Exception as exc:
                    log_debug(f"element_handler_error kind={event.kind!r} error={exc!r}")

    def _handle_click(self, event: UIEvent) -> list[str]:
        target = event.target
        if target is None:
            return []

        action = target.action
        if action:
            if target.is_disabled:
                log_debug(f"click_skipped action={action!r} reason=disabled")
                return []
            event.prevent_default()
            channel = f"action:{action}"
            self.emit(channel, EventPayload(target=target, event=event, data=dict(target.dataset)))
            return [channel]

        emitted: list[str] = []
        for element in target.lineage():
            channel = next(
                (f"click:.{cls}" for cls in element.classes if self.has_handlers(f"click:.{cls}")),
                None,
            )
            if channel is not None:
                self.emit(channel, EventPayload(target=element, event=event, data=dict(element.dataset)))
                emitted.append(channel)
                break

        if target.id:
            channel = f"click:#{target.id}"
            self.emit(channel, EventPayload(target=target, event=event, data=dict(target.dataset)))
            emitted.append(channel)
        return emitted

    def _handle_value(self, event: UIEvent) -> list[str]:
        target = event.target
        if target is None:
            return []

        emitted: list[str] = []
        if target.id:
            channel = f"{event.kind}:#{target.id}"
            self.emit(channel, EventPayload(target=target, event=event, value=target.value))
            emitted.append(channel)

        if event.kind == "input" and target.has_class(SEARCH_INPUT_CLASS):
            self.emit("search:input", EventPayload(target=target, event=event, value=target.value, query=target.value or ""))
            emitted.append("search:input")
        return emitted

    def _handle_submit(self, event: UIEvent) -> list[str]:
        target = event.target
        if target is None:
            return []

        emitted: list[str] = []
        if target.id:
            channel = f"submit:#{target.id}"
            self.emit(channel, EventPayload(target=target, event=event))
            emitted.append(channel)

        channel = next(
            (f"submit:.{cls}" for cls in target.classes if self.has_handlers(f"submit:.{cls}")),
            None,
        )
        if channel is not None:
            self.emit(channel, EventPayload(target=target, event=event))
            emitted.append(channel)
        return emitted

    def _handle_keydown(self, event: UIEvent) -> None:
        for binding in list(self._key_bindings):
            if not binding.matches(event):
                continue
            try:
                binding.callback(EventPayload(event=event, key=binding.key))
            except Exception as exc:
                log_debug(f"keyboard_handler_error key={binding.key!r} error={exc!r}")

    # --- helpers -------------------------------------------------------------

    def bind_element(self, element: Element, event_type: str, callback: Handler) -> Callable[[], None]:
        """Attach ``callback`` to one element; returns a detach function."""

        def handler(event: UIEvent) -> None:
            try:
                callback(EventPayload(target=element, event=event))
            except Exception as exc:
                log_debug(f"element_handler_error kind={event_type!r} error={exc!r}")

        element.add_event_listener(event_type, handler)
        return lambda: element.remove_event_listener(event_type, handler)

    def on_form_submit(self, form_selector: str, callback: Handler) -> Callable[[], None]:
        """Intercept submits of the matching form and pass its fields as ``form_data``."""

        def handler(payload: EventPayload) -> None:
            if payload.event is not None:
                payload.event.prevent_default()
            form_data = dict(payload.target.fields) if payload.target is not None else {}
            callback(replace(payload, form_data=form_data))

        return self.on(f"submit:{form_selector}", handler)

    def on_keyboard(
        self,
        key: str,
        callback: Handler,
        *,
        ctrl: bool = False,
        alt: bool = False,
        shift: bool = False,
    ) -> Callable[[], None]:
        binding = _KeyBinding(key=key, callback=callback, ctrl=ctrl, alt=alt, shift=shift)
        self._key_bindings.append(binding)

        def unsubscribe() -> None:
            if binding in self._key_bindings:
                self._key_bindings.remove(binding)

        return unsubscribe

    def destroy(self) -> None:
        self._listeners.clear()
        self._delegated.clear()
        self._key_bindings.clear()


class ScreenSwitcher:
    """Debounced writes of ``ui.currentScreen``.

    ``show`` is the presentation callback; it returns False when the screen
    containers are missing, in which case the switch is abandoned.
    """

    def __init__(
        self,
        store: StateStore,
        show: Callable[[str], bool] | None = None,
        cooldown_ms: int = SCREEN_SWITCH_COOLDOWN_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.show = show
        self.cooldown_ms = cooldown_ms
        self.clock = clock
        self._last_switch: float | None = None

    @property
    def current(self) -> str | None:
        return self.store.get("ui.currentScreen")

    def switch_to(self, screen: str) -> bool:
        if self.current == screen:
            log_debug(f"screen_switch_skipped screen={screen!r} reason=already_active")
            return False

        now = self.clock()
        if self._last_switch is not None and (now - self._last_switch) * 1000 < self.cooldown_ms:
            log_debug(f"screen_switch_skipped screen={screen!r} reason=cooldown")
            return False
        self._last_switch = now

        if self.show is not None and not self.show(screen):
            log_debug(f"screen_switch_abandoned screen={screen!r} reason=missing_containers")
            return False

        log_debug(f"screen_switch from={self.current!r} to={screen!r}")
        self.store.set_path("ui.currentScreen", screen)
        return True

    def force(self, screen: str) -> bool:
        """Show ``screen`` without debounce, e.g. on startup."""
        if self.show is not None and not self.show(screen):
            log_debug(f"screen_force_abandoned screen={screen!r} reason=missing_containers")
            return False
        if self.current != screen:
            self.store.set_path("ui.currentScreen", screen)
        return True
