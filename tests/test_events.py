"""Tests for event classification, channel fan-out and screen switching."""

from pos_terminal.events import Element, EventPayload, EventRouter, ScreenSwitcher, UIEvent
from pos_terminal.store import StateStore


def _button(action=None, classes=(), id=None, parent=None, **dataset):
    data = dict(dataset)
    if action:
        data["action"] = action
    return Element(tag="button", id=id, classes=tuple(classes), dataset=data, parent=parent)


class FakeClock:

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000


class TestChannels:

    def test_emit_runs_handlers_and_counts_successes(self):
        router = EventRouter()
        seen = []
        router.on("custom", lambda payload: seen.append(payload.data["n"]))

        def broken(payload):
            raise RuntimeError("boom")

        router.on("custom", broken)
        assert router.emit("custom", EventPayload(data={"n": "1"})) == 1
        assert seen == ["1"]

    def test_duplicate_registration_is_ignored(self):
        router = EventRouter()
        seen = []
        handler = seen.append
        router.on("x", handler)
        router.on("x", handler)
        router.emit("x")
        assert len(seen) == 1

    def test_off_removes_one_or_all(self):
        router = EventRouter()
        seen = []
        first = lambda payload: seen.append("first")
        second = lambda payload: seen.append("second")
        router.on("x", first)
        router.on("x", second)
        router.off("x", first)
        router.emit("x")
        router.off("x")
        router.emit("x")
        assert seen == ["second"]

    def test_unsubscribe_function(self):
        router = EventRouter()
        seen = []
        unsubscribe = router.on_action("checkout", seen.append)
        unsubscribe()
        router.dispatch(UIEvent("click", target=_button("checkout")))
        assert seen == []


class TestClickClassification:

    def test_action_wins_over_class(self):
        router = EventRouter()
        actions, class_clicks = [], []
        router.on_action("add-to-cart", actions.append)
        router.on_click(".product-card", class_clicks.append)
        target = _button("add-to-cart", classes=["product-card"], product_id="3")

        emitted = router.dispatch(UIEvent("click", target=target))

        assert emitted == ["action:add-to-cart"]
        assert len(actions) == 1
        assert actions[0].data == {"action": "add-to-cart", "product_id": "3"}
        assert class_clicks == []

    def test_action_click_prevents_default(self):
        router = EventRouter()
        event = UIEvent("click", target=_button("checkout"))
        router.dispatch(event)
        assert event.default_prevented is True

    def test_disabled_action_is_skipped(self):
        router = EventRouter()
        seen = []
        router.on_action("decrease", seen.append)
        target = _button("decrease")
        target.disabled = True
        assert router.dispatch(UIEvent("click", target=target)) == []
        target.disabled = False
        target.attributes["disabled"] = ""
        assert router.dispatch(UIEvent("click", target=target)) == []
        assert seen == []

    def test_class_match_on_ancestor(self):
        router = EventRouter()
        seen = []
        router.on_click(".product-card", seen.append)
        card = Element(classes=("product-card",), dataset={"product_id": "2"})
        icon = Element(tag="span", parent=card)

        emitted = router.dispatch(UIEvent("click", target=icon))

        assert emitted == ["click:.product-card"]
        assert seen[0].target is card
        assert seen[0].data == {"product_id": "2"}

    def test_only_closest_class_fires(self):
        router = EventRouter()
        seen = []
        router.on_click(".outer", lambda payload: seen.append("outer"))
        router.on_click(".inner", lambda payload: seen.append("inner"))
        outer = Element(classes=("outer",))
        inner = Element(classes=("inner",), parent=outer)
        router.dispatch(UIEvent("click", target=inner))
        assert seen == ["inner"]

    def test_id_channel_fires_alongside_class(self):
        router = EventRouter()
        seen = []
        router.on_click(".nav-btn", lambda payload: seen.append("class"))
        router.on_click("#orders-list-btn", lambda payload: seen.append("id"))
        target = _button(classes=["nav-btn"], id="orders-list-btn")
        emitted = router.dispatch(UIEvent("click", target=target))
        assert emitted == ["click:.nav-btn", "click:#orders-list-btn"]
        assert seen == ["class", "id"]

    def test_failing_class_handler_does_not_block_id_channel(self, debug_log):
        router = EventRouter()
        seen = []

        def broken(payload):
            raise RuntimeError("boom")

        router.on_click(".nav-btn", broken)
        router.on_click("#orders-list-btn", lambda payload: seen.append(payload.target.id))
        target = _button(classes=["nav-btn"], id="orders-list-btn")

        emitted = router.dispatch(UIEvent("click", target=target))

        assert emitted == ["click:.nav-btn", "click:#orders-list-btn"]
        assert seen == ["orders-list-btn"]
        assert "event_handler_error" in debug_log.read_text(encoding="utf-8")

    def test_class_without_handlers_is_ignored(self):
        router = EventRouter()
        target = _button(classes=["plain"])
        assert router.dispatch(UIEvent("click", target=target)) == []


class TestValueEvents:

    def test_input_emits_id_and_search_channels(self):
        router = EventRouter()
        queries = []
        router.on("search:input", lambda payload: queries.append(payload.query))
        target = Element(tag="input", id="search-input", classes=("search-input",), value="piz")
        emitted = router.dispatch(UIEvent("input", target=target))
        assert emitted == ["input:#search-input", "search:input"]
        assert queries == ["piz"]

    def test_change_does_not_emit_search(self):
        router = EventRouter()
        target = Element(tag="input", id="search-input", classes=("search-input",), value="piz")
        assert router.dispatch(UIEvent("change", target=target)) == ["change:#search-input"]

    def test_change_payload_carries_value(self):
        router = EventRouter()
        values = []
        router.on_change("#quantity-input", lambda payload: values.append(payload.value))
        router.dispatch(UIEvent("change", target=Element(tag="input", id="quantity-input", value="4")))
        assert values == ["4"]


class TestSubmit:

    def test_form_submit_collects_fields(self):
        router = EventRouter()
        seen = []
        router.on_form_submit("#quantity-form", lambda payload: seen.append(payload.form_data))
        form = Element(tag="form", id="quantity-form", fields={"quantity": "7"})
        event = UIEvent("submit", target=form)

        emitted = router.dispatch(event)

        assert emitted == ["submit:#quantity-form"]
        assert seen == [{"quantity": "7"}]
        assert event.default_prevented is True

    def test_submit_by_class(self):
        router = EventRouter()
        seen = []
        router.on_form_submit(".line-form", lambda payload: seen.append(payload.form_data))
        form = Element(tag="form", classes=("line-form",), fields={"quantity": "2"})
        assert router.dispatch(UIEvent("submit", target=form)) == ["submit:.line-form"]
        assert seen == [{"quantity": "2"}]


class TestKeyboard:

    def test_modifier_binding(self):
        router = EventRouter()
        seen = []
        router.on_keyboard("s", lambda payload: seen.append(payload.key), ctrl=True)
        router.dispatch(UIEvent("keydown", key="s"))
        router.dispatch(UIEvent("keydown", key="s", ctrl=True))
        assert seen == ["s"]

    def test_unsubscribe_binding(self):
        router = EventRouter()
        seen = []
        unsubscribe = router.on_keyboard("f2", seen.append)
        unsubscribe()
        router.dispatch(UIEvent("keydown", key="f2"))
        assert seen == []


class TestBoundElements:

    def test_bound_listener_runs_for_descendant_clicks(self):
        router = EventRouter()
        seen = []
        nav = Element(id="orders-list-btn")
        label = Element(tag="span", parent=nav)
        detach = router.bind_element(nav, "click", lambda payload: seen.append(payload.target.id))
        router.dispatch(UIEvent("click", target=label))
        detach()
        router.dispatch(UIEvent("click", target=label))
        assert seen == ["orders-list-btn"]

    def test_destroy_clears_everything(self):
        router = EventRouter()
        seen = []
        router.on_action("checkout", seen.append)
        router.on_keyboard("s", seen.append, ctrl=True)
        router.destroy()
        router.dispatch(UIEvent("click", target=_button("checkout")))
        router.dispatch(UIEvent("keydown", key="s", ctrl=True))
        assert seen == []


class TestScreenSwitcher:

    def _make_switcher(self, show=None):
        store = StateStore()
        clock = FakeClock(now=10.0)
        return ScreenSwitcher(store, show=show, clock=clock), store, clock

    def test_switch_updates_state(self):
        switcher, store, _ = self._make_switcher()
        assert switcher.switch_to("orders-list") is True
        assert store.get("ui.currentScreen") == "orders-list"

    def test_same_screen_is_noop(self):
        switcher, store, _ = self._make_switcher()
        assert switcher.switch_to("order-creation") is False
        assert store.history_size == 0

    def test_second_switch_within_cooldown_is_dropped(self):
        switcher, store, clock = self._make_switcher()
        switcher.switch_to("orders-list")
        clock.advance_ms(50)
        assert switcher.switch_to("order-creation") is False
        assert store.get("ui.currentScreen") == "orders-list"

    def test_switch_after_cooldown(self):
        switcher, store, clock = self._make_switcher()
        switcher.switch_to("orders-list")
        clock.advance_ms(150)
        assert switcher.switch_to("order-creation") is True
        assert store.get("ui.currentScreen") == "order-creation"

    def test_missing_containers_abandon_switch(self):
        switcher, store, _ = self._make_switcher(show=lambda screen: False)
        assert switcher.switch_to("orders-list") is False
        assert store.get("ui.currentScreen") == "order-creation"

    def test_show_receives_screen(self):
        shown = []
        switcher, _, _ = self._make_switcher(show=lambda screen: shown.append(screen) or True)
        switcher.switch_to("orders-list")
        assert shown == ["orders-list"]

    def test_force_ignores_cooldown(self):
        switcher, store, clock = self._make_switcher()
        switcher.switch_to("orders-list")
        clock.advance_ms(10)
        assert switcher.force("order-creation") is True
        assert store.get("ui.currentScreen") == "order-creation"
