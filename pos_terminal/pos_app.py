"""Main Textual app class."""

from __future__ import annotations

from weakref import WeakKeyDictionary

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.css.query import NoMatches
from textual.events import Key
from textual.screen import Screen
from textual.widget import Widget
from textual.widgets import Button, Header, Input, Static

from pos_terminal.cart import CartStore, parse_index
from pos_terminal.config import SCREEN_ORDER_CREATION, SCREEN_ORDERS_LIST, SEARCH_INPUT_CLASS, SIZE_LARGE, SIZE_SMALL, SIZED_CATEGORY
from pos_terminal.confirm_modal import ConfirmModal
from pos_terminal.data import CATEGORIES, EXTRA_INGREDIENTS, PRODUCTS, filter_products, sample_orders
from pos_terminal.debug_log import log_debug
from pos_terminal.events import Element, EventPayload, EventRouter, ScreenSwitcher, UIEvent
from pos_terminal.extras_modal import ExtrasModal
from pos_terminal.history import OrderHistory
from pos_terminal.models import CartLine
from pos_terminal.printer import check_printer_dependencies, print_order
from pos_terminal.rendering import (
    format_cart_line,
    format_cart_summary,
    format_money,
    format_order_details,
    format_order_row,
    format_product_label,
)


class ActionButton(Button):
    """A button carrying declarative data attributes for the event router."""

    def __init__(
        self,
        label: str | Text,
        *,
        action: str | None = None,
        data: dict[str, str] | None = None,
        id: str | None = None,
        classes: str | None = None,
        disabled: bool = False,
    ) -> None:
        super().__init__(Text(label) if isinstance(label, str) else label, id=id, classes=classes, disabled=disabled, compact=True)
        self.dataset: dict[str, str] = dict(data or {})
        if action:
            self.dataset["action"] = action


class PosApp(App):
    """A Textual point-of-sale app: catalog, cart, checkout and order history."""

    TITLE = "POS Terminal"
    SUB_TITLE = "Orders Management"

    CSS = """
    Screen {
        layout: vertical;
    }

    #nav-bar {
        height: 1;
        margin-bottom: 1;
    }

    #main-layout {
        height: 1fr;
    }

    #orders-items-block {
        layout: horizontal;
    }

    #catalog-pane {
        width: 2fr;
        border: round $secondary;
        padding: 0 1;
    }

    #cart-pane {
        width: 3fr;
        border: round $primary;
        padding: 0 1;
    }

    #categories, .cart-line-controls, .extra-controls, #cart-actions, #details-actions, #quantity-form {
        height: auto;
    }

    #products, #cart-items, #order-history-list {
        height: 1fr;
    }

    #order-details {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #status-bar {
        height: 2;
        border-top: heavy $secondary;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
    }
    """

    def __init__(self, store: CartStore | None = None, router: EventRouter | None = None) -> None:
        super().__init__()
        self.store = store or CartStore()
        self.router = router or EventRouter()
        self.history = OrderHistory(self.store)
        self.switcher = ScreenSwitcher(self.store, show=self._show_screen)
        self.selected_line: int | None = None
        self.system_status = ""
        self._elements: WeakKeyDictionary[Widget, Element] = WeakKeyDictionary()
        self._cleanups: list = []
        log_debug("app_init")

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="nav-bar"):
            yield Button("Orders Items (F1)", id="orders-items-btn", classes="nav-btn", compact=True)
            yield Button("Orders List (F2)", id="orders-list-btn", classes="nav-btn", compact=True)
            yield Static(id="cart-count")
        with Vertical(id="main-layout"):
            with Horizontal(id="orders-items-block"):
                with Vertical(id="catalog-pane"):
                    yield Static("Products", classes="pane-title")
                    with Horizontal(id="categories"):
                        for category in CATEGORIES:
                            yield ActionButton(
                                f"{category.icon} {category.name}",
                                data={"category": category.category_id},
                                classes="category-item",
                            )
                    yield Input(placeholder="Search products", id="search-input", classes=SEARCH_INPUT_CLASS)
                    yield VerticalScroll(id="products")
                with Vertical(id="cart-pane"):
                    yield Static("Cart", classes="pane-title")
                    yield VerticalScroll(id="cart-items")
                    with Horizontal(id="quantity-form", classes="line-form"):
                        yield Input(placeholder="Qty for selected line", id="quantity-input", name="quantity")
                    yield Static(id="cart-summary")
                    with Horizontal(id="cart-actions"):
                        yield ActionButton("Clear", action="clear-cart", id="clear-cart-btn")
                        yield ActionButton("Create Order (Ctrl+S)", action="checkout", id="checkout-btn")
            with Vertical(id="orders-list-block"):
                yield Static("Order History", classes="pane-title")
                yield Input(placeholder="Search orders", id="order-search")
                yield VerticalScroll(id="order-history-list")
                yield Static("Select an order to see details", id="order-details")
                with Horizontal(id="details-actions"):
                    yield ActionButton("Print", action="print-order", id="print-order-btn")
                    yield ActionButton("Close", action="close-order-details", id="close-details-btn")
        yield Static(id="status-bar", markup=False)

    def on_mount(self) -> None:
        self.store.load_catalog(PRODUCTS, CATEGORIES, EXTRA_INGREDIENTS, sample_orders())
        _, msg = check_printer_dependencies()
        self.system_status = msg
        log_debug(f"on_mount printer_status={msg!r}")
        self._setup_event_handlers()
        self.switcher.force(self.store.get("ui.currentScreen") or SCREEN_ORDER_CREATION)
        self._refresh_all()

    def on_unmount(self) -> None:
        for cleanup in self._cleanups:
            cleanup()
        self.router.destroy()
        self.store.teardown()

    # --- wiring ---------------------------------------------------------------

    def _setup_event_handlers(self) -> None:
        router = self.router
        cleanups = self._cleanups

        cleanups.append(router.on_action("add-to-cart", self.handle_add_to_cart))
        cleanups.append(router.on_action("remove-from-cart", self.handle_remove_from_cart))
        cleanups.append(router.on_action("increase", self.handle_increase_quantity))
        cleanups.append(router.on_action("decrease", self.handle_decrease_quantity))
        cleanups.append(router.on_action("clear-cart", self.handle_clear_cart))
        cleanups.append(router.on_action("checkout", self.handle_checkout))
        cleanups.append(router.on_action("select-size", self.handle_select_size))
        cleanups.append(router.on_action("toggle-extras", self.handle_toggle_extras))
        cleanups.append(router.on_action("edit-extras", self.handle_edit_extras))
        cleanups.append(router.on_action("increase-extra", self.handle_increase_extra))
        cleanups.append(router.on_action("decrease-extra", self.handle_decrease_extra))
        cleanups.append(router.on_action("select-line", self.handle_select_line))
        cleanups.append(router.on_action("print-order", self.handle_print_order))
        cleanups.append(router.on_action("close-order-details", self.handle_close_order_details))

        cleanups.append(router.on_click(".product-card", self.handle_add_to_cart))
        cleanups.append(router.on_click(".category-item", self.handle_category_change))
        cleanups.append(router.on_click(".order-item", self.handle_order_click))
        cleanups.append(router.on("search:input", self.handle_search))
        cleanups.append(router.on_input("#order-search", self.handle_order_search))
        cleanups.append(router.on_form_submit("#quantity-form", self.handle_quantity_submit))

        nav = {"#orders-items-btn": SCREEN_ORDER_CREATION, "#orders-list-btn": SCREEN_ORDERS_LIST}
        for selector, screen in nav.items():
            element = self._element_for(self.query_one(selector, Button))
            cleanups.append(router.bind_element(element, "click", lambda _p, s=screen: self.switcher.switch_to(s)))

        cleanups.append(router.on_keyboard("s", self.handle_checkout, ctrl=True))
        cleanups.append(router.on_keyboard("z", self.handle_undo, ctrl=True))
        cleanups.append(router.on_keyboard("f1", lambda _p: self.switcher.switch_to(SCREEN_ORDER_CREATION)))
        cleanups.append(router.on_keyboard("f2", lambda _p: self.switcher.switch_to(SCREEN_ORDERS_LIST)))
        cleanups.append(router.on_keyboard("j", lambda _p: self._move_line_selection(1)))
        cleanups.append(router.on_keyboard("k", lambda _p: self._move_line_selection(-1)))
        cleanups.append(router.on_keyboard("plus", lambda _p: self._emit_for_selected("increase")))
        cleanups.append(router.on_keyboard("minus", lambda _p: self._emit_for_selected("decrease")))
        cleanups.append(router.on_keyboard("e", lambda _p: self._emit_for_selected("edit-extras")))
        cleanups.append(router.on_keyboard("d", lambda _p: self._emit_for_selected("remove-from-cart")))

        cleanups.append(self.store.subscribe("cart", lambda *_: self._refresh_cart()))
        cleanups.append(self.store.subscribe("currentCategory", lambda *_: self._refresh_products()))
        cleanups.append(self.store.subscribe("searchQuery", lambda *_: self._refresh_products()))
        cleanups.append(self.store.subscribe("orders", lambda *_: self._refresh_history()))

    def _element_for(self, widget: Widget) -> Element:
        """Describe ``widget`` and its ancestors as router elements."""
        chain: list[Widget] = []
        node = widget
        while isinstance(node, Widget) and not isinstance(node, Screen):
            chain.append(node)
            node = node.parent

        parent: Element | None = None
        for current in reversed(chain):
            element = self._elements.get(current)
            if element is None:
                element = Element(tag=type(current).__name__.lower())
                self._elements[current] = element
            element.id = current.id
            element.classes = tuple(sorted(current.classes))
            element.dataset = dict(getattr(current, "dataset", {}))
            element.disabled = current.disabled
            element.value = current.value if isinstance(current, Input) else None
            if current.id == "quantity-form":
                element.fields = {
                    (field.name or field.id or ""): field.value for field in current.query(Input)
                }
            element.parent = parent
            parent = element
        assert parent is not None
        return parent

    # --- raw UI events --------------------------------------------------------

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.router.dispatch(UIEvent("click", target=self._element_for(event.button)))
        event.stop()

    def on_input_changed(self, event: Input.Changed) -> None:
        self.router.dispatch(UIEvent("input", target=self._element_for(event.input)))
        event.stop()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "quantity-input":
            form = self.query_one("#quantity-form", Horizontal)
            self.router.dispatch(UIEvent("submit", target=self._element_for(form)))
        else:
            self.router.dispatch(UIEvent("change", target=self._element_for(event.input)))
        event.stop()

    def on_key(self, event: Key) -> None:
        if self.screen is not self.screen_stack[0]:
            return
        *modifiers, base = event.key.split("+")
        is_function_key = base[:1] == "f" and base[1:].isdigit()
        if isinstance(self.focused, Input) and not modifiers and not is_function_key:
            return
        ui_event = UIEvent(
            "keydown",
            key=base,
            ctrl="ctrl" in modifiers,
            alt="alt" in modifiers,
            shift="shift" in modifiers,
        )
        self.router.dispatch(ui_event)

    # --- handlers -------------------------------------------------------------

    def _line_index(self, payload: EventPayload) -> int | None:
        return parse_index(payload.data.get("item_index"))

    def handle_add_to_cart(self, payload: EventPayload) -> None:
        product = self.store.find_product(payload.data.get("product_id"))
        if product is None:
            return
        self.store.add_to_cart(product)
        self._set_status(f"{product.name} added to cart")

    def handle_remove_from_cart(self, payload: EventPayload) -> None:
        line = self.store.remove_line(self._line_index(payload))
        if line is not None:
            self._set_status(f"{line.name} removed from cart")

    def handle_increase_quantity(self, payload: EventPayload) -> None:
        line = self.store.get(f"cart.{self._line_index(payload)}")
        if line is not None:
            self.store.increase_cart_quantity(line.product_id)

    def handle_decrease_quantity(self, payload: EventPayload) -> None:
        line = self.store.get(f"cart.{self._line_index(payload)}")
        if line is not None:
            self.store.decrease_cart_quantity(line.product_id)

    def handle_clear_cart(self, payload: EventPayload) -> None:
        if not self.store.cart_lines():
            return

        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.store.clear_cart()
                self._set_status("Cart cleared")

        self.push_screen(ConfirmModal("Are you sure you want to clear the cart?", title="Clear Cart"), on_result)

    def handle_checkout(self, payload: EventPayload) -> None:
        record = self.store.checkout()
        if record is None:
            self._set_status("Cart is empty")
            return
        self.selected_line = None
        self._set_status(f"Order #{record.order_id} created successfully - {format_money(record.total)}")

    def handle_select_size(self, payload: EventPayload) -> None:
        self.store.select_size(self._line_index(payload), payload.data.get("size", ""))

    def handle_toggle_extras(self, payload: EventPayload) -> None:
        self.store.toggle_extras(self._line_index(payload))

    def handle_edit_extras(self, payload: EventPayload) -> None:
        index = self._line_index(payload)
        if index is None or self.store.get(f"cart.{index}") is None:
            return
        self.push_screen(ExtrasModal(self.store, self.router, index))

    def handle_increase_extra(self, payload: EventPayload) -> None:
        self.store.increase_extra(self._line_index(payload), payload.data.get("ingredient_id", ""))

    def handle_decrease_extra(self, payload: EventPayload) -> None:
        self.store.decrease_extra(self._line_index(payload), payload.data.get("ingredient_id", ""))

    def handle_select_line(self, payload: EventPayload) -> None:
        self.selected_line = self._line_index(payload)
        self._refresh_cart()

    def handle_quantity_submit(self, payload: EventPayload) -> None:
        if self.selected_line is None:
            self._set_status("Select a cart line first (J/K)")
            return
        raw = (payload.form_data or {}).get("quantity", "")
        self.store.set_line_quantity(self.selected_line, raw)

    def handle_category_change(self, payload: EventPayload) -> None:
        category = payload.data.get("category")
        if category:
            self.store.set_path("currentCategory", category)

    def handle_search(self, payload: EventPayload) -> None:
        self.store.set_path("searchQuery", payload.query or "")

    def handle_order_search(self, payload: EventPayload) -> None:
        self.history.search(payload.value or "")
        self._refresh_history()

    def handle_order_click(self, payload: EventPayload) -> None:
        if self.history.select(payload.data.get("order_id")) is not None:
            self._refresh_history()

    def handle_print_order(self, payload: EventPayload) -> None:
        order = self.history.selected()
        if order is None:
            self._set_status("Select an order to print")
            return
        try:
            print_order(order)
        except Exception as exc:
            self._set_status(f"Print failed for #{order.order_id}: {exc}")
            log_debug(f"print_failed order_id={order.order_id} error={exc!r}")
            return
        self._set_status(f"Printed order #{order.order_id}")

    def handle_close_order_details(self, payload: EventPayload) -> None:
        self.history.clear_selection()
        self._refresh_history()

    def handle_undo(self, payload: EventPayload) -> None:
        if self.store.undo():
            self._show_screen(self.store.get("ui.currentScreen") or SCREEN_ORDER_CREATION)
            self._set_status("Undone")
            self._refresh_all()

    def _emit_for_selected(self, action: str) -> None:
        if self.selected_line is None:
            return
        self.router.emit(f"action:{action}", EventPayload(data={"item_index": str(self.selected_line)}))

    def _move_line_selection(self, delta: int) -> None:
        count = len(self.store.cart_lines())
        if not count:
            return
        if self.selected_line is None:
            self.selected_line = 0 if delta > 0 else count - 1
        else:
            self.selected_line = (self.selected_line + delta) % count
        self._refresh_cart()

    # --- rendering ------------------------------------------------------------

    def _show_screen(self, screen: str) -> bool:
        try:
            order_block = self.query_one("#orders-items-block")
            history_block = self.query_one("#orders-list-block")
        except NoMatches:
            return False
        order_block.display = screen == SCREEN_ORDER_CREATION
        history_block.display = screen == SCREEN_ORDERS_LIST
        if screen == SCREEN_ORDERS_LIST:
            self._refresh_history()
        return True

    def _set_status(self, message: str) -> None:
        self.system_status = message
        log_debug(f"status message={message!r}")
        self._refresh_status()

    def _refresh_all(self) -> None:
        self._refresh_products()
        self._refresh_cart()
        self._refresh_history()
        self._refresh_status()

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        bar.update(f"{self.system_status or 'Ready'}\nJ/K select line  +/- qty  E extras  D remove  Ctrl+Z undo")

    def _refresh_products(self) -> None:
        try:
            container = self.query_one("#products", VerticalScroll)
        except NoMatches:
            return
        products = filter_products(
            self.store.get("products", []),
            self.store.get("currentCategory") or "all",
            self.store.get("searchQuery") or "",
        )
        container.remove_children()
        if not products:
            container.mount(Static("No products found"))
            return
        container.mount_all(
            ActionButton(format_product_label(product), data={"product_id": str(product.product_id)}, classes="product-card")
            for product in products
        )

    def _refresh_cart(self) -> None:
        try:
            container = self.query_one("#cart-items", VerticalScroll)
            summary = self.query_one("#cart-summary", Static)
            count = self.query_one("#cart-count", Static)
        except NoMatches:
            return
        lines = self.store.cart_lines()
        if self.selected_line is not None and self.selected_line >= len(lines):
            self.selected_line = len(lines) - 1 if lines else None

        container.remove_children()
        if not lines:
            container.mount(Static("(cart is empty)"))
        for idx, line in enumerate(lines):
            container.mount_all(self._cart_line_widgets(idx, line))

        summary.update(format_cart_summary(self.store.get_cart_total()))
        count.update(f"  Items: {self.store.get_cart_item_count()}")
        try:
            self.query_one("#checkout-btn", Button).disabled = not lines
        except NoMatches:
            return

    def _cart_line_widgets(self, idx: int, line: CartLine) -> list[Widget]:
        data = {"item_index": str(idx)}
        selected = idx == self.selected_line
        label_text = Text("➤ " if selected else "  ", style="bold" if selected else "")
        label_text.append(f"{idx + 1}. ")
        label_text.append_text(format_cart_line(line))
        label = Static(label_text, classes="cart-line")

        controls: list[Widget] = [
            ActionButton("Select", action="select-line", data=data),
            ActionButton("−", action="decrease", data=data, disabled=line.quantity <= 1),
            ActionButton("+", action="increase", data=data),
        ]
        if line.category == SIZED_CATEGORY:
            for size in (SIZE_SMALL, SIZE_LARGE):
                controls.append(
                    ActionButton(
                        f"[{size}]" if line.size == size else size,
                        action="select-size",
                        data={**data, "size": size},
                    )
                )
            controls.append(ActionButton("Extras −" if line.extras_expanded else "Extras +", action="toggle-extras", data=data))
        controls.append(ActionButton("Remove", action="remove-from-cart", data=data))

        widgets: list[Widget] = [label, Horizontal(*controls, classes="cart-line-controls")]
        if line.extras_expanded:
            for ingredient in self.store.get("extraIngredients", []):
                extra = line.extras.get(ingredient.ingredient_id)
                quantity = extra.quantity if extra is not None else 0
                extra_data = {**data, "ingredient_id": ingredient.ingredient_id}
                widgets.append(
                    Horizontal(
                        Static(f"    {ingredient.icon} {ingredient.name} +{format_money(ingredient.price)} ×{quantity}"),
                        ActionButton("−", action="decrease-extra", data=extra_data, disabled=quantity == 0),
                        ActionButton("+", action="increase-extra", data=extra_data),
                        classes="extra-controls",
                    )
                )
        return widgets

    def _refresh_history(self) -> None:
        try:
            container = self.query_one("#order-history-list", VerticalScroll)
            details = self.query_one("#order-details", Static)
        except NoMatches:
            return
        orders = self.history.filtered()
        container.remove_children()
        if not orders:
            container.mount(Static("No orders yet"))
        else:
            container.mount_all(
                ActionButton(
                    format_order_row(order, selected=order.order_id == self.history.selected_order_id).plain.splitlines()[0],
                    data={"order_id": str(order.order_id)},
                    classes="order-item",
                )
                for order in orders
            )

        selected = self.history.selected()
        if selected is None:
            details.update("Select an order to see details")
        else:
            details.update(format_order_details(selected))
