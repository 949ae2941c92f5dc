"""Extra-ingredients modal screen."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from pos_terminal.cart import CartStore
from pos_terminal.events import EventPayload, EventRouter
from pos_terminal.models import CartLine, ExtraIngredient
from pos_terminal.rendering import format_cart_line, format_money


class ExtrasModal(ModalScreen[None]):
    """Centered modal to adjust extra ingredients for one cart line.

    Quantity changes are emitted as ``action:increase-extra`` /
    ``action:decrease-extra`` so they take the same path as clicks.
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("plus", "change_extra(1)", "More"),
        ("right", "change_extra(1)", "More"),
        ("minus", "change_extra(-1)", "Less"),
        ("left", "change_extra(-1)", "Less"),
    ]

    CSS = """
    ExtrasModal {
        align: center middle;
        background: $background 60%;
    }

    #extras-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #extras-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #extras-body {
        margin-bottom: 1;
        color: white;
    }

    #extras-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, store: CartStore, router: EventRouter, line_index: int) -> None:
        super().__init__()
        self.store = store
        self.router = router
        self.line_index = line_index
        self._unsubscribe = store.subscribe("cart", self._on_cart_changed)

    def compose(self) -> ComposeResult:
        with Container(id="extras-dialog"):
            yield Static("Extra Ingredients", id="extras-title")
            yield Static(id="extras-body")
            yield Static("J/K/↑/↓ move, +/→ add, -/← remove, Esc/q close", id="extras-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_unmount(self) -> None:
        self._unsubscribe()

    def action_close(self) -> None:
        self.dismiss()

    def action_move_cursor(self, delta: int) -> None:
        ingredients = self._ingredients()
        if not ingredients:
            return
        self.cursor_index = (self.cursor_index + delta) % len(ingredients)
        self._refresh_content()

    def action_change_extra(self, delta: int) -> None:
        ingredients = self._ingredients()
        if not ingredients:
            return
        ingredient = ingredients[self.cursor_index]
        action = "increase-extra" if delta > 0 else "decrease-extra"
        self.router.emit(
            f"action:{action}",
            EventPayload(data={"item_index": str(self.line_index), "ingredient_id": ingredient.ingredient_id}),
        )

    def _ingredients(self) -> list[ExtraIngredient]:
        return list(self.store.get("extraIngredients", []))

    def _line(self) -> CartLine | None:
        return self.store.get(f"cart.{self.line_index}")

    def _on_cart_changed(self, *_: object) -> None:
        self._refresh_content()

    def _refresh_content(self) -> None:
        try:
            body = self.query_one("#extras-body", Static)
        except NoMatches:
            return
        line = self._line()
        if line is None:
            body.update("(item removed)")
            return

        ingredients = self._ingredients()
        if self.cursor_index >= len(ingredients):
            self.cursor_index = max(0, len(ingredients) - 1)

        content = Text(style="white")
        content.append_text(format_cart_line(line))
        content.append("\n\n")
        for idx, ingredient in enumerate(ingredients):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            extra = line.extras.get(ingredient.ingredient_id)
            quantity = extra.quantity if extra is not None else 0
            style = "bold white" if quantity else "white"
            content.append(
                f"{pointer}{ingredient.icon} {ingredient.name}  +{format_money(ingredient.price)}  ×{quantity}",
                style=style,
            )
        body.update(content)
