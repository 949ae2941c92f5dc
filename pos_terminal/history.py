"""Order history review: search, selection, status and redisplay totals."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from pos_terminal.cart import quantize_cents
from pos_terminal.config import HISTORY_TAX_RATE
from pos_terminal.debug_log import log_debug
from pos_terminal.models import OrderBreakdown, OrderRecord
from pos_terminal.store import StateStore


def history_breakdown(order: OrderRecord) -> OrderBreakdown:
    """Split a stored total back into subtotal and tax for display.

    This is the review/print convention (tax as 15% of the stored total),
    which is separate from the 21% applied at checkout.
    """
    tax = order.total * HISTORY_TAX_RATE
    subtotal = order.total * (Decimal("1") - HISTORY_TAX_RATE)
    return OrderBreakdown(subtotal=quantize_cents(subtotal), tax=quantize_cents(tax), total=quantize_cents(order.total))


def order_matches(order: OrderRecord, query: str) -> bool:
    q = query.strip().lower()
    if not q:
        return True
    if q in str(order.order_id):
        return True
    return any(q in line.name.lower() for line in order.items)


class OrderHistory:
    """Selection and filtering over the store's ``orders`` slice."""

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self.query = ""
        self.selected_order_id: int | None = None

    def orders(self) -> list[OrderRecord]:
        """All orders, newest first."""
        return list(reversed(self.store.get("orders", [])))

    def filtered(self) -> list[OrderRecord]:
        return [order for order in self.orders() if order_matches(order, self.query)]

    def search(self, query: str) -> list[OrderRecord]:
        self.query = query
        return self.filtered()

    def find(self, order_id: object) -> OrderRecord | None:
        return next((order for order in self.store.get("orders", []) if str(order.order_id) == str(order_id)), None)

    def select(self, order_id: object) -> OrderRecord | None:
        order = self.find(order_id)
        if order is None:
            log_debug(f"history_select_missing order_id={order_id!r}")
            return None
        self.selected_order_id = order.order_id
        return order

    def selected(self) -> OrderRecord | None:
        if self.selected_order_id is None:
            return None
        return self.find(self.selected_order_id)

    def clear_selection(self) -> None:
        self.selected_order_id = None

    def update_status(self, order_id: object, status: str) -> OrderRecord | None:
        """Replace the matching record with a copy carrying ``status``."""
        orders = list(self.store.get("orders", []))
        for idx, order in enumerate(orders):
            if str(order.order_id) != str(order_id):
                continue
            orders[idx] = replace(order, status=status)
            self.store.set_path("orders", orders)
            return orders[idx]
        log_debug(f"history_status_missing order_id={order_id!r}")
        return None
