"""Rendering helpers for cart, catalog and order rows."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from rich.text import Text

from pos_terminal.cart import checkout_tax, extras_total, line_total, quantize_cents
from pos_terminal.config import CHECKOUT_TAX_RATE, CURRENCY_SYMBOL, HISTORY_TAX_RATE, SIZED_CATEGORY
from pos_terminal.history import history_breakdown
from pos_terminal.models import CartLine, OrderRecord, Product


def format_money(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{quantize_cents(amount):.2f}"


def badge_style(category: str) -> str:
    """Return a consistent badge style for category tags."""
    if category == SIZED_CATEGORY:
        return "bold #ffffff on #b23a48"
    if category == "beverages":
        return "bold #ffffff on #2f6db5"
    return "bold #0b1f0f on #5fbf72"


def format_product_label(product: Product) -> str:
    return f"{product.icon} {product.name}  {format_money(product.price)}".strip()


def format_cart_line(line: CartLine) -> Text:
    """Render a cart line with size tag, quantity, total and selected extras."""
    text = Text()
    text.append(line.category[:1].upper(), style=badge_style(line.category))
    text.append(f" {line.name}")
    if line.size:
        text.append(f" ({line.size})", style="dim")
    text.append(f"  x{line.quantity}  ")
    text.append(format_money(line_total(line)), style="bold")
    for extra in line.extras.values():
        text.append(f"\n    + {extra.name} ×{extra.quantity}  {format_money(extra.unit_price * extra.quantity)}", style="dim")
    if line.extras:
        text.append(f"\n    extras per unit {format_money(extras_total(line))}", style="dim")
    return text


def format_cart_summary(subtotal: Decimal) -> Text:
    tax = checkout_tax(subtotal)
    rate = int(CHECKOUT_TAX_RATE * 100)
    text = Text()
    text.append(f"Subtotal: {format_money(subtotal)}\n")
    text.append(f"Tax ({rate}%): {format_money(tax)}\n")
    text.append(f"Total: {format_money(subtotal + tax)}", style="bold")
    return text


def format_timestamp(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp).strftime("%b %d, %Y %H:%M")
    except ValueError:
        return timestamp


def format_order_row(order: OrderRecord, selected: bool = False) -> Text:
    pointer = "➤ " if selected else "  "
    preview = ", ".join(f"{line.name} ({line.quantity})" for line in order.items[:3])
    if len(order.items) > 3:
        preview += "..."
    text = Text()
    text.append(f"{pointer}Order #{order.order_id}  ", style="bold" if selected else "")
    text.append(format_money(order.total))
    text.append(f"\n    {format_timestamp(order.timestamp)} · {len(order.items)} items · {order.status.upper()}", style="dim")
    text.append(f"\n    {preview}", style="dim")
    return text


def format_order_details(order: OrderRecord) -> Text:
    breakdown = history_breakdown(order)
    text = Text()
    text.append(f"Order #{order.order_id}\n", style="bold")
    text.append(f"{format_timestamp(order.timestamp)} · {order.status.upper()}\n\n")
    for line in order.items:
        text.append_text(format_cart_line(line))
        text.append("\n")
    text.append(f"\nSubtotal: {format_money(breakdown.subtotal)}\n")
    text.append(f"Tax ({int(HISTORY_TAX_RATE * 100)}%): {format_money(breakdown.tax)}\n")
    text.append(f"Total: {format_money(breakdown.total)}", style="bold")
    return text
