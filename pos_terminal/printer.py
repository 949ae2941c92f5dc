"""Receipt layout and thermal printing for stored orders."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from time import sleep

from pos_terminal.config import (
    HISTORY_TAX_RATE,
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_RECEIPT_WIDTH_CHARS,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from pos_terminal.cart import line_total
from pos_terminal.debug_log import log_debug
from pos_terminal.history import history_breakdown
from pos_terminal.models import OrderRecord
from pos_terminal.rendering import format_money, format_timestamp

# Separator geometry and pacing.
_SECTION_SEPARATOR_HEIGHT_PX = 12
_SECTION_SEPARATOR_THICKNESS_PX = 3
_SECTION_SEPARATOR_STRIPE_HEIGHT_PX = 2
_SECTION_SEPARATOR_PAUSE_SECONDS = 0.1
_SEPARATOR_TOKEN = "__SEP__"
_LINE_EXTRA_PX = 10
_TAIL_SPACER_PX = 60
_FONT_OVERRIDE_ENV = "POS_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)


def _two_column(left: str, right: str, width: int = PRINTER_RECEIPT_WIDTH_CHARS) -> str:
    gap = width - len(left) - len(right)
    if gap < 1:
        left = left[: max(0, width - len(right) - 2)] + "…"
        gap = 1
    return f"{left}{' ' * gap}{right}"


def receipt_lines(order: OrderRecord, printed_at: datetime | None = None) -> list[str]:
    """Lay out a receipt for ``order`` as fixed-width text lines.

    Totals use the history breakdown, i.e. the tax shown is a share of the
    stored total rather than the checkout rate.
    """
    breakdown = history_breakdown(order)
    printed_at = printed_at or datetime.now(timezone.utc)
    lines = [
        f"Order #{order.order_id}",
        format_timestamp(order.timestamp),
        f"Status: {order.status.upper()}",
        _SEPARATOR_TOKEN,
    ]
    for item in order.items:
        label = f"{item.quantity}x {item.name}"
        if item.size:
            label += f" {item.size}"
        lines.append(_two_column(label, format_money(line_total(item))))
        for extra in item.extras.values():
            lines.append(_two_column(f"  + {extra.name} x{extra.quantity}", format_money(extra.unit_price * extra.quantity)))
    lines.append(_SEPARATOR_TOKEN)
    lines.append(_two_column("Subtotal", format_money(breakdown.subtotal)))
    lines.append(_two_column(f"Tax ({int(HISTORY_TAX_RATE * 100)}%)", format_money(breakdown.tax)))
    lines.append(_two_column("TOTAL", format_money(breakdown.total)))
    lines.append(_SEPARATOR_TOKEN)
    lines.append("Thank you for your business!")
    lines.append(f"Printed on: {format_timestamp(printed_at.isoformat())}")
    return lines


def receipt_text(order: OrderRecord, printed_at: datetime | None = None) -> str:
    """Plain-text receipt, separators drawn as dashes."""
    return "\n".join(
        "-" * PRINTER_RECEIPT_WIDTH_CHARS if line == _SEPARATOR_TOKEN else line
        for line in receipt_lines(order, printed_at)
    )



def _font_candidates() -> list[str]:
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    ordered = [env_override, PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS]
    return list(dict.fromkeys(path for path in ordered if path))


def resolve_printer_font_path() -> str:
    """Return the first existing font file.

    ``POS_PRINTER_FONT_PATH`` wins over the configured path, which wins over
    the bundled Linux monospace fallbacks.
    """
    candidates = _font_candidates()
    found = next((path for path in candidates if Path(path).is_file()), None)
    if found is None:
        raise RuntimeError(
            f"No printer font found; set {_FONT_OVERRIDE_ENV} to a .ttf/.otf file (tried {', '.join(candidates)})"
        )
    return found


def check_printer_dependencies() -> tuple[bool, str]:
    """Report whether the printing stack and a usable font are available."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer deps unavailable: {exc}")
    return (True, "Printer ready")


def _blank(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def _render_line(text: str, font: object) -> object:
    from PIL import ImageDraw

    left, top, right, bottom = font.getbbox(text or " ")
    glyph_height = bottom - top
    img = _blank(max(PRINTER_FONT_SIZE, glyph_height) + _LINE_EXTRA_PX)
    # Shift by the bbox top so descenders stay on the canvas.
    baseline = (img.height - glyph_height) // 2 - top
    ImageDraw.Draw(img).text((PRINTER_LEFT_INDENT_PX, baseline), text, font=font, fill=0)
    return img


def _separator_stripes() -> list[object]:
    """A solid rule cut into thin horizontal stripes."""
    from PIL import ImageDraw

    rule = _blank(_SECTION_SEPARATOR_HEIGHT_PX)
    y0 = (rule.height - _SECTION_SEPARATOR_THICKNESS_PX) // 2
    ImageDraw.Draw(rule).rectangle(
        (0, y0, PRINTER_WIDTH_PX - 1, y0 + _SECTION_SEPARATOR_THICKNESS_PX - 1), fill=0
    )
    step = _SECTION_SEPARATOR_STRIPE_HEIGHT_PX
    return [rule.crop((0, y, PRINTER_WIDTH_PX, min(rule.height, y + step))) for y in range(0, rule.height, step)]


def _print_separator(device: object) -> None:
    # Pausing between stripes keeps the head cool enough for a crisp rule.
    stripes = _separator_stripes()
    for idx, stripe in enumerate(stripes):
        device.image(stripe)
        if idx < len(stripes) - 1:
            sleep(_SECTION_SEPARATOR_PAUSE_SECONDS)


def print_order(order: OrderRecord) -> None:
    """Send ``order`` to the USB receipt printer and cut the ticket."""
    if not order.items:
        return

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    device = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    log_debug(f"print_start order_id={order.order_id}")

    for line in receipt_lines(order):
        if line == _SEPARATOR_TOKEN:
            _print_separator(device)
        else:
            device.image(_render_line(line, font))

    device.image(_blank(_TAIL_SPACER_PX))
    device.cut()
    log_debug(f"print_done order_id={order.order_id}")
