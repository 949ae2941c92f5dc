"""Runtime configuration defaults for the store, router, pricing and printing."""

from __future__ import annotations

import os
from decimal import Decimal

DEBUG_LOG_PATH = os.environ.get("POS_DEBUG_LOG", "/tmp/pos-terminal-debug.log")

STATE_HISTORY_LIMIT = 50
WILDCARD_PATH = "*"

SCREEN_ORDER_CREATION = "order-creation"
SCREEN_ORDERS_LIST = "orders-list"
SCREEN_SWITCH_COOLDOWN_MS = 100

SEARCH_INPUT_CLASS = "search-input"

CURRENCY_SYMBOL = "€"
SIZED_CATEGORY = "pizza"
SIZE_SMALL = "30cm"
SIZE_LARGE = "40cm"
SIZE_UP_MULTIPLIER = Decimal("1.2")
QUANTITY_FLOOR = 1

# Applied when an order is created from the cart.
CHECKOUT_TAX_RATE = Decimal("0.21")
# Applied when a stored order total is broken down again for review or print.
HISTORY_TAX_RATE = Decimal("0.15")

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 16
PRINTER_RECEIPT_WIDTH_CHARS = 32
