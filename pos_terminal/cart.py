"""Cart pricing and the cart operations layered on the state store."""

from __future__ import annotations

import time
from copy import deepcopy
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from pos_terminal.config import (
    CHECKOUT_TAX_RATE,
    QUANTITY_FLOOR,
    SIZE_LARGE,
    SIZE_SMALL,
    SIZE_UP_MULTIPLIER,
    SIZED_CATEGORY,
)
from pos_terminal.debug_log import log_debug
from pos_terminal.models import Category, CartLine, ExtraIngredient, ExtraLine, OrderRecord, Product
from pos_terminal.store import StateStore

CENT = Decimal("0.01")


def quantize_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def extras_total(line: CartLine) -> Decimal:
    """Cost of the extras attached to one unit of ``line``."""
    return sum((extra.unit_price * extra.quantity for extra in line.extras.values()), Decimal("0"))


def line_total(line: CartLine) -> Decimal:
    """Extras are charged per unit of the parent line, not once per line."""
    return line.unit_price * line.quantity + extras_total(line) * line.quantity


def cart_subtotal(lines: Iterable[CartLine]) -> Decimal:
    return sum((line_total(line) for line in lines), Decimal("0"))


def cart_item_count(lines: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in lines)


def checkout_tax(subtotal: Decimal) -> Decimal:
    return subtotal * CHECKOUT_TAX_RATE


def checkout_total(subtotal: Decimal) -> Decimal:
    return quantize_cents(subtotal * (1 + CHECKOUT_TAX_RATE))


def resize_price(price: Decimal, old_size: str, new_size: str) -> Decimal:
    """Rescale an effective unit price for a size change.

    Each transition rounds to cents, so repeated up/down toggling can drift
    by at most one cent per round trip.
    """
    if old_size == SIZE_SMALL and new_size == SIZE_LARGE:
        return quantize_cents(price * SIZE_UP_MULTIPLIER)
    if old_size == SIZE_LARGE and new_size == SIZE_SMALL:
        return quantize_cents(price / SIZE_UP_MULTIPLIER)
    return price


def parse_quantity(raw: object, floor: int = QUANTITY_FLOOR) -> int:
    """Parse a user-entered quantity; malformed or too-small values clamp to ``floor``."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return floor
    return max(floor, value)


def parse_index(raw: object) -> int | None:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


class CartStore(StateStore):
    """State store with the point-of-sale cart and checkout operations.

    Each operation edits a copy of ``cart`` and commits it with one
    ``set_path("cart", ...)`` so the pre-mutation snapshot (and therefore
    ``undo``) sees the cart exactly as it was.
    """

    def load_catalog(
        self,
        products: Iterable[Product],
        categories: Iterable[Category],
        ingredients: Iterable[ExtraIngredient],
        orders: Iterable[OrderRecord] = (),
    ) -> None:
        """Seed the catalog and known orders; seeding is a baseline, so undo cannot remove it."""
        self.merge_patch(
            {
                "products": list(products),
                "categories": list(categories),
                "extraIngredients": list(ingredients),
                "orders": list(orders),
            }
        )
        self._history.clear()

    def find_product(self, product_id: object) -> Product | None:
        for product in self.get("products", []):
            if str(product.product_id) == str(product_id):
                return product
        return None

    def find_ingredient(self, ingredient_id: str) -> ExtraIngredient | None:
        for ingredient in self.get("extraIngredients", []):
            if ingredient.ingredient_id == ingredient_id:
                return ingredient
        return None

    def cart_lines(self) -> list[CartLine]:
        return list(self.get("cart", []))

    def _cart_copy(self) -> list[CartLine]:
        return deepcopy(self.get("cart", []))

    @staticmethod
    def _line_at(cart: list[CartLine], index: Any) -> CartLine | None:
        idx = parse_index(index)
        if idx is None or idx >= len(cart):
            log_debug(f"cart_line_missing index={index!r}")
            return None
        return cart[idx]

    @staticmethod
    def _line_for(cart: list[CartLine], product_id: object) -> CartLine | None:
        return next((line for line in cart if str(line.product_id) == str(product_id)), None)

    # --- line membership ------------------------------------------------------

    def add_to_cart(self, product: Product) -> CartLine:
        cart = self._cart_copy()
        line = self._line_for(cart, product.product_id)
        if line is not None:
            line.quantity += 1
        else:
            line = CartLine(
                product_id=product.product_id,
                name=product.name,
                unit_price=product.price,
                category=product.category,
                quantity=1,
                size=SIZE_SMALL if product.category == SIZED_CATEGORY else None,
            )
            cart.append(line)
        self.set_path("cart", cart)
        return line

    def remove_from_cart(self, product_id: object) -> None:
        cart = [line for line in self._cart_copy() if str(line.product_id) != str(product_id)]
        self.set_path("cart", cart)

    def remove_line(self, index: Any) -> CartLine | None:
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None:
            return None
        cart.remove(line)
        self.set_path("cart", cart)
        return line

    def clear_cart(self) -> None:
        self.set_path("cart", [])

    # --- quantities -----------------------------------------------------------

    def increase_cart_quantity(self, product_id: object) -> bool:
        cart = self._cart_copy()
        line = self._line_for(cart, product_id)
        if line is None:
            return False
        line.quantity += 1
        self.set_path("cart", cart)
        return True

    def decrease_cart_quantity(self, product_id: object) -> bool:
        """Decrease by one; a line already at the floor is left untouched."""
        cart = self._cart_copy()
        line = self._line_for(cart, product_id)
        if line is None or line.quantity <= QUANTITY_FLOOR:
            return False
        line.quantity -= 1
        self.set_path("cart", cart)
        return True

    def update_cart_quantity(self, product_id: object, quantity: object) -> bool:
        cart = self._cart_copy()
        line = self._line_for(cart, product_id)
        if line is None:
            return False
        line.quantity = parse_quantity(quantity)
        self.set_path("cart", cart)
        return True

    def set_line_quantity(self, index: Any, quantity: object) -> bool:
        """Apply a typed quantity to the line at ``index``; unchanged values are not committed."""
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None:
            return False
        new_quantity = parse_quantity(quantity)
        if line.quantity == new_quantity:
            return False
        line.quantity = new_quantity
        self.set_path("cart", cart)
        return True

    # --- customization --------------------------------------------------------

    def select_size(self, index: Any, size: str) -> bool:
        if size not in {SIZE_SMALL, SIZE_LARGE}:
            log_debug(f"cart_size_rejected size={size!r}")
            return False
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None:
            return False
        if line.category != SIZED_CATEGORY:
            log_debug(f"cart_size_rejected name={line.name!r} reason=unsized_category")
            return False
        old_size = line.size or SIZE_SMALL
        line.size = size
        line.unit_price = resize_price(line.unit_price, old_size, size)
        log_debug(f"cart_size name={line.name!r} from={old_size!r} to={size!r} price={line.unit_price}")
        self.set_path("cart", cart)
        return True

    def toggle_extras(self, index: Any) -> bool:
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None:
            return False
        line.extras_expanded = not line.extras_expanded
        self.set_path("cart", cart)
        return True

    def increase_extra(self, index: Any, ingredient_id: str) -> bool:
        ingredient = self.find_ingredient(ingredient_id)
        if ingredient is None:
            log_debug(f"cart_extra_unknown ingredient={ingredient_id!r}")
            return False
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None:
            return False
        extra = line.extras.get(ingredient_id)
        if extra is None:
            extra = ExtraLine(
                ingredient_id=ingredient.ingredient_id,
                name=ingredient.name,
                unit_price=ingredient.price,
                quantity=0,
            )
            line.extras[ingredient_id] = extra
        extra.quantity += 1
        self.set_path("cart", cart)
        return True

    def decrease_extra(self, index: Any, ingredient_id: str) -> bool:
        """Decrease an extra by one; reaching zero removes the extra entirely."""
        cart = self._cart_copy()
        line = self._line_at(cart, index)
        if line is None or ingredient_id not in line.extras:
            return False
        extra = line.extras[ingredient_id]
        extra.quantity -= 1
        if extra.quantity <= 0:
            del line.extras[ingredient_id]
        self.set_path("cart", cart)
        return True

    # --- derived reads --------------------------------------------------------

    def get_cart_total(self) -> Decimal:
        """Cart subtotal before tax."""
        return cart_subtotal(self.cart_lines())

    def get_cart_item_count(self) -> int:
        return cart_item_count(self.cart_lines())

    # --- checkout -------------------------------------------------------------

    def _next_order_id(self) -> int:
        now_ms = int(time.time() * 1000)
        existing = [order.order_id for order in self.get("orders", [])]
        return max([now_ms, *(order_id + 1 for order_id in existing)])

    def checkout(self, now: datetime | None = None) -> OrderRecord | None:
        """Turn the cart into an order record; an empty cart is rejected without mutation."""
        cart = self.cart_lines()
        if not cart:
            log_debug("checkout_blocked reason=empty_cart")
            return None

        record = OrderRecord(
            order_id=self._next_order_id(),
            items=tuple(deepcopy(cart)),
            total=checkout_total(cart_subtotal(cart)),
            timestamp=(now or datetime.now(timezone.utc)).isoformat(),
        )
        self.set_path("orders", [*self.get("orders", []), record])
        self.clear_cart()
        log_debug(f"checkout_created order_id={record.order_id} rows={len(record.items)} total={record.total}")
        return record
