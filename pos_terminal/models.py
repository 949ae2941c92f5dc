"""Domain models for pos-terminal."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class Product:
    """A catalog product."""

    product_id: int
    name: str
    price: Decimal
    category: str
    icon: str = ""


@dataclass(frozen=True)
class Category:
    """A catalog filter entry."""

    category_id: str
    name: str
    icon: str = ""


@dataclass(frozen=True)
class ExtraIngredient:
    """An add-on that can be attached to a cart line."""

    ingredient_id: str
    name: str
    price: Decimal
    icon: str = ""


@dataclass
class ExtraLine:
    """Extra ingredient quantity attached to one unit of a cart line."""

    ingredient_id: str
    name: str
    unit_price: Decimal
    quantity: int = 0


@dataclass
class CartLine:
    """One product entry in the cart."""

    product_id: int
    name: str
    unit_price: Decimal
    category: str
    quantity: int = 1
    size: str | None = None
    extras: dict[str, ExtraLine] = field(default_factory=dict)
    extras_expanded: bool = False


@dataclass(frozen=True)
class OrderRecord:
    """A submitted order with a snapshot of the cart lines."""

    order_id: int
    items: tuple[CartLine, ...]
    total: Decimal
    timestamp: str
    status: str = "preparing"


@dataclass(frozen=True)
class OrderBreakdown:
    """Subtotal, tax and total shown for an order."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal
