"""Typed catalog views built from the editable constants."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pos_terminal.config import SIZE_SMALL, SIZED_CATEGORY
from pos_terminal.constant import CATEGORIES as _CATEGORIES_RAW
from pos_terminal.constant import EXTRA_INGREDIENTS as _EXTRA_INGREDIENTS_RAW
from pos_terminal.constant import PRODUCTS as _PRODUCTS_RAW
from pos_terminal.constant import SAMPLE_ORDERS as _SAMPLE_ORDERS_RAW
from pos_terminal.models import Category, CartLine, ExtraIngredient, ExtraLine, OrderRecord, Product

PRODUCTS: list[Product] = [
    Product(
        product_id=int(raw["id"]),  # type: ignore[arg-type]
        name=str(raw["name"]),
        price=Decimal(str(raw["price"])),
        category=str(raw["category"]),
        icon=str(raw.get("icon", "")),
    )
    for raw in _PRODUCTS_RAW
]

CATEGORIES: list[Category] = [
    Category(category_id=raw["id"], name=raw["name"], icon=raw.get("icon", "")) for raw in _CATEGORIES_RAW
]

EXTRA_INGREDIENTS: list[ExtraIngredient] = [
    ExtraIngredient(
        ingredient_id=raw["id"],
        name=raw["name"],
        price=Decimal(raw["price"]),
        icon=raw.get("icon", ""),
    )
    for raw in _EXTRA_INGREDIENTS_RAW
]

PRODUCTS_BY_ID: dict[int, Product] = {product.product_id: product for product in PRODUCTS}
INGREDIENTS_BY_ID: dict[str, ExtraIngredient] = {item.ingredient_id: item for item in EXTRA_INGREDIENTS}


def filter_products(products: list[Product], category: str, query: str) -> list[Product]:
    """Products matching the category filter ("all" matches everything) and a name substring."""
    q = query.strip().lower()
    return [
        product
        for product in products
        if (category == "all" or product.category == category) and (not q or q in product.name.lower())
    ]


def _sample_line(raw: dict[str, object]) -> CartLine:
    product = PRODUCTS_BY_ID[int(raw["product_id"])]  # type: ignore[arg-type]
    extras: dict[str, ExtraLine] = {}
    for ingredient_id, quantity in dict(raw.get("extras", {})).items():  # type: ignore[arg-type]
        ingredient = INGREDIENTS_BY_ID[ingredient_id]
        extras[ingredient_id] = ExtraLine(
            ingredient_id=ingredient_id,
            name=ingredient.name,
            unit_price=ingredient.price,
            quantity=int(quantity),
        )
    return CartLine(
        product_id=product.product_id,
        name=product.name,
        unit_price=product.price,
        category=product.category,
        quantity=int(raw["quantity"]),  # type: ignore[arg-type]
        size=SIZE_SMALL if product.category == SIZED_CATEGORY else None,
        extras=extras,
    )


def sample_orders(now: datetime | None = None) -> list[OrderRecord]:
    """Seed orders for the history screen, timestamped relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    return [
        OrderRecord(
            order_id=int(raw["id"]),  # type: ignore[arg-type]
            items=tuple(_sample_line(item) for item in raw["items"]),  # type: ignore[union-attr]
            total=Decimal(str(raw["total"])),
            timestamp=(now - timedelta(seconds=int(raw["age_seconds"]))).isoformat(),  # type: ignore[arg-type]
            status=str(raw["status"]),
        )
        for raw in _SAMPLE_ORDERS_RAW
    ]
