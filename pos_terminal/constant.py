"""Editable static catalog configuration."""

from __future__ import annotations

PRODUCTS: list[dict[str, object]] = [
    {"id": 1, "name": "Margherita Pizza", "price": "12.50", "category": "pizza", "icon": "🍕"},
    {"id": 2, "name": "Pepperoni Pizza", "price": "14.00", "category": "pizza", "icon": "🍕"},
    {"id": 3, "name": "Caesar Salad", "price": "8.50", "category": "salad", "icon": "🥗"},
    {"id": 4, "name": "Coca Cola", "price": "2.50", "category": "beverages", "icon": "🥤"},
    {"id": 5, "name": "Tiramisu", "price": "6.00", "category": "dessert", "icon": "🍰"},
]

CATEGORIES: list[dict[str, str]] = [
    {"id": "all", "name": "All", "icon": "📦"},
    {"id": "pizza", "name": "Pizza", "icon": "🍕"},
    {"id": "salad", "name": "Salads", "icon": "🥗"},
    {"id": "beverages", "name": "Drinks", "icon": "🥤"},
    {"id": "dessert", "name": "Desserts", "icon": "🍰"},
]

EXTRA_INGREDIENTS: list[dict[str, str]] = [
    {"id": "cheese", "name": "Extra Cheese", "price": "2.00", "icon": "🧀"},
    {"id": "mushrooms", "name": "Mushrooms", "price": "1.50", "icon": "🍄"},
    {"id": "pepperoni", "name": "Extra Pepperoni", "price": "2.50", "icon": "🍕"},
    {"id": "olives", "name": "Black Olives", "price": "1.50", "icon": "🫒"},
    {"id": "bell_peppers", "name": "Bell Peppers", "price": "1.50", "icon": "🌶️"},
    {"id": "onions", "name": "Red Onions", "price": "1.00", "icon": "🧅"},
    {"id": "tomatoes", "name": "Cherry Tomatoes", "price": "1.50", "icon": "🍅"},
    {"id": "basil", "name": "Fresh Basil", "price": "1.00", "icon": "🌿"},
    {"id": "ham", "name": "Ham", "price": "3.00", "icon": "🥓"},
]

# Seed history shown on first launch. Ages are seconds before startup.
SAMPLE_ORDERS: list[dict[str, object]] = [
    {
        "id": 1001,
        "age_seconds": 86400,
        "total": "34.00",
        "status": "completed",
        "items": [
            {
                "product_id": 1,
                "quantity": 2,
                "extras": {"cheese": 1, "mushrooms": 2},
            },
            {"product_id": 4, "quantity": 1, "extras": {}},
        ],
    },
    {
        "id": 1002,
        "age_seconds": 3600,
        "total": "22.50",
        "status": "preparing",
        "items": [
            {"product_id": 2, "quantity": 1, "extras": {}},
            {"product_id": 3, "quantity": 1, "extras": {}},
        ],
    },
]
