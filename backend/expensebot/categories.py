"""Expense categories and keyword-based auto-categorization."""

from __future__ import annotations

import re
from enum import Enum as PyEnum


class Category(str, PyEnum):
    FOOD = "food"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    BILLS = "bills"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    SUBSCRIPTION = "subscription"
    OTHER = "other"

    @property
    def emoji(self) -> str:
        return CATEGORY_EMOJIS[self]


CATEGORY_EMOJIS: dict[Category, str] = {
    Category.FOOD: "🍔",
    Category.TRANSPORT: "🚗",
    Category.SHOPPING: "🛒",
    Category.BILLS: "💡",
    Category.ENTERTAINMENT: "🎬",
    Category.HEALTH: "💊",
    Category.SUBSCRIPTION: "📺",
    Category.OTHER: "📦",
}

DEFAULT_CATEGORY = Category.OTHER

# Scan order matters: the first keyword that matches wins.
AUTO_CATEGORIES: dict[str, Category] = {
    # Food & drinks
    "coffee": Category.FOOD,
    "kopi": Category.FOOD,
    "teh": Category.FOOD,
    "lunch": Category.FOOD,
    "dinner": Category.FOOD,
    "breakfast": Category.FOOD,
    "brunch": Category.FOOD,
    "supper": Category.FOOD,
    "snack": Category.FOOD,
    "bubble tea": Category.FOOD,
    "bbt": Category.FOOD,
    "makan": Category.FOOD,
    "food": Category.FOOD,
    "eat": Category.FOOD,
    "meal": Category.FOOD,
    "hawker": Category.FOOD,
    "kopitiam": Category.FOOD,
    "foodcourt": Category.FOOD,
    "restaurant": Category.FOOD,
    "mcdonalds": Category.FOOD,
    "mcd": Category.FOOD,
    "kfc": Category.FOOD,
    "subway": Category.FOOD,
    "starbucks": Category.FOOD,
    "pizza": Category.FOOD,
    "nasi": Category.FOOD,
    "toast box": Category.FOOD,
    "ya kun": Category.FOOD,
    "liho": Category.FOOD,
    "gongcha": Category.FOOD,
    "each a cup": Category.FOOD,
    # Transport
    "grab": Category.TRANSPORT,
    "gojek": Category.TRANSPORT,
    "uber": Category.TRANSPORT,
    "taxi": Category.TRANSPORT,
    "mrt": Category.TRANSPORT,
    "bus": Category.TRANSPORT,
    "train": Category.TRANSPORT,
    "ez-link": Category.TRANSPORT,
    "ezlink": Category.TRANSPORT,
    "petrol": Category.TRANSPORT,
    "fuel": Category.TRANSPORT,
    "parking": Category.TRANSPORT,
    "carpark": Category.TRANSPORT,
    "toll": Category.TRANSPORT,
    "cabby": Category.TRANSPORT,
    "comfort": Category.TRANSPORT,
    "transport": Category.TRANSPORT,
    # Shopping
    "ntuc": Category.SHOPPING,
    "fairprice": Category.SHOPPING,
    "cold storage": Category.SHOPPING,
    "giant": Category.SHOPPING,
    "sheng siong": Category.SHOPPING,
    "shopee": Category.SHOPPING,
    "lazada": Category.SHOPPING,
    "amazon": Category.SHOPPING,
    "uniqlo": Category.SHOPPING,
    "zara": Category.SHOPPING,
    "h&m": Category.SHOPPING,
    "daiso": Category.SHOPPING,
    "miniso": Category.SHOPPING,
    "don don": Category.SHOPPING,
    "donki": Category.SHOPPING,
    "watsons": Category.SHOPPING,
    "guardian": Category.SHOPPING,
    "clothes": Category.SHOPPING,
    "shoes": Category.SHOPPING,
    "grocery": Category.SHOPPING,
    "groceries": Category.SHOPPING,
    "shopping": Category.SHOPPING,
    # Bills & utilities
    "electric": Category.BILLS,
    "electricity": Category.BILLS,
    "water": Category.BILLS,
    "gas": Category.BILLS,
    "phone": Category.BILLS,
    "mobile": Category.BILLS,
    "singtel": Category.BILLS,
    "starhub": Category.BILLS,
    "m1": Category.BILLS,
    "internet": Category.BILLS,
    "wifi": Category.BILLS,
    "rent": Category.BILLS,
    "insurance": Category.BILLS,
    "bills": Category.BILLS,
    # Subscriptions
    "netflix": Category.SUBSCRIPTION,
    "spotify": Category.SUBSCRIPTION,
    "youtube": Category.SUBSCRIPTION,
    "disney": Category.SUBSCRIPTION,
    "hbo": Category.SUBSCRIPTION,
    "prime": Category.SUBSCRIPTION,
    "chatgpt": Category.SUBSCRIPTION,
    "gym": Category.SUBSCRIPTION,
    "activesg": Category.SUBSCRIPTION,
    "subscription": Category.SUBSCRIPTION,
    # Entertainment
    "movie": Category.ENTERTAINMENT,
    "cinema": Category.ENTERTAINMENT,
    "gv": Category.ENTERTAINMENT,
    "cathay": Category.ENTERTAINMENT,
    "shaw": Category.ENTERTAINMENT,
    "concert": Category.ENTERTAINMENT,
    "escape": Category.ENTERTAINMENT,
    "uss": Category.ENTERTAINMENT,
    "zoo": Category.ENTERTAINMENT,
    "karaoke": Category.ENTERTAINMENT,
    "ktv": Category.ENTERTAINMENT,
    "arcade": Category.ENTERTAINMENT,
    "entertainment": Category.ENTERTAINMENT,
    # Health
    "doctor": Category.HEALTH,
    "clinic": Category.HEALTH,
    "hospital": Category.HEALTH,
    "medicine": Category.HEALTH,
    "pharmacy": Category.HEALTH,
    "dental": Category.HEALTH,
    "dentist": Category.HEALTH,
    "polyclinic": Category.HEALTH,
    "checkup": Category.HEALTH,
    "vitamin": Category.HEALTH,
    "health": Category.HEALTH,
}

_WORD_PATTERNS: dict[str, re.Pattern[str]] = {
    keyword: re.compile(rf"\b{re.escape(keyword)}\b") for keyword in AUTO_CATEGORIES
}

_MIN_PREFIX_LENGTH = 3


def categorize(description: str) -> Category:
    """Guess a category for a free-text description.

    Tries, in order: an exact lexicon hit, the first keyword present as a
    whole word, the first keyword present anywhere as a substring. Anything
    else is ``Category.OTHER``.
    """
    text = description.strip().lower()
    if not text:
        return DEFAULT_CATEGORY

    exact = AUTO_CATEGORIES.get(text)
    if exact is not None:
        return exact

    for keyword, pattern in _WORD_PATTERNS.items():
        if pattern.search(text):
            return AUTO_CATEGORIES[keyword]

    for keyword, category in AUTO_CATEGORIES.items():
        if keyword in text:
            return category

    return DEFAULT_CATEGORY


def is_category(raw: str) -> bool:
    return raw.strip().lower() in {member.value for member in Category}


def validate_category(raw: str | None) -> Category:
    """Map a user-typed category onto the enum, defaulting to ``other``.

    Accepts a leading abbreviation ("ent", "sub") or an over-long form
    ("foods") when it has at least three characters.
    """
    if not raw:
        return DEFAULT_CATEGORY
    value = raw.strip().lower()
    try:
        return Category(value)
    except ValueError:
        pass
    if len(value) < _MIN_PREFIX_LENGTH:
        return DEFAULT_CATEGORY
    for member in Category:
        if member.value.startswith(value) or value.startswith(member.value):
            return member
    return DEFAULT_CATEGORY
