"""Display names for canonical category keys."""

from __future__ import annotations

from typing import Any, Dict, Literal, Tuple

from .records import UNCATEGORIZED, category_key

Language = Literal["cz", "en"]
SUPPORTED_LANGUAGES: Tuple[str, ...] = ("cz", "en")
DEFAULT_LANGUAGE: Language = "cz"

INCOME_CATEGORIES: Tuple[str, ...] = ("job", "investment", "gift", "other")
EXPENSE_CATEGORIES: Tuple[str, ...] = ("food", "housing", "transportation", "entertainment", "health", "other")

CATEGORY_LABELS: Dict[str, Dict[str, str]] = {
    "cz": {
        "food": "Jídlo",
        "housing": "Bydlení",
        "transportation": "Doprava",
        "entertainment": "Zábava",
        "health": "Zdraví",
        "other": "Ostatní",
        "job": "Práce",
        "investment": "Investice",
        "gift": "Dar",
        UNCATEGORIZED: "Nezařazeno",
    },
    "en": {
        "food": "Food",
        "housing": "Housing",
        "transportation": "Transportation",
        "entertainment": "Entertainment",
        "health": "Health",
        "other": "Other",
        "job": "Job",
        "investment": "Investment",
        "gift": "Gift",
        UNCATEGORIZED: "Uncategorized",
    },
}


def normalize_language(value: Any) -> Language:
    candidate = str(value or "").strip().lower()
    if candidate in SUPPORTED_LANGUAGES:
        return candidate  # type: ignore[return-value]
    return DEFAULT_LANGUAGE


def category_label(category: Any, language: Any = DEFAULT_LANGUAGE) -> str:
    """
    Localized label for a category.

    Known keys come from the fixed table; anything else is shown as the raw
    text with its first character upper-cased.
    """
    key = category_key(category)
    labels = CATEGORY_LABELS[normalize_language(language)]
    if key in labels:
        return labels[key]
    raw = str(category).strip() if category is not None else key
    return raw[:1].upper() + raw[1:]
