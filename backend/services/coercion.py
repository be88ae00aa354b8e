"""Helpers for normalizing untrusted values returned by AI models."""

from __future__ import annotations

import math


def parse_untrusted_number(value: object, *, default: float = 0.0) -> float:
    """
    Parse a model-supplied number that may arrive as a number or a numeric string.

    Anything that cannot be read as a finite number (None, "", "abc", NaN,
    infinities, lists, dicts) yields ``default``.
    """
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default

    if not math.isfinite(number):
        return default
    return number


def coerce_text(value: object) -> str:
    """Return ``value`` as stripped text; None and non-scalars become ""."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def coerce_text_list(value: object) -> list[str]:
    """Return a list of non-empty strings from a model-supplied list."""
    if not isinstance(value, (list, tuple)):
        return []
    items = []
    for item in value:
        text = coerce_text(item)
        if text:
            items.append(text)
    return items
