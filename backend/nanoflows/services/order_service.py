"""
Storefront pricing rules and identifiers.

Pure functions, kept free of database access so checkout maths can be
tested on its own.
"""

from typing import Dict, Iterable, Optional, Tuple
import re
import secrets
import string
import time

TAX_RATE = 0.10
FREE_SHIPPING_THRESHOLD = 100.0
FLAT_SHIPPING = 10.0

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """ORD-<base36 epoch millis>-<6 random base36 chars>"""
    timestamp = to_base36(now_ms if now_ms is not None else int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{timestamp}-{random_part}"


def calculate_totals(lines: Iterable[Tuple[float, int]]) -> Dict[str, float]:
    """
    Totals for (unit price, quantity) lines.

    10% tax; shipping is free when the subtotal is over 100, else a flat 10.
    """
    subtotal = sum(float(price) * int(quantity) for price, quantity in lines)
    tax = subtotal * TAX_RATE
    shipping = 0.0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    total = subtotal + tax + shipping

    return {
        "subtotal": round(subtotal, 2),
        "tax": round(tax, 2),
        "shipping": round(shipping, 2),
        "total": round(total, 2),
    }


def slugify(value: str) -> str:
    """Lowercase, runs of non-alphanumerics become '-', no leading/trailing '-'"""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-")
