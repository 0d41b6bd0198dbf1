"""Barcode strings for items (I...), borrow records (B...) and users (U...).

Barcodes are derived once, at creation time, and stored with the entity.
"""
import re
from typing import Tuple

_NON_DIGITS = re.compile(r"[^0-9]")

BARCODE_TYPES = {"I": "item", "B": "borrowing", "U": "user"}


def generate_barcode(value: str, prefix: str = "") -> str:
    """Prefix plus the value left-padded with zeros to at least 8 characters."""
    return f"{prefix}{str(value).rjust(8, '0')}"


def generate_item_barcode(item_id: str) -> str:
    return generate_barcode(_NON_DIGITS.sub("", item_id), "I")


def generate_borrowing_barcode(record_id: str) -> str:
    return generate_barcode(_NON_DIGITS.sub("", record_id), "B")


def generate_user_barcode(email: str) -> str:
    return generate_barcode(str(hash_string(email)), "U")


def hash_string(value: str) -> int:
    """
    Non-negative 32-bit string hash (h = h * 31 + unit over UTF-16 code units).

    Barcodes already printed for users depend on this exact function.
    """
    h = 0
    units = value.encode("utf-16-le")
    for i in range(0, len(units), 2):
        unit = units[i] | (units[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return abs(h)


def parse_barcode(barcode: str) -> Tuple[str, str]:
    """Split a scanned barcode into (id part, kind). Kind is item/borrowing/user/unknown."""
    if not barcode or not isinstance(barcode, str):
        return "", "unknown"
    kind = BARCODE_TYPES.get(barcode[0])
    if kind is None:
        return barcode, "unknown"
    return barcode[1:], kind
