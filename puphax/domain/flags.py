# puphax/domain/flags.py
"""
Sentinel conversions for the product table.

The source data encodes booleans and categories as short strings. Every
conversion happens here, once, at load time; query code only ever sees
proper booleans.
"""
from __future__ import annotations

from typing import Optional

IN_STOCK_SENTINEL = "1"             # FORGALOMBAN
SPECIAL_AUTHORIZATION_SENTINEL = "I"  # EGYEDI ("igen")

# RENDELHET vocabulary → prescription required?
PRESCRIPTION_CATEGORIES = {
    "VN": ("Vényköteles (normál)", True),
    "V5": ("Vényköteles (5x ismételhető)", True),
    "V1": ("Vényköteles (1x ismételhető)", True),
    "J": ("Különleges rendelvényen", True),
    "VK": ("Vény nélkül kapható", False),
    "SZK": ("Szakorvosi javaslat", True),
}


def is_sentinel(value: Optional[str], sentinel: str) -> bool:
    """Exact, case-sensitive comparison against a table sentinel."""
    return (value or "").strip() == sentinel


def parse_in_stock(value: Optional[str]) -> bool:
    return is_sentinel(value, IN_STOCK_SENTINEL)


def parse_special_authorization(value: Optional[str]) -> bool:
    return is_sentinel(value, SPECIAL_AUTHORIZATION_SENTINEL)


def prescription_required(category: Optional[str], ttt_code: Optional[str]) -> bool:
    cat = (category or "").strip()
    if cat in PRESCRIPTION_CATEGORIES:
        return PRESCRIPTION_CATEGORIES[cat][1]
    # unknown/empty category: TTT group 2 means prescription-only
    return (ttt_code or "").strip().startswith("2")


def reimbursable(tk_code: Optional[str], tk_deleted: Optional[str]) -> bool:
    return bool((tk_code or "").strip()) and not (tk_deleted or "").strip()
