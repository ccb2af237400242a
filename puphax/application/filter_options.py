# puphax/application/filter_options.py
from __future__ import annotations

from typing import Iterable, List, Optional

from puphax.application.catalog_store import CatalogSnapshot
from puphax.domain.flags import PRESCRIPTION_CATEGORIES
from puphax.domain.models import UNKNOWN_MANUFACTURER
from puphax.domain.query import AtcOption, FilterOptions, PrescriptionType

# ATC code length → hierarchy level (A, A10, A10B, A10BA, A10BA02)
_ATC_LEVELS = {1: 1, 3: 2, 4: 3, 5: 4, 7: 5}


def atc_level(code: str) -> int:
    return _ATC_LEVELS.get(len(code.strip()), 0)


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    return sorted({v for v in values if v}, key=str.casefold)


def get_filter_options(snapshot: CatalogSnapshot) -> FilterOptions:
    """Values actually present in the loaded catalog, for building filter UIs."""
    products = snapshot.products
    used_atc = {p.atc_code for p in products if p.atc_code}
    atc = [
        AtcOption(code=code, description=snapshot.lookups.atc_codes.get(code, ""), level=atc_level(code))
        for code in sorted(used_atc)
    ]
    return FilterOptions(
        manufacturers=_distinct(p.manufacturer for p in products if p.manufacturer != UNKNOWN_MANUFACTURER),
        atc_codes=atc,
        product_forms=_distinct(p.product_form for p in products),
        administration_methods=_distinct(p.administration_route for p in products),
        brands=_distinct(p.brand_name for p in products),
        prescription_types=[
            PrescriptionType(code=code, description=desc, prescription_required=required)
            for code, (desc, required) in PRESCRIPTION_CATEGORIES.items()
        ],
        total_products=len(products),
        in_stock_count=sum(1 for p in products if p.in_stock),
    )
