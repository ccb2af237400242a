# puphax/application/query_engine.py
"""
Offline query execution over the in-memory catalog snapshot.

Pipeline: candidate selection (token index, or the whole catalog when there
is no term) → predicate filtering → de-duplication → sorting → pagination.
Pure in-memory computation: no I/O, no locks, never raises on a well-formed
FilterSpecification.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from puphax.application.catalog_store import CatalogSnapshot, CatalogStore
from puphax.domain.models import Product
from puphax.domain.query import (
    MAX_PAGE_SIZE, FilterSpecification, PaginationInfo, ResultPage, SortDirection, SortKey,
)
from puphax.infra.search.token_index import normalize

logger = logging.getLogger("puphax.query")

Predicate = Callable[[Product], bool]


# ── helpers ────────────────────────────────────────────────────────
def id_sort_key(product_id: str) -> Tuple[int, int, str]:
    """Numeric ids in numeric order, anything else after them lexically."""
    pid = product_id.strip()
    if pid.isdecimal():
        return (0, int(pid), "")
    return (1, 0, pid)


def clamp_paging(page: int, size: int, max_size: int = MAX_PAGE_SIZE) -> Tuple[int, int]:
    return max(0, int(page)), min(max(1, int(size)), max_size)


def _value_set(values: Optional[Sequence[str]]) -> set[str]:
    return {v.strip() for v in (values or []) if v and v.strip()}


def build_predicates(spec: FilterSpecification, today: dt.date) -> List[Predicate]:
    preds: List[Predicate] = []

    manufacturers = _value_set(spec.manufacturers)
    if manufacturers:
        # manufacturer is resolved through the MAH id at load time
        preds.append(lambda p: p.manufacturer in manufacturers)

    prefixes = tuple(c.upper() for c in _value_set(spec.atc_codes))
    if prefixes:
        preds.append(lambda p: (p.atc_code or "").upper().startswith(prefixes))

    forms = _value_set(spec.product_forms)
    if forms:
        preds.append(lambda p: p.product_form in forms)

    categories = _value_set(spec.prescription_categories)
    if categories:
        preds.append(lambda p: p.prescription_category in categories)

    routes = _value_set(spec.administration_methods)
    if routes:
        preds.append(lambda p: p.administration_route in routes)

    ttt_codes = _value_set(spec.ttt_codes)
    if ttt_codes:
        preds.append(lambda p: p.ttt_code in ttt_codes)

    brands = _value_set(spec.brands)
    if brands:
        preds.append(lambda p: p.brand_name in brands)

    for flag in ("prescription_required", "in_stock", "reimbursable", "special_authorization"):
        wanted = getattr(spec, flag)
        if wanted is not None:
            preds.append(lambda p, flag=flag, wanted=wanted: getattr(p, flag) is wanted)

    if spec.currently_valid is not None:
        wanted_valid = spec.currently_valid
        preds.append(lambda p: p.is_valid_on(today) is wanted_valid)

    return preds


def dedup_key(p: Product) -> Tuple[str, str]:
    return (" ".join(normalize(p.name).split()), p.strength_descriptor)


def _recency_rank(p: Product) -> Tuple[dt.date, bool, dt.date]:
    return (
        p.valid_from or dt.date.min,
        p.valid_to is None,
        p.valid_to or dt.date.min,
    )


def deduplicate(products: Iterable[Product]) -> List[Product]:
    """
    One product per (name, strength). The most recently valid row wins;
    ties go to the lowest id. Output keeps first-seen key order.
    """
    best: Dict[Tuple[str, str], Product] = {}
    for p in products:
        key = dedup_key(p)
        cur = best.get(key)
        if cur is None:
            best[key] = p
            continue
        new_rank, cur_rank = _recency_rank(p), _recency_rank(cur)
        if new_rank > cur_rank or (new_rank == cur_rank and id_sort_key(p.id) < id_sort_key(cur.id)):
            best[key] = p
    return list(best.values())


_SORT_FIELDS: Dict[SortKey, Callable[[Product], str]] = {
    SortKey.NAME: lambda p: p.name.casefold(),
    SortKey.MANUFACTURER: lambda p: p.manufacturer.casefold(),
    SortKey.ATC_CODE: lambda p: (p.atc_code or "").casefold(),
}


def sort_products(products: Iterable[Product], key: SortKey, direction: SortDirection) -> List[Product]:
    # id order first; the stable second sort keeps it for ties in both directions
    ordered = sorted(products, key=lambda p: id_sort_key(p.id))
    ordered.sort(key=_SORT_FIELDS[key], reverse=direction is SortDirection.DESC)
    return ordered


# ── engine ─────────────────────────────────────────────────────────
class QueryEngine:
    def __init__(
        self,
        store: CatalogStore,
        max_page_size: int = MAX_PAGE_SIZE,
        today: Optional[Callable[[], dt.date]] = None,
    ):
        self.store = store
        self.max_page_size = max_page_size
        self._today = today or dt.date.today

    def candidates(self, snapshot: CatalogSnapshot, term: Optional[str]) -> List[Product]:
        """Index hits in catalog order, or the whole catalog for filter-only queries."""
        q = normalize(term)
        if not q:
            return list(snapshot.products)
        positions = snapshot.index.match(q)
        return [snapshot.products[i] for i in sorted(positions)]

    def search(self, spec: FilterSpecification, snapshot: Optional[CatalogSnapshot] = None) -> ResultPage:
        snap = snapshot if snapshot is not None else self.store.current()
        page, size = clamp_paging(spec.page, spec.size, self.max_page_size)

        preds = build_predicates(spec, self._today())
        filtered = [p for p in self.candidates(snap, spec.term) if all(f(p) for f in preds)]
        ordered = sort_products(deduplicate(filtered), spec.sort_by, spec.sort_direction)

        start = page * size
        items = ordered[start:start + size]
        logger.debug(
            "offline query term=%r filters=%s -> filtered=%d unique=%d page=%d size=%d returned=%d",
            spec.term, spec.active_filters(), len(filtered), len(ordered), page, size, len(items),
        )
        return ResultPage(
            items=items,
            total_count=len(ordered),
            pagination=PaginationInfo.of(page, size, len(ordered)),
        )

    def get(self, product_id: str) -> Optional[Product]:
        return self.store.current().get(product_id)
