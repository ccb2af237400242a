# puphax/domain/query.py
from __future__ import annotations

import datetime as dt
import json
import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from puphax.domain.models import Product

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class SortKey(str, Enum):
    NAME = "name"
    MANUFACTURER = "manufacturer"
    ATC_CODE = "atc_code"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Provenance(str, Enum):
    LIVE = "live"
    OFFLINE = "offline_snapshot"


_SORT_ALIASES = {
    "name": SortKey.NAME,
    "manufacturer": SortKey.MANUFACTURER,
    "atc": SortKey.ATC_CODE,
    "atccode": SortKey.ATC_CODE,
    "atc_code": SortKey.ATC_CODE,
}

# list-valued filters, in the order they are reported back to callers
LIST_FILTERS = (
    "manufacturers", "atc_codes", "product_forms", "prescription_categories",
    "administration_methods", "ttt_codes", "brands",
)
FLAG_FILTERS = (
    "prescription_required", "in_stock", "reimbursable",
    "special_authorization", "currently_valid",
)


class FilterSpecification(BaseModel):
    """
    Query value object. Every criterion is optional and all of them are
    AND-combined. `atc_codes` are prefixes ("L" matches "L04AA36").
    """
    model_config = ConfigDict(frozen=True)

    term: Optional[str] = None

    manufacturers: Optional[List[str]] = None
    atc_codes: Optional[List[str]] = None
    product_forms: Optional[List[str]] = None
    prescription_categories: Optional[List[str]] = None
    administration_methods: Optional[List[str]] = None
    ttt_codes: Optional[List[str]] = None
    brands: Optional[List[str]] = None

    prescription_required: Optional[bool] = None
    in_stock: Optional[bool] = None
    reimbursable: Optional[bool] = None
    special_authorization: Optional[bool] = None
    currently_valid: Optional[bool] = None

    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort_by: SortKey = SortKey.NAME
    sort_direction: SortDirection = SortDirection.ASC

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort_by(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _SORT_ALIASES.get(v.strip().lower(), v)
        return v

    @field_validator("sort_direction", mode="before")
    @classmethod
    def _normalize_direction(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @classmethod
    def basic(
        cls,
        term: Optional[str],
        manufacturer: Optional[str] = None,
        atc_code: Optional[str] = None,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        sort_by: str = "name",
        sort_direction: str = "ASC",
    ) -> "FilterSpecification":
        """Positional form used by the simple search path."""
        return cls(
            term=term,
            manufacturers=[manufacturer] if manufacturer and manufacturer.strip() else None,
            atc_codes=[atc_code] if atc_code and atc_code.strip() else None,
            page=page,
            size=size,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )

    def active_filters(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for name in LIST_FILTERS:
            values = getattr(self, name)
            if values:
                out[name] = ",".join(values)
        for name in FLAG_FILTERS:
            value = getattr(self, name)
            if value is not None:
                out[name] = str(value).lower()
        return out

    def cache_key(self) -> str:
        payload = self.model_dump(mode="json")
        return "puphax:search:" + json.dumps(payload, sort_keys=True, ensure_ascii=False)


class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_elements: int
    has_next: bool
    has_previous: bool

    @classmethod
    def of(cls, page: int, size: int, total: int) -> "PaginationInfo":
        total_pages = math.ceil(total / size) if size > 0 else 0
        return cls(
            current_page=page,
            page_size=size,
            total_pages=total_pages,
            total_elements=total,
            has_next=page < total_pages - 1,
            has_previous=page > 0,
        )


class ResultPage(BaseModel):
    items: List[Product] = Field(default_factory=list)
    total_count: int = 0
    pagination: PaginationInfo

    @classmethod
    def empty(cls, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> "ResultPage":
        return cls(items=[], total_count=0, pagination=PaginationInfo.of(page, size, 0))


class SearchInfo(BaseModel):
    term: Optional[str] = None
    filters: Dict[str, str] = Field(default_factory=dict)
    response_time_ms: int = 0
    cache_hit: bool = False
    timestamp: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))


class DrugSearchResponse(BaseModel):
    """Outbound shape; identical for live and offline answers."""
    drugs: List[Product]
    total_count: int
    pagination: PaginationInfo
    provenance: Provenance
    search_info: SearchInfo

    @classmethod
    def from_page(cls, page: ResultPage, provenance: Provenance, info: SearchInfo) -> "DrugSearchResponse":
        return cls(
            drugs=page.items,
            total_count=page.total_count,
            pagination=page.pagination,
            provenance=provenance,
            search_info=info,
        )


# ── Filter options (values a client can offer in its filter UI) ─────
class AtcOption(BaseModel):
    code: str
    description: str
    level: int


class PrescriptionType(BaseModel):
    code: str
    description: str
    prescription_required: bool


class FilterOptions(BaseModel):
    manufacturers: List[str] = Field(default_factory=list)
    atc_codes: List[AtcOption] = Field(default_factory=list)
    product_forms: List[str] = Field(default_factory=list)
    administration_methods: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    prescription_types: List[PrescriptionType] = Field(default_factory=list)
    total_products: int = 0
    in_stock_count: int = 0
    generated_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
