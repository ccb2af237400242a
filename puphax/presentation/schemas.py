# puphax/presentation/schemas.py
from __future__ import annotations
import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from puphax.domain.query import FilterSpecification, SortDirection, SortKey

ATC_PAT = re.compile(r"^[A-Z][0-9A-Z]{0,6}$")

# ── ADVANCED SEARCH ──────────────────────────────────────────────
class AdvancedSearchRequest(BaseModel):
    term: Optional[str] = Field(None, max_length=100, description="Name or active ingredient")
    manufacturers: Optional[List[str]] = None
    atc_codes: Optional[List[str]] = Field(None, description="ATC prefixes, e.g. 'N02B'")
    product_forms: Optional[List[str]] = None
    prescription_categories: Optional[List[str]] = Field(None, description="VN, V5, V1, J, VK, SZK")
    administration_methods: Optional[List[str]] = None
    ttt_codes: Optional[List[str]] = None
    brands: Optional[List[str]] = None

    prescription_required: Optional[bool] = None
    in_stock: Optional[bool] = None
    reimbursable: Optional[bool] = None
    special_authorization: Optional[bool] = None
    currently_valid: Optional[bool] = None

    page: int = Field(0, ge=0)
    size: int = Field(20, ge=1, le=100)
    sort_by: SortKey = SortKey.NAME
    sort_direction: SortDirection = SortDirection.ASC

    @field_validator("atc_codes")
    @classmethod
    def _check_atc(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        out = [c.strip().upper() for c in v if c and c.strip()]
        bad = [c for c in out if not ATC_PAT.match(c)]
        if bad:
            raise ValueError(f"invalid ATC code(s): {', '.join(bad)}")
        return out

    @field_validator("sort_by", mode="before")
    @classmethod
    def _sort_alias(cls, v):
        if isinstance(v, str) and v.strip().lower() in ("atccode", "atc"):
            return SortKey.ATC_CODE
        return v

    @field_validator("sort_direction", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    def to_spec(self) -> FilterSpecification:
        return FilterSpecification(**self.model_dump())

# ── RELOAD ───────────────────────────────────────────────────────
class ReloadResponse(BaseModel):
    ok: bool
    products: int
    index_keys: int
    skipped_malformed: int
    skipped_expired: int
    skipped_invalid: int
    missing_tables: List[str] = []
    duration_ms: int
