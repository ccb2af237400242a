# puphax/domain/models.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

UNKNOWN_MANUFACTURER = "Unknown"


class DrugStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Product(BaseModel):
    """
    One row of the product table (TERMEK), with foreign keys already resolved.

    `manufacturer` always comes from the marketing-authorization holder
    (`mah_id` → company table). `brand_name` comes from `brand_id` → brand
    table. The two are never mixed.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    parent_id: Optional[str] = None
    valid_from: Optional[dt.date] = None
    valid_to: Optional[dt.date] = None
    product_code: Optional[str] = None
    public_code: Optional[str] = None
    ttt_code: Optional[str] = None
    tk_code: Optional[str] = None
    tk_deleted: Optional[str] = None
    tk_deleted_date: Optional[dt.date] = None
    ean_code: Optional[str] = None
    brand_id: Optional[str] = None

    name: str
    short_name: Optional[str] = None

    atc_code: Optional[str] = None
    iso_code: Optional[str] = None
    active_ingredient: Optional[str] = None

    administration_route: Optional[str] = None
    product_form: Optional[str] = None
    prescription_category: Optional[str] = None
    equivalence_id: Optional[str] = None
    substitutability: Optional[str] = None

    strength: Optional[str] = None
    original_active_amount: Optional[str] = None
    active_amount: Optional[str] = None
    active_unit: Optional[str] = None
    package_amount: Optional[str] = None
    package_unit: Optional[str] = None
    ddd_amount: Optional[str] = None
    ddd_unit: Optional[str] = None
    ddd_factor: Optional[str] = None
    days_of_therapy: Optional[str] = None
    dose_amount: Optional[str] = None
    dose_unit: Optional[str] = None

    special_authorization: bool = False
    laterality: Optional[str] = None
    multi_guarantee: Optional[str] = None
    pharmacy_only: Optional[str] = None
    box_id: Optional[str] = None
    cross_marking: Optional[str] = None

    mah_id: Optional[str] = None
    distributor_id: Optional[str] = None
    in_stock: bool = False
    publication_id: Optional[str] = None

    # resolved / derived at load time
    manufacturer: str = UNKNOWN_MANUFACTURER
    brand_name: Optional[str] = None
    atc_description: Optional[str] = None
    prescription_required: bool = False
    reimbursable: bool = False

    @model_validator(mode="after")
    def _check_validity_interval(self) -> "Product":
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValueError(
                f"validity ends ({self.valid_to}) before it starts ({self.valid_from})"
            )
        return self

    @computed_field
    @property
    def status(self) -> DrugStatus:
        return DrugStatus.ACTIVE if self.in_stock else DrugStatus.INACTIVE

    @computed_field
    @property
    def pack_size(self) -> Optional[str]:
        if not self.package_amount:
            return None
        return f"{self.package_amount} {self.package_unit}".strip() if self.package_unit else self.package_amount

    @property
    def strength_descriptor(self) -> str:
        """Potency if present, else active amount + unit."""
        if self.strength:
            return self.strength.strip().casefold()
        return f"{self.active_amount or ''} {self.active_unit or ''}".strip().casefold()

    def is_valid_on(self, day: dt.date) -> bool:
        if self.valid_from and day < self.valid_from:
            return False
        return self.valid_to is None or day <= self.valid_to


class LoadStats(BaseModel):
    """Counters reported after a catalog (re)load."""
    products_total_rows: int = 0
    products_loaded: int = 0
    skipped_malformed: int = 0
    skipped_expired: int = 0
    skipped_invalid: int = 0
    brands: int = 0
    atc_codes: int = 0
    companies: int = 0
    index_keys: int = 0
    missing_tables: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    loaded_at: Optional[dt.datetime] = None


class LookupTables(BaseModel):
    """id → display name maps for the three reference tables."""
    model_config = ConfigDict(frozen=True)

    brands: Dict[str, str] = Field(default_factory=dict)
    atc_codes: Dict[str, str] = Field(default_factory=dict)
    companies: Dict[str, str] = Field(default_factory=dict)
