# puphax/infra/catalog/loader.py
"""
Catalog Loader: parses the PUPHAX reference tables into typed records.

Lookup tables (brands, ATC codes, companies) are optional: a missing file is
logged and yields an empty map, so names resolve to "unknown". The product
table is mandatory; without it `CatalogLoadError` is raised.

Foreign keys are resolved here, once. The manufacturer of a product is the
company behind its marketing-authorization holder id (FORGENGT_ID), never the
company that happens to share its brand id.
"""
from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from puphax.domain import flags
from puphax.domain.errors import CatalogLoadError
from puphax.domain.models import UNKNOWN_MANUFACTURER, LoadStats, LookupTables, Product
from puphax.infra.catalog.tables import (
    ATC_CODES, BRANDS, COMPANIES, PRODUCTS, TableSource, read_rows, unquote,
)

logger = logging.getLogger("puphax.loader")

PRODUCT_COLUMNS = (
    "ID", "PARENT_ID", "ERV_KEZD", "ERV_VEGE", "TERMEKKOD", "KOZHID", "TTT", "TK",
    "TKTORLES", "TKTORLESDAT", "EANKOD", "BRAND_ID", "NEV", "KISZNEV", "ATC", "ISO",
    "HATOANYAG", "ADAGMOD", "GYFORMA", "RENDELHET", "EGYEN_ID", "HELYETTESITH",
    "POTENCIA", "OHATO_MENNY", "HATO_MENNY", "HATO_EGYS", "KISZ_MENNY", "KISZ_EGYS",
    "DDD_MENNY", "DDD_EGYS", "DDD_FAKTOR", "DOT", "ADAG_MENNY", "ADAG_EGYS", "EGYEDI",
    "OLDALISAG", "TOBBLGAR", "PATIKA", "DOBAZON", "KERESZTJELZES", "FORGENGT_ID",
    "FORGALMAZ_ID", "FORGALOMBAN", "KIHIRDETES_ID",
)
PRODUCT_MIN_FIELDS = len(PRODUCT_COLUMNS)

OPEN_ENDED_DATE = "99"


def parse_date(value: Optional[str], fmt: str) -> Optional[dt.date]:
    """Empty, the "99" sentinel and unparsable values all mean "no date"."""
    s = (value or "").strip()
    if not s or s == OPEN_ENDED_DATE:
        return None
    try:
        return dt.datetime.strptime(s, fmt).date()
    except ValueError:
        return None


def retention_cutoff(today: dt.date, years: int) -> dt.date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:  # 29 Feb
        return today.replace(year=today.year - years, day=28)


def _opt(value: str) -> Optional[str]:
    return value or None


class CatalogLoader:
    def __init__(
        self,
        sources: Dict[str, TableSource],
        retention_years: int = 2,
        today: Optional[dt.date] = None,
    ):
        self.sources = sources
        self.retention_years = retention_years
        self.today = today

    # ──────────────────────────────────────────────────────────────
    #  Entry point
    # ──────────────────────────────────────────────────────────────
    def load(self) -> Tuple[List[Product], LookupTables, LoadStats]:
        t0 = time.time()
        stats = LoadStats()

        lookups = LookupTables(
            brands=self.load_lookup(BRANDS, stats),
            atc_codes=self.load_lookup(ATC_CODES, stats),
            companies=self.load_lookup(COMPANIES, stats),
        )
        stats.brands = len(lookups.brands)
        stats.atc_codes = len(lookups.atc_codes)
        stats.companies = len(lookups.companies)

        products = self.load_products(lookups, stats)
        stats.duration_ms = int((time.time() - t0) * 1000)
        stats.loaded_at = dt.datetime.now(dt.timezone.utc)
        logger.info(
            "catalog loaded: %d products (%d rows; malformed=%d expired=%d invalid=%d), "
            "%d brands, %d ATC codes, %d companies in %dms",
            stats.products_loaded, stats.products_total_rows, stats.skipped_malformed,
            stats.skipped_expired, stats.skipped_invalid, stats.brands, stats.atc_codes,
            stats.companies, stats.duration_ms,
        )
        return products, lookups, stats

    # ──────────────────────────────────────────────────────────────
    #  Lookup tables: id → display name
    # ──────────────────────────────────────────────────────────────
    def load_lookup(self, name: str, stats: Optional[LoadStats] = None) -> Dict[str, str]:
        source = self.sources.get(name)
        if source is None or not source.exists():
            logger.warning("%s table not found (%s); names will resolve to unknown",
                           name, source.path if source else "-")
            if stats is not None:
                stats.missing_tables.append(name)
            return {}

        out: Dict[str, str] = {}
        try:
            for fields in read_rows(source):
                if len(fields) < 2:
                    continue
                key = unquote(fields[0])
                if key:
                    out[key] = unquote(fields[1])
        except (OSError, LookupError) as e:
            logger.warning("%s table unreadable (%s): %s; names will resolve to unknown",
                           name, source.path, e)
            if stats is not None:
                stats.missing_tables.append(name)
            return {}
        logger.debug("loaded %d %s", len(out), name)
        return out

    # ──────────────────────────────────────────────────────────────
    #  Product table
    # ──────────────────────────────────────────────────────────────
    def load_products(self, lookups: LookupTables, stats: Optional[LoadStats] = None) -> List[Product]:
        stats = stats if stats is not None else LoadStats()
        source = self.sources.get(PRODUCTS)
        if source is None or not source.exists():
            raise CatalogLoadError(
                f"product table not found: {source.path if source else PRODUCTS}"
            )

        today = self.today or dt.date.today()
        cutoff = retention_cutoff(today, self.retention_years)
        by_id: Dict[str, Product] = {}

        try:
            for fields in read_rows(source):
                stats.products_total_rows += 1
                line_no = stats.products_total_rows + 1
                if len(fields) < PRODUCT_MIN_FIELDS:
                    stats.skipped_malformed += 1
                    logger.debug("line %d: %d fields, expected %d; skipped",
                                 line_no, len(fields), PRODUCT_MIN_FIELDS)
                    continue

                row = dict(zip(PRODUCT_COLUMNS, (unquote(f) for f in fields)))
                if not row["ID"]:
                    stats.skipped_invalid += 1
                    logger.debug("line %d: empty product id; skipped", line_no)
                    continue
                valid_to = parse_date(row["ERV_VEGE"], source.date_format)
                if valid_to is not None and valid_to < cutoff:
                    stats.skipped_expired += 1
                    continue

                try:
                    product = self._to_product(row, lookups, source.date_format)
                except ValidationError as e:
                    stats.skipped_invalid += 1
                    logger.debug("line %d: invalid product record: %s", line_no, e.errors()[0].get("msg"))
                    continue
                by_id[product.id] = product

                if stats.products_total_rows % 100000 == 0:
                    logger.debug("processed %d rows, kept %d", stats.products_total_rows, len(by_id))
        except (OSError, LookupError) as e:
            raise CatalogLoadError(f"product table unreadable: {source.path}: {e}") from e

        stats.products_loaded = len(by_id)
        return list(by_id.values())

    @staticmethod
    def _to_product(row: Dict[str, str], lookups: LookupTables, date_format: str) -> Product:
        mah_id = _opt(row["FORGENGT_ID"])
        brand_id = _opt(row["BRAND_ID"])
        atc = _opt(row["ATC"])
        return Product(
            id=row["ID"],
            parent_id=_opt(row["PARENT_ID"]),
            valid_from=parse_date(row["ERV_KEZD"], date_format),
            valid_to=parse_date(row["ERV_VEGE"], date_format),
            product_code=_opt(row["TERMEKKOD"]),
            public_code=_opt(row["KOZHID"]),
            ttt_code=_opt(row["TTT"]),
            tk_code=_opt(row["TK"]),
            tk_deleted=_opt(row["TKTORLES"]),
            tk_deleted_date=parse_date(row["TKTORLESDAT"], date_format),
            ean_code=_opt(row["EANKOD"]),
            brand_id=brand_id,
            name=row["NEV"],
            short_name=_opt(row["KISZNEV"]),
            atc_code=atc,
            iso_code=_opt(row["ISO"]),
            active_ingredient=_opt(row["HATOANYAG"]),
            administration_route=_opt(row["ADAGMOD"]),
            product_form=_opt(row["GYFORMA"]),
            prescription_category=_opt(row["RENDELHET"]),
            equivalence_id=_opt(row["EGYEN_ID"]),
            substitutability=_opt(row["HELYETTESITH"]),
            strength=_opt(row["POTENCIA"]),
            original_active_amount=_opt(row["OHATO_MENNY"]),
            active_amount=_opt(row["HATO_MENNY"]),
            active_unit=_opt(row["HATO_EGYS"]),
            package_amount=_opt(row["KISZ_MENNY"]),
            package_unit=_opt(row["KISZ_EGYS"]),
            ddd_amount=_opt(row["DDD_MENNY"]),
            ddd_unit=_opt(row["DDD_EGYS"]),
            ddd_factor=_opt(row["DDD_FAKTOR"]),
            days_of_therapy=_opt(row["DOT"]),
            dose_amount=_opt(row["ADAG_MENNY"]),
            dose_unit=_opt(row["ADAG_EGYS"]),
            special_authorization=flags.parse_special_authorization(row["EGYEDI"]),
            laterality=_opt(row["OLDALISAG"]),
            multi_guarantee=_opt(row["TOBBLGAR"]),
            pharmacy_only=_opt(row["PATIKA"]),
            box_id=_opt(row["DOBAZON"]),
            cross_marking=_opt(row["KERESZTJELZES"]),
            mah_id=mah_id,
            distributor_id=_opt(row["FORGALMAZ_ID"]),
            in_stock=flags.parse_in_stock(row["FORGALOMBAN"]),
            publication_id=_opt(row["KIHIRDETES_ID"]),
            manufacturer=lookups.companies.get(mah_id or "", UNKNOWN_MANUFACTURER),
            brand_name=lookups.brands.get(brand_id or ""),
            atc_description=lookups.atc_codes.get(atc or ""),
            prescription_required=flags.prescription_required(row["RENDELHET"], row["TTT"]),
            reimbursable=flags.reimbursable(row["TK"], row["TKTORLES"]),
        )
