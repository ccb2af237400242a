# tests/conftest.py
import datetime as dt
from pathlib import Path
from typing import Dict, List

import pytest

from puphax.application.catalog_store import CatalogSnapshot, CatalogStore
from puphax.application.query_engine import QueryEngine
from puphax.domain.models import LookupTables, Product
from puphax.infra.catalog.loader import PRODUCT_COLUMNS, CatalogLoader
from puphax.infra.catalog.tables import ATC_CODES, BRANDS, COMPANIES, PRODUCTS, TableSource

TODAY = dt.date(2025, 6, 1)


# ── raw table fixtures ─────────────────────────────────────────────
def product_row(**values: str) -> List[str]:
    data = {
        "ERV_KEZD": "2020.01.01",
        "ERV_VEGE": "99",
        "TTT": "2",
        "RENDELHET": "VN",
        "EGYEDI": "N",
        "FORGALOMBAN": "1",
        "GYFORMA": "tabletta",
        "ADAGMOD": "orális",
        **values,
    }
    return [data.get(col, "") for col in PRODUCT_COLUMNS]


def write_table(path: Path, header: List[str], rows: List[List[str]], encoding: str = "utf-8") -> Path:
    """TAB-delimited, text fields wrapped in double quotes."""
    def q(v: str) -> str:
        return v if (not v or v.isdigit()) else f'"{v}"'
    lines = ["\t".join(header)] + ["\t".join(q(v) for v in row) for row in rows]
    path.write_bytes(("\n".join(lines) + "\n").encode(encoding))
    return path


BRAND_ROWS = [["77", "Aspirin"], ["78", "Panadol"]]
ATC_ROWS = [
    ["N02BA01", "acetilszalicilsav"],
    ["N02BE01", "paracetamol"],
    ["L04AA36", "ocrelizumab"],
    ["L04AB04", "adalimumab"],
]
# 77 shares its id with a brand on purpose: resolving the manufacturer
# through the brand id would yield "Shadow Pharma Kft."
COMPANY_ROWS = [
    ["10", "Bayer Hungária Kft."],
    ["20", "Other Co"],
    ["30", "AbbVie Kft."],
    ["50", "Roche (Magyarország) Kft."],
    ["77", "Shadow Pharma Kft."],
]
PRODUCT_ROWS = [
    product_row(ID="1", NEV="Aspirin 500", HATOANYAG="acetylsalicylic acid", ATC="N02BA01",
                POTENCIA="500 mg", BRAND_ID="77", FORGENGT_ID="10", FORGALMAZ_ID="20",
                RENDELHET="VK", TTT="1", TK="50%"),
    product_row(ID="2", NEV="Aspirin Protect", HATOANYAG="acetylsalicylic acid", ATC="N02BA01",
                POTENCIA="100 mg", BRAND_ID="77", FORGENGT_ID="10", RENDELHET="VK", TTT="1"),
    product_row(ID="3", NEV="Paracetamol 500", HATOANYAG="paracetamol", ATC="N02BE01",
                POTENCIA="500 mg", BRAND_ID="78", FORGENGT_ID="20"),
    product_row(ID="4", NEV="Humira 40 mg", HATOANYAG="adalimumab", ATC="L04AB04",
                POTENCIA="40 mg", FORGENGT_ID="30", RENDELHET="SZK", EGYEDI="I",
                GYFORMA="oldatos injekció", ADAGMOD="subcutan", FORGALOMBAN="0"),
    product_row(ID="5", NEV="Ocrevus 300 mg", HATOANYAG="ocrelizumab", ATC="L04AA36",
                POTENCIA="300 mg", FORGENGT_ID="50", GYFORMA="koncentrátum", ADAGMOD="intravénás"),
    # expired recently: kept
    product_row(ID="91", NEV="Algopyrin 500", HATOANYAG="metamizol", ATC="N02BB02",
                ERV_KEZD="2015.01.01", ERV_VEGE="2024.12.31", FORGENGT_ID="20", FORGALOMBAN="0"),
    # expired long ago: dropped by the retention window
    product_row(ID="90", NEV="Antipyrin", ERV_KEZD="2008.01.01", ERV_VEGE="2019.12.31"),
    # ends before it starts: rejected
    product_row(ID="96", NEV="Broken Interval", ERV_KEZD="2025.01.01", ERV_VEGE="2024.06.01"),
    # malformed: too few columns
    ["95", "Short Row", "2020.01.01"],
]


def write_catalog(tmp_path: Path, product_encoding: str = "utf-8", skip: tuple = ()) -> Dict[str, TableSource]:
    specs = {
        BRANDS: ("BRAND.csv", ["ID", "NEV"], BRAND_ROWS, "utf-8"),
        ATC_CODES: ("ATCKONYV.csv", ["ATC", "MEGNEVEZES"], ATC_ROWS, "utf-8"),
        COMPANIES: ("CEGEK.csv", ["ID", "NEV"], COMPANY_ROWS, "utf-8"),
        PRODUCTS: ("TERMEK.csv", list(PRODUCT_COLUMNS), PRODUCT_ROWS, product_encoding),
    }
    sources = {}
    for name, (fname, header, rows, enc) in specs.items():
        path = tmp_path / fname
        if name not in skip:
            write_table(path, header, rows, enc)
        sources[name] = TableSource(name=name, path=path, encoding=enc)
    return sources


@pytest.fixture
def catalog_sources(tmp_path) -> Dict[str, TableSource]:
    return write_catalog(tmp_path)


@pytest.fixture
def loader(catalog_sources) -> CatalogLoader:
    return CatalogLoader(catalog_sources, retention_years=2, today=TODAY)


# ── in-memory fixtures for engine tests ────────────────────────────
def make_product(id: str, name: str, **kw) -> Product:
    return Product(id=id, name=name, **kw)


SCENARIO = [
    make_product("1", "Aspirin 500", atc_code="N02BA01", manufacturer="Bayer",
                 active_ingredient="acetylsalicylic acid", strength="500 mg"),
    make_product("2", "Aspirin Protect", atc_code="N02BA01", manufacturer="Bayer",
                 active_ingredient="acetylsalicylic acid", strength="100 mg"),
    make_product("3", "Paracetamol 500", atc_code="N02BE01", manufacturer="Other Co",
                 active_ingredient="paracetamol", strength="500 mg"),
]


def engine_for(products, today: dt.date = TODAY) -> QueryEngine:
    store = CatalogStore(CatalogSnapshot.build(products, LookupTables()))
    return QueryEngine(store, today=lambda: today)


@pytest.fixture
def scenario_engine() -> QueryEngine:
    return engine_for(SCENARIO)


class FakeCache:
    def __init__(self):
        self.data = {}
        self.sets = 0

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ttl=3600):
        self.sets += 1
        self.data[key] = value
