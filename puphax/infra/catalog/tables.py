# puphax/infra/catalog/tables.py
from __future__ import annotations

import codecs
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml

logger = logging.getLogger("puphax.loader")

BRANDS, ATC_CODES, COMPANIES, PRODUCTS = "brands", "atc_codes", "companies", "products"


@dataclass(frozen=True)
class TableSource:
    """One delimited table on disk. Each table declares its own encoding."""
    name: str
    path: Path
    encoding: str = "utf-8"
    delimiter: str = "\t"
    date_format: str = "%Y.%m.%d"

    def exists(self) -> bool:
        return self.path.is_file()


DEFAULT_FILES = {
    BRANDS: "BRAND.csv",
    ATC_CODES: "ATCKONYV.csv",
    COMPANIES: "CEGEK.csv",
    PRODUCTS: "TERMEK.csv",
}


def load_table_sources(data_dir: str | Path, cfg_path: Optional[str] = None) -> Dict[str, TableSource]:
    """
    Build the table map from the YAML config, falling back to the built-in
    defaults for anything the file does not declare (or if it is unusable).
    """
    base = Path(data_dir)
    sources = {name: TableSource(name=name, path=base / fname) for name, fname in DEFAULT_FILES.items()}

    path = cfg_path or os.getenv("PUPHAX_TABLES_CFG", "config/tables.yaml")
    cfg: dict = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("load %s failed: %s; using default table sources", path, e)

    tables = cfg.get("tables") if isinstance(cfg, dict) else None
    for name, entry in (tables or {}).items():
        if name not in sources or not isinstance(entry, dict):
            logger.warning("ignoring unknown table entry %r in %s", name, path)
            continue
        src = sources[name]
        encoding = entry.get("encoding", src.encoding)
        try:
            codecs.lookup(encoding)
        except (LookupError, TypeError):
            logger.warning("%s: unknown encoding %r in %s; using %s", name, encoding, path, src.encoding)
            encoding = src.encoding
        sources[name] = replace(
            src,
            path=base / entry.get("file", src.path.name),
            encoding=encoding,
            delimiter=entry.get("delimiter", src.delimiter),
            date_format=entry.get("date_format", src.date_format),
        )
    return sources


def unquote(value: Optional[str]) -> str:
    if value is None:
        return ""
    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def read_rows(source: TableSource) -> Iterator[List[str]]:
    """
    Yield raw field lists, header skipped. Empty trailing fields are kept so
    column positions stay stable. Undecodable bytes are replaced, not fatal.
    """
    with source.path.open("r", encoding=source.encoding, errors="replace", newline="") as fh:
        header = fh.readline()
        logger.debug("%s header: %s", source.name, header.rstrip("\r\n"))
        for line in fh:
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            yield line.split(source.delimiter)
