# puphax/application/catalog_store.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from puphax.domain.models import LoadStats, LookupTables, Product
from puphax.infra.catalog.loader import CatalogLoader
from puphax.infra.search.token_index import TokenIndex

logger = logging.getLogger("puphax.loader")


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Products + lookup maps + search index, built together and read-only.
    Index entries are positions into `products`.
    """
    products: Tuple[Product, ...]
    lookups: LookupTables
    index: TokenIndex
    stats: LoadStats
    by_id: Dict[str, int] = field(default_factory=dict, repr=False)

    @classmethod
    def build(cls, products: Sequence[Product], lookups: LookupTables,
              stats: Optional[LoadStats] = None) -> "CatalogSnapshot":
        items = tuple(products)
        index = TokenIndex.build(items)
        stats = stats or LoadStats(products_loaded=len(items))
        stats.index_keys = len(index)
        return cls(
            products=items,
            lookups=lookups,
            index=index,
            stats=stats,
            by_id={p.id: i for i, p in enumerate(items)},
        )

    @classmethod
    def empty(cls) -> "CatalogSnapshot":
        return cls.build((), LookupTables())

    def __len__(self) -> int:
        return len(self.products)

    def get(self, product_id: str) -> Optional[Product]:
        pos = self.by_id.get((product_id or "").strip())
        return self.products[pos] if pos is not None else None


class CatalogStore:
    """
    Holds the current snapshot. Readers take `current()` once per query;
    reloads build a complete new snapshot first and publish it with a single
    reference assignment, so a reader sees either the old or the new one.
    """

    def __init__(self, snapshot: Optional[CatalogSnapshot] = None):
        self._snapshot = snapshot if snapshot is not None else CatalogSnapshot.empty()
        self._loaded = snapshot is not None
        self._reload_lock = threading.Lock()

    def current(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._loaded

    def publish(self, snapshot: CatalogSnapshot) -> None:
        self._snapshot = snapshot
        self._loaded = True

    def reload(self, loader: CatalogLoader) -> LoadStats:
        """Build off to the side, then swap. Raises CatalogLoadError; old snapshot stays."""
        with self._reload_lock:
            products, lookups, stats = loader.load()
            snapshot = CatalogSnapshot.build(products, lookups, stats)
            self.publish(snapshot)
            logger.info("snapshot published: %d products, %d index keys",
                        len(snapshot), stats.index_keys)
            return stats
