# puphax/infra/search/token_index.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Set

from puphax.domain.models import Product

logger = logging.getLogger("puphax.index")

MIN_TOKEN_LEN = 3


def normalize(text: Optional[str]) -> str:
    return (text or "").strip().casefold()


def tokens_for(text: Optional[str]) -> Set[str]:
    """Whitespace words of length >= 3, plus the whole normalized field."""
    norm = normalize(text)
    if not norm:
        return set()
    out = {w for w in norm.split() if len(w) >= MIN_TOKEN_LEN}
    out.add(norm)
    return out


class TokenIndex:
    """
    Inverted index: normalized token → positions of products in the snapshot.

    Built once from a product sequence and never updated; a changed catalog
    gets a new index.
    """

    def __init__(self, entries: Dict[str, FrozenSet[int]]):
        self._entries = entries

    @classmethod
    def build(cls, products: Sequence[Product]) -> "TokenIndex":
        acc: Dict[str, Set[int]] = defaultdict(set)
        for pos, p in enumerate(products):
            for field in (p.name, p.active_ingredient):
                for tok in tokens_for(field):
                    acc[tok].add(pos)
        entries = {k: frozenset(v) for k, v in acc.items()}
        logger.debug("search index built: %d keys over %d products", len(entries), len(products))
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> Iterable[str]:
        return self._entries.keys()

    def lookup(self, term: str) -> FrozenSet[int]:
        """Exact key match only."""
        return self._entries.get(normalize(term), frozenset())

    def match(self, term: str) -> Set[int]:
        """Exact key hit unioned with every key that contains the term."""
        q = normalize(term)
        if not q:
            return set()
        hits: Set[int] = set(self._entries.get(q, ()))
        for key, positions in self._entries.items():
            if q in key:
                hits.update(positions)
        return hits
