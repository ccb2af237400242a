# puphax/domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any

from puphax.domain.query import FilterSpecification, ResultPage


class UpstreamPort(ABC):
    """Live government service. Retries/timeouts/circuit policy live behind this."""
    @abstractmethod
    async def search(self, spec: FilterSpecification) -> ResultPage: ...


class AvailabilityPort(ABC):
    """Verdict of the upstream health policy: usable right now or not."""
    @abstractmethod
    def is_available(self) -> bool: ...


class CachePort(ABC):
    @abstractmethod
    async def get(self, key: str): ...
    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600): ...
