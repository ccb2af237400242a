# puphax/infra/api/upstream_adapter.py
import logging

import httpx
from pydantic import ValidationError

from puphax.domain.errors import UpstreamError
from puphax.domain.ports import UpstreamPort
from puphax.domain.query import FilterSpecification, ResultPage

logger = logging.getLogger("puphax.upstream")


class HttpUpstreamAdapter(UpstreamPort):
    """
    Client for the live search gateway. The gateway speaks the normalized
    ResultPage JSON shape; SOAP details, auth and retries stay behind it.
    """
    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def search(self, spec: FilterSpecification) -> ResultPage:
        payload = spec.model_dump(mode="json", exclude_none=True)
        try:
            if self._client is not None:
                res = await self._client.post(f"{self.base_url}/drugs/search", json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as c:
                    res = await c.post(f"{self.base_url}/drugs/search", json=payload)
            res.raise_for_status()
            return ResultPage.model_validate(res.json())
        except httpx.HTTPError as e:
            raise UpstreamError(f"upstream request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise UpstreamError(f"upstream returned an unusable body: {e}") from e
