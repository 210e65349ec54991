"""
Trefle plant API client.

Every request carries the API token as a ``token`` query parameter. Responses
are returned as the parsed JSON envelope, ``{data, links, meta}`` for listings
and ``{data, meta}`` for single records.
"""
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from sproutie.core.config import settings
from sproutie.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LIST_FILTERS = {
    "common_name": "filter[common_name]",
    "family": "filter[family]",
    "genus": "filter[genus]",
}
_FLAG_FILTERS = {
    "edible": "filter[edible]",
    "vegetable": "filter[vegetable]",
    "flower_conspicuous": "filter[flower_conspicuous]",
}


class TrefleError(Exception):
    """Raised when Trefle cannot be reached or answers with a non-2xx status."""


class TrefleNotFoundError(TrefleError):
    """Raised when Trefle answers 404 for a record lookup."""


class TrefleRateLimitError(TrefleError):
    """Raised when Trefle signals the per-minute request quota is exhausted."""


class TrefleClient:
    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token if api_token is not None else settings.TREFLE_API_TOKEN
        if not self.api_token:
            raise ConfigurationError("TREFLE_API_TOKEN environment variable is required")
        self.base_url = (base_url or settings.TREFLE_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TREFLE_TIMEOUT
        self._transport = transport

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> dict:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug("GET %s%s %s", self.base_url, path, query)
        query["token"] = self.api_token

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}{path}", params=query)
        except httpx.HTTPError as exc:
            logger.warning("Trefle request to %s failed: %s", path, exc.__class__.__name__)
            raise TrefleError(f"Trefle request failed: {path}") from exc

        if response.status_code == 404:
            raise TrefleNotFoundError(f"Trefle record not found: {path}")
        if response.status_code == 429:
            logger.warning("Trefle rate limit hit on %s", path)
            raise TrefleRateLimitError("HTTP 429 from Trefle")
        if response.is_error:
            logger.warning("Trefle returned %d for %s", response.status_code, path)
            raise TrefleError(f"HTTP {response.status_code} from Trefle")

        try:
            return response.json()
        except ValueError as exc:
            raise TrefleError(f"Malformed JSON from Trefle: {path}") from exc

    async def search(self, query: str, page: Optional[int] = None) -> dict:
        return await self._get("/plants/search", {"q": query, "page": page})

    async def list(self, filters: Optional[dict[str, Any]] = None, page: Optional[int] = None) -> dict:
        """
        List plants, translating internal filter names into Trefle's
        ``filter[...]`` dialect. Flags are only sent when true.
        """
        filters = filters or {}
        params: dict[str, Any] = {"page": page}
        for name, key in _LIST_FILTERS.items():
            if filters.get(name):
                params[key] = filters[name]
        for name, key in _FLAG_FILTERS.items():
            if filters.get(name) is True:
                params[key] = "true"
        return await self._get("/plants", params)

    async def get_by_id(self, plant_id: int) -> dict:
        return await self._get(f"/plants/{plant_id}")

    async def get_species(self, plant_id: int, page: Optional[int] = None) -> dict:
        return await self._get(f"/plants/{plant_id}/species", {"page": page})

    async def get_families(self, page: Optional[int] = None) -> dict:
        return await self._get("/families", {"page": page})

    async def get_by_family(self, slug: str, page: Optional[int] = None) -> dict:
        return await self._get(f"/families/{quote(slug, safe='')}/plants", {"page": page})

    async def get_genera(self, page: Optional[int] = None) -> dict:
        return await self._get("/genus", {"page": page})

    async def get_by_genus(self, slug: str, page: Optional[int] = None) -> dict:
        return await self._get(f"/genus/{quote(slug, safe='')}/plants", {"page": page})
