"""
Identity directory lookups.

Laborer and customer profiles live in their own services; this module only
needs a handful of display fields from them, fetched by id.
"""
import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import LABOR_SERVICE_URL, CUSTOMER_SERVICE_URL, DIRECTORY_TIMEOUT
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


class LaborProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    skill_category: str | None = Field(default=None, alias="skillCategory")
    daily_rate: float | None = Field(default=None, alias="dailyRate")
    is_active: bool = Field(default=True, alias="isActive")


class CustomerProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class HttpDirectory:
    def __init__(
        self,
        labor_service_url: str = LABOR_SERVICE_URL,
        customer_service_url: str = CUSTOMER_SERVICE_URL,
        timeout: float = DIRECTORY_TIMEOUT,
    ):
        self.labor_service_url = labor_service_url
        self.customer_service_url = customer_service_url
        self.timeout = timeout

    async def _fetch(self, url: str) -> dict | None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(url)
                if r.status_code == 404:
                    return None
                r.raise_for_status()
                return r.json()
        except httpx.HTTPError as e:
            logger.warning("directory lookup failed for %s: %s", url, e)
            raise StoreUnavailable("Identity directory is unavailable")

    async def find_labor_by_id(self, labor_id: str) -> LaborProfile | None:
        data = await self._fetch(f"{self.labor_service_url}/labors/{labor_id}")
        if data is None:
            return None
        data.setdefault("id", labor_id)
        return LaborProfile.model_validate(data)

    async def find_customer_by_id(self, customer_id: str) -> CustomerProfile | None:
        data = await self._fetch(f"{self.customer_service_url}/customers/{customer_id}")
        if data is None:
            return None
        data.setdefault("id", customer_id)
        return CustomerProfile.model_validate(data)


async def find_labor_quietly(directory, labor_id: str) -> LaborProfile | None:
    """Lookup used only to decorate notifications; failures degrade to None."""
    try:
        return await directory.find_labor_by_id(labor_id)
    except StoreUnavailable:
        logger.warning("labor %s unavailable for notification details", labor_id)
        return None


async def find_customer_quietly(directory, customer_id: str) -> CustomerProfile | None:
    try:
        return await directory.find_customer_by_id(customer_id)
    except StoreUnavailable:
        logger.warning("customer %s unavailable for notification details", customer_id)
        return None


directory = HttpDirectory()


def get_directory():
    return directory
