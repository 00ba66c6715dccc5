"""Design source: resolves orders into printable designs and fetches rasters."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from gangsheet_api.storage.base import BaseStorageDriver, StorageError
from gangsheet_worker.services.packing_service import DesignItem

logger = logging.getLogger(__name__)


class DesignSourceError(Exception):
    """Base exception for design source errors."""
    pass


class OrderNotFoundError(DesignSourceError):
    """An order id is unknown to the order/design service."""
    pass


class DesignMissingError(DesignSourceError):
    """An order has no usable print-ready design."""
    pass


class DesignFetchError(DesignSourceError):
    """A design raster could not be downloaded."""
    pass


class DesignSource(ABC):
    """Where design items and their source rasters come from.

    Sources are async context managers so implementations can hold pooled
    connections for the duration of one gangsheet run.
    """

    async def __aenter__(self) -> "DesignSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    @abstractmethod
    async def resolve_design_items(self, order_ids: List[int]) -> List[DesignItem]:
        """
        Resolve orders into design items, in order and line order.

        Raises:
            OrderNotFoundError: If an order does not exist
            DesignMissingError: If an order has no print-ready design
            DesignSourceError: If the source cannot be queried
        """
        pass

    @abstractmethod
    async def fetch_image(self, source_image_ref: str) -> bytes:
        """
        Download the raster behind a design reference.

        Raises:
            DesignFetchError: If the raster is missing or unreachable
        """
        pass


class HttpDesignSource(DesignSource):
    """Design source backed by the order/design HTTP service.

    ``GET {base_url}/orders/{order_id}/designs`` answers::

        {
            "order_id": 1001,
            "designs": [
                {"line_id": "55", "source_image_ref": "designs/front.png",
                 "width_in": 10.0, "height_in": 12.0, "quantity": 2,
                 "label": "Front"}
            ]
        }

    References starting with ``http://`` or ``https://`` are downloaded over
    HTTP; anything else is a key in the tenant's blob storage.

    Example:
        >>> async with HttpDesignSource(url, storage_driver, tenant_id=1) as source:
        ...     items = await source.resolve_design_items([1001, 1002])
    """

    def __init__(
        self,
        base_url: str,
        storage_driver: Optional[BaseStorageDriver] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        tenant_id: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage_driver = storage_driver
        self.token = token
        self.timeout = timeout
        self.tenant_id = tenant_id
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpDesignSource":
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.tenant_id is not None:
            headers["X-Tenant-ID"] = str(self.tenant_id)

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise DesignSourceError("HttpDesignSource must be used as an async context manager")
        return self._client

    async def resolve_design_items(self, order_ids: List[int]) -> List[DesignItem]:
        items: List[DesignItem] = []

        for order_id in order_ids:
            designs = await self._order_designs(order_id)
            items.extend(self._to_item(order_id, design) for design in designs)

        logger.info(f"Resolved {len(items)} design items from {len(order_ids)} orders")
        return items

    async def fetch_image(self, source_image_ref: str) -> bytes:
        if source_image_ref.startswith(("http://", "https://")):
            return await self._fetch_url(source_image_ref)
        return await self._fetch_blob(source_image_ref)

    async def _order_designs(self, order_id: int) -> List[Dict[str, Any]]:
        try:
            response = await self.client.get(f"/orders/{order_id}/designs")
        except httpx.HTTPError as e:
            raise DesignSourceError(f"Design service request for order {order_id} failed: {e}")

        if response.status_code == 404:
            raise OrderNotFoundError(f"Order {order_id} not found")

        try:
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise DesignSourceError(f"Design service returned an invalid answer for order {order_id}: {e}")

        designs = payload.get("designs") if isinstance(payload, dict) else None
        if not designs:
            raise DesignMissingError(f"Order {order_id} has no print-ready designs")

        return designs

    def _to_item(self, order_id: int, design: Dict[str, Any]) -> DesignItem:
        line_id = design.get("line_id")
        try:
            item = DesignItem(
                source_image_ref=str(design["source_image_ref"]),
                width_in=float(design["width_in"]),
                height_in=float(design["height_in"]),
                quantity=int(design.get("quantity", 1)),
                order_id=order_id,
                line_id=str(line_id) if line_id is not None else None,
                label=design.get("label"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DesignMissingError(f"Order {order_id} has an incomplete design (line {line_id}): {e}")

        if not item.source_image_ref or item.width_in <= 0 or item.height_in <= 0 or item.quantity < 1:
            raise DesignMissingError(f"Order {order_id} has an unusable design: {item.describe()}")

        return item

    async def _fetch_url(self, url: str) -> bytes:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DesignFetchError(f"Failed to download {url}: {e}")
        return response.content

    async def _fetch_blob(self, key: str) -> bytes:
        if self.storage_driver is None:
            raise DesignFetchError(f"No storage available to read {key}")
        try:
            return await self.storage_driver.download_file(key)
        except FileNotFoundError:
            raise DesignFetchError(f"Design file {key} not found in storage")
        except (StorageError, OSError) as e:
            raise DesignFetchError(f"Failed to read {key} from storage: {e}")
