"""Tests for the HTTP design source."""

import httpx
import pytest

from gangsheet_api.storage.factory import get_storage_driver_from_config
from gangsheet_worker.services.design_source import (
    DesignFetchError,
    DesignMissingError,
    DesignSourceError,
    HttpDesignSource,
    OrderNotFoundError,
)

ORDERS = {
    "/orders/1001/designs": {
        "order_id": 1001,
        "designs": [
            {"line_id": 55, "source_image_ref": "designs/front.png", "width_in": 10, "height_in": 12,
             "quantity": 2, "label": "Front"},
            {"line_id": "56", "source_image_ref": "https://cdn.example.com/back.png", "width_in": 4,
             "height_in": 4},
        ],
    },
    "/orders/1002/designs": {
        "order_id": 1002,
        "designs": [{"line_id": "60", "source_image_ref": "designs/logo.png", "width_in": 3, "height_in": 3}],
    },
    "/orders/2000/designs": {"order_id": 2000, "designs": []},
    "/orders/2001/designs": {
        "order_id": 2001,
        "designs": [{"line_id": "1", "source_image_ref": "designs/x.png", "width_in": 0, "height_in": 3}],
    },
}


def design_service(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "cdn.example.com":
            if request.url.path == "/back.png":
                return httpx.Response(200, content=b"png-bytes")
            return httpx.Response(500)
        payload = ORDERS.get(request.url.path)
        if payload is None:
            return httpx.Response(404, json={"detail": "Order not found"})
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def source(requests, storage_driver=None):
    return HttpDesignSource(
        "http://designs.internal/",
        storage_driver=storage_driver,
        token="secret-token",
        tenant_id=3,
        transport=design_service(requests),
    )


async def test_resolves_orders_in_order():
    requests = []

    async with source(requests) as design_source:
        items = await design_source.resolve_design_items([1001, 1002])

    assert [(i.order_id, i.line_id, i.quantity) for i in items] == [
        (1001, "55", 2),
        (1001, "56", 1),
        (1002, "60", 1),
    ]
    assert items[0].label == "Front"
    assert items[0].width_in == 10.0
    assert requests[0].headers["Authorization"] == "Bearer secret-token"
    assert requests[0].headers["X-Tenant-ID"] == "3"


async def test_unknown_order():
    async with source([]) as design_source:
        with pytest.raises(OrderNotFoundError, match="Order 999"):
            await design_source.resolve_design_items([1001, 999])


@pytest.mark.parametrize("order_id", [2000, 2001])
async def test_order_without_usable_design(order_id):
    async with source([]) as design_source:
        with pytest.raises(DesignMissingError):
            await design_source.resolve_design_items([order_id])


async def test_fetches_http_references():
    async with source([]) as design_source:
        assert await design_source.fetch_image("https://cdn.example.com/back.png") == b"png-bytes"

        with pytest.raises(DesignFetchError):
            await design_source.fetch_image("https://cdn.example.com/gone.png")


async def test_fetches_storage_references(tmp_path):
    driver = get_storage_driver_from_config("local", str(tmp_path))
    await driver.upload_file("designs/front.png", b"front", content_type="image/png")

    async with source([], storage_driver=driver) as design_source:
        assert await design_source.fetch_image("designs/front.png") == b"front"

        with pytest.raises(DesignFetchError, match="not found"):
            await design_source.fetch_image("designs/missing.png")


async def test_requires_context_manager():
    with pytest.raises(DesignSourceError):
        await source([]).resolve_design_items([1001])
