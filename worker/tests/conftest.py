"""Pytest configuration and fixtures for the worker."""

import io
import json
from typing import Dict, List

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gangsheet_api.database import Base
from gangsheet_api.models.gangsheet import Gangsheet
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.tenant import Tenant
from gangsheet_worker.services.design_source import DesignFetchError, DesignSource, OrderNotFoundError
from gangsheet_worker.services.packing_service import DesignItem


def png_bytes(width: int = 20, height: int = 20, color=(0, 0, 255, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeDesignSource(DesignSource):
    """In-memory design source keyed by order id and image reference."""

    def __init__(self, orders: Dict[int, List[DesignItem]], images: Dict[str, bytes]):
        self.orders = orders
        self.images = images
        self.fetched: List[str] = []

    async def resolve_design_items(self, order_ids):
        items = []
        for order_id in order_ids:
            if order_id not in self.orders:
                raise OrderNotFoundError(f"Order {order_id} not found")
            items.extend(self.orders[order_id])
        return items

    async def fetch_image(self, source_image_ref):
        self.fetched.append(source_image_ref)
        if source_image_ref not in self.images:
            raise DesignFetchError(f"Design file {source_image_ref} not found in storage")
        return self.images[source_image_ref]


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so every session sees the others' commits."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'worker.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def tenant_id(session_factory, storage_root):
    """Active tenant with local storage; returns its id."""
    db = session_factory()
    try:
        tenant = Tenant(name="Acme Prints", is_active=True)
        db.add(tenant)
        db.flush()
        db.add(TenantStorageConfig(tenant_id=tenant.id, provider="local", base_path=str(storage_root)))
        db.commit()
        return tenant.id
    finally:
        db.close()


@pytest.fixture
def make_gangsheet(session_factory, tenant_id):
    """Insert a pending gangsheet and return its id."""

    def _make(order_ids, settings, name="GS_test", quantity_overrides=None, cancel_requested=False):
        db = session_factory()
        try:
            gangsheet = Gangsheet(
                tenant_id=tenant_id,
                name=name,
                status="pending",
                order_ids_json=json.dumps(order_ids),
                settings_json=json.dumps(settings),
                quantity_overrides_json=json.dumps(quantity_overrides) if quantity_overrides else None,
                cancel_requested=cancel_requested,
            )
            db.add(gangsheet)
            db.commit()
            return gangsheet.id
        finally:
            db.close()

    return _make


@pytest.fixture
def fake_source():
    """Build a FakeDesignSource and a design_source_factory returning it."""

    def _build(orders, images):
        source = FakeDesignSource(orders, images)
        return source, lambda tenant_id, storage_driver: source

    return _build


@pytest.fixture
def load_gangsheet(session_factory):
    """Fresh read of a gangsheet (None once deleted)."""

    def _load(gangsheet_id):
        db = session_factory()
        try:
            gangsheet = db.query(Gangsheet).filter(Gangsheet.id == gangsheet_id).first()
            if gangsheet is not None:
                # Touch lazy relationship while the session is open
                list(gangsheet.sheets)
                db.expunge(gangsheet)
            return gangsheet
        finally:
            db.close()

    return _load
