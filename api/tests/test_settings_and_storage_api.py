"""Tenant settings and storage configuration endpoint tests."""

from gangsheet_api.models.gangsheet import Gangsheet
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.tenant import Tenant
from gangsheet_api.storage.encryption import decrypt_credentials

SETTINGS = {
    "roll_width_in": 24,
    "roll_height_in": 100,
    "dpi": 150,
    "gap_in": 0.25,
    "border": False,
    "border_size_in": 0,
    "border_color": "#00ff00",
    "auto_arrange": False,
    "max_designs_per_sheet": 20,
    "background_color": "white",
}


def test_builtin_defaults_when_tenant_has_none(client_with_db, tenant_headers):
    response = client_with_db.get("/v1/gangsheet-settings", headers=tenant_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["is_default"] is True
    assert data["roll_width_in"] == 22.0
    assert data["roll_height_in"] == 60.0
    assert data["dpi"] == 300
    assert data["gap_in"] == 0.3
    assert data["border"] is True
    assert data["border_size_in"] == 0.1
    assert data["border_color"] == "red"
    assert data["background_color"] is None


def test_saved_defaults_apply_to_new_gangsheets(client_with_db, tenant_headers, sent_tasks, test_db):
    response = client_with_db.put("/v1/gangsheet-settings", json=SETTINGS, headers=tenant_headers)
    assert response.status_code == 200
    assert response.json()["is_default"] is False

    response = client_with_db.get("/v1/gangsheet-settings", headers=tenant_headers)
    assert response.json()["dpi"] == 150
    assert response.json()["max_designs_per_sheet"] == 20

    response = client_with_db.post(
        "/v1/gangsheets",
        json={"order_ids": [7], "settings": {"dpi": 200}},
        headers=tenant_headers,
    )
    gangsheet = test_db.query(Gangsheet).filter(Gangsheet.id == response.json()["id"]).one()
    assert gangsheet.settings["roll_width_in"] == 24.0
    assert gangsheet.settings["dpi"] == 200
    assert gangsheet.settings["background_color"] == "white"


def test_invalid_defaults_are_rejected(client_with_db, tenant_headers):
    response = client_with_db.put(
        "/v1/gangsheet-settings",
        json={**SETTINGS, "roll_width_in": 0},
        headers=tenant_headers,
    )
    assert response.status_code == 422


def test_storage_config_encrypts_credentials(client_with_db, test_db):
    tenant = Tenant(name="S3 Shop", is_active=True)
    test_db.add(tenant)
    test_db.commit()
    headers = {"X-Tenant-ID": str(tenant.id)}

    response = client_with_db.post(
        "/v1/storage-configs/",
        json={
            "provider": "s3",
            "base_path": "prints",
            "public_base_url": "https://cdn.example.com",
            "credentials": {
                "aws_access_key_id": "AKIAEXAMPLE",
                "aws_secret_access_key": "secret",
                "bucket_name": "gangsheets",
            },
        },
        headers=headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert "credentials" not in data
    assert "credentials_encrypted" not in data
    assert data["public_base_url"] == "https://cdn.example.com"

    config = test_db.query(TenantStorageConfig).filter(TenantStorageConfig.tenant_id == tenant.id).one()
    assert "secret" not in config.credentials_encrypted
    assert decrypt_credentials(config.credentials_encrypted)["bucket_name"] == "gangsheets"


def test_storage_config_rejects_unknown_provider(client_with_db, test_db):
    tenant = Tenant(name="Dropbox Shop", is_active=True)
    test_db.add(tenant)
    test_db.commit()

    response = client_with_db.post(
        "/v1/storage-configs/",
        json={"provider": "dropbox", "base_path": "/x"},
        headers={"X-Tenant-ID": str(tenant.id)},
    )
    assert response.status_code == 422


def test_local_storage_connection_check(client_with_db, tenant_headers):
    response = client_with_db.post("/v1/storage-configs/test", headers=tenant_headers)

    assert response.status_code == 200
    assert response.json() == {"connected": True}


def test_create_and_list_tenants(client_with_db):
    response = client_with_db.post("/v1/tenants/", json={"name": "New Shop"})
    assert response.status_code == 201

    response = client_with_db.post("/v1/tenants/", json={"name": "New Shop"})
    assert response.status_code == 400

    response = client_with_db.get("/v1/tenants/")
    assert [t["name"] for t in response.json()] == ["New Shop"]


def test_tenant_reports_gangsheet_readiness(client_with_db, tenant, tenant_headers):
    response = client_with_db.get(f"/v1/tenants/{tenant.id}")
    assert response.json()["storage_configured"] is True
    assert response.json()["custom_gangsheet_settings"] is False

    client_with_db.put("/v1/gangsheet-settings", json=SETTINGS, headers=tenant_headers)

    response = client_with_db.get(f"/v1/tenants/{tenant.id}")
    assert response.json()["custom_gangsheet_settings"] is True


def test_deactivated_tenant_is_hidden_from_list(client_with_db, tenant):
    response = client_with_db.patch(f"/v1/tenants/{tenant.id}", json={"is_active": False})
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert client_with_db.get("/v1/tenants/").json() == []
    listed = client_with_db.get("/v1/tenants/", params={"include_inactive": True, "search": "acme"}).json()
    assert [t["name"] for t in listed] == ["Acme Prints"]
