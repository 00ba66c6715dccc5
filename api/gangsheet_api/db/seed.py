"""Database seeding script."""

from gangsheet_api.config import settings
from gangsheet_api.database import SessionLocal
from gangsheet_api.models.gangsheet_settings import TenantGangsheetSettings
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.tenant import Tenant


def seed_database():
    """Create a demo tenant with local storage and default sheet settings."""
    db = SessionLocal()

    try:
        if db.query(Tenant).filter_by(name="Demo Tenant").first():
            print("Database already seeded. Skipping.")
            return

        tenant = Tenant(name="Demo Tenant", is_active=True)
        db.add(tenant)
        db.flush()
        print(f"Created tenant: {tenant.name} (ID: {tenant.id})")

        storage_config = TenantStorageConfig(
            tenant_id=tenant.id,
            provider="local",
            base_path=f"/tmp/gangsheets/tenant-{tenant.id}",
            credentials_encrypted=None,
        )
        db.add(storage_config)
        print(f"Created storage config: {storage_config.provider} at {storage_config.base_path}")

        sheet_settings = TenantGangsheetSettings(tenant_id=tenant.id, **settings.default_sheet_settings())
        db.add(sheet_settings)
        print(
            f"Created sheet settings: {sheet_settings.roll_width_in}x{sheet_settings.roll_height_in}in "
            f"@ {sheet_settings.dpi} dpi"
        )

        db.commit()
        print("\nDatabase seeded successfully!")

    except Exception as e:
        db.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("Starting database seeding...")
    seed_database()
