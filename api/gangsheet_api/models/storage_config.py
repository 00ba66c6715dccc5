"""Storage configuration model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from gangsheet_api.database import Base


class TenantStorageConfig(Base):
    """Where a tenant's design rasters live and gangsheet outputs are written."""

    __tablename__ = "tenant_storage_configs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True, unique=True)
    provider = Column(String(50), nullable=False)  # 's3', 'local'
    base_path = Column(String(500), nullable=False)
    public_base_url = Column(String(1000), nullable=True)
    credentials_encrypted = Column(Text, nullable=True)  # Fernet-encrypted JSON
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    tenant = relationship("Tenant", back_populates="storage_configs")

    def __repr__(self):
        return f"<TenantStorageConfig(id={self.id}, tenant_id={self.tenant_id}, provider={self.provider})>"
