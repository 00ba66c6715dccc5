"""Tenant model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from gangsheet_api.database import Base


class Tenant(Base):
    """Print shop owning gangsheets, storage and sheet defaults."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    storage_configs = relationship("TenantStorageConfig", back_populates="tenant", cascade="all, delete-orphan")
    gangsheet_settings = relationship(
        "TenantGangsheetSettings",
        back_populates="tenant",
        cascade="all, delete-orphan",
        uselist=False,
    )
    gangsheets = relationship("Gangsheet", back_populates="tenant", cascade="all, delete-orphan")

    @property
    def storage_configured(self) -> bool:
        return bool(self.storage_configs)

    @property
    def custom_gangsheet_settings(self) -> bool:
        return self.gangsheet_settings is not None

    def __repr__(self):
        return f"<Tenant(id={self.id}, name={self.name})>"
