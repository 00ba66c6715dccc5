"""Tenant default gangsheet settings model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from gangsheet_api.database import Base


class TenantGangsheetSettings(Base):
    """Default sheet settings applied to a tenant's new gangsheets."""

    __tablename__ = "tenant_gangsheet_settings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    roll_width_in = Column(Float, nullable=False)
    roll_height_in = Column(Float, nullable=False)
    dpi = Column(Integer, nullable=False)
    gap_in = Column(Float, nullable=False)
    border = Column(Boolean, nullable=False, default=True)
    border_size_in = Column(Float, nullable=False)
    border_color = Column(String(50), nullable=False)
    auto_arrange = Column(Boolean, nullable=False, default=True)
    max_designs_per_sheet = Column(Integer, nullable=True)
    background_color = Column(String(50), nullable=True)  # NULL = transparent
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    tenant = relationship("Tenant", back_populates="gangsheet_settings")

    def __repr__(self):
        return f"<TenantGangsheetSettings(tenant_id={self.tenant_id}, {self.roll_width_in}x{self.roll_height_in}in)>"
