"""Gangsheet model."""

import json
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from gangsheet_api.database import Base


class Gangsheet(Base):
    """One gangsheet generation job and its outcome."""

    __tablename__ = "gangsheets"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False, default="pending", index=True)
    # Status: pending, processing, completed, failed
    stage = Column(String(50), nullable=True)
    # Stage while processing: fetching_designs, calculating, generating, uploading
    order_ids_json = Column(Text, nullable=False)
    settings_json = Column(Text, nullable=False)  # Snapshot taken at submission
    quantity_overrides_json = Column(Text, nullable=True)
    sheet_count = Column(Integer, nullable=False, default=0)
    total_designs = Column(Integer, nullable=False, default=0)
    processed_designs = Column(Integer, nullable=False, default=0)
    download_url = Column(String(2000), nullable=True)
    archive_key = Column(String(1000), nullable=True)
    error_message = Column(Text, nullable=True)
    cancel_requested = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="gangsheets")
    sheets = relationship(
        "GangsheetSheet",
        back_populates="gangsheet",
        cascade="all, delete-orphan",
        order_by="GangsheetSheet.sheet_number",
    )

    @property
    def order_ids(self) -> list:
        return json.loads(self.order_ids_json) if self.order_ids_json else []

    @property
    def settings(self) -> dict:
        return json.loads(self.settings_json) if self.settings_json else {}

    @property
    def quantity_overrides(self) -> dict:
        return json.loads(self.quantity_overrides_json) if self.quantity_overrides_json else {}

    def __repr__(self):
        return f"<Gangsheet(id={self.id}, status={self.status}, tenant_id={self.tenant_id})>"
