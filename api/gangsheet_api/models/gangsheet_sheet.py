"""Gangsheet sheet model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from gangsheet_api.database import Base


class GangsheetSheet(Base):
    """A rendered sheet (PNG) of a completed gangsheet."""

    __tablename__ = "gangsheet_sheets"

    id = Column(Integer, primary_key=True, index=True)
    gangsheet_id = Column(Integer, ForeignKey("gangsheets.id", ondelete="CASCADE"), nullable=False, index=True)
    sheet_number = Column(Integer, nullable=False)  # 1-based
    width_px = Column(Integer, nullable=False)
    height_px = Column(Integer, nullable=False)
    design_count = Column(Integer, nullable=False, default=0)
    storage_key = Column(String(1000), nullable=False)
    file_url = Column(String(2000), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    gangsheet = relationship("Gangsheet", back_populates="sheets")

    def __repr__(self):
        return f"<GangsheetSheet(gangsheet_id={self.gangsheet_id}, sheet_number={self.sheet_number})>"
