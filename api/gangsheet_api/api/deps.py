"""API dependencies."""

from typing import Optional

from fastapi import Header, HTTPException, status

from gangsheet_api.database import get_db

__all__ = ["get_db", "get_tenant_id"]


def get_tenant_id(x_tenant_id: Optional[int] = Header(None)) -> int:
    """Get tenant ID from the X-Tenant-ID header."""
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return x_tenant_id
