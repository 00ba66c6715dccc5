"""Tenant endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from gangsheet_api.api.deps import get_db
from gangsheet_api.models.tenant import Tenant
from gangsheet_api.schemas.tenant import TenantCreate, TenantResponse, TenantUpdate

router = APIRouter()


def _tenant_or_404(db: Session, tenant_id: int) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Tenant {tenant_id} not found")
    return tenant


def _ensure_unique_name(db: Session, name: str, tenant_id: Optional[int] = None) -> None:
    query = db.query(Tenant).filter(Tenant.name == name)
    if tenant_id is not None:
        query = query.filter(Tenant.id != tenant_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Tenant with name '{name}' already exists",
        )


@router.get("/", response_model=List[TenantResponse])
def list_tenants(
    include_inactive: bool = False,
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    db: Session = Depends(get_db),
):
    """
    List print shops.

    - **include_inactive**: Include deactivated tenants
    - **search**: Only tenants whose name contains this text
    """
    query = db.query(Tenant)
    if not include_inactive:
        query = query.filter(Tenant.is_active.is_(True))
    if search:
        query = query.filter(Tenant.name.ilike(f"%{search}%"))
    return query.order_by(Tenant.name).all()


@router.post("/", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(tenant_data: TenantCreate, db: Session = Depends(get_db)):
    """Register a print shop; configure storage before submitting gangsheets."""
    _ensure_unique_name(db, tenant_data.name)

    tenant = Tenant(name=tenant_data.name, is_active=True)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant(tenant_id: int, db: Session = Depends(get_db)):
    return _tenant_or_404(db, tenant_id)


@router.patch("/{tenant_id}", response_model=TenantResponse)
def update_tenant(tenant_id: int, tenant_data: TenantUpdate, db: Session = Depends(get_db)):
    """Rename or (de)activate a tenant. Running gangsheets are not affected."""
    tenant = _tenant_or_404(db, tenant_id)
    changes = tenant_data.model_dump(exclude_unset=True, exclude_none=True)

    if "name" in changes:
        _ensure_unique_name(db, changes["name"], tenant_id)

    for field, value in changes.items():
        setattr(tenant, field, value)

    db.commit()
    db.refresh(tenant)
    return tenant
