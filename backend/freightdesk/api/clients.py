"""
Client and shipping plan API endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from freightdesk.api.deps import get_current_user, require_admin
from freightdesk.db.database import get_db
from freightdesk.models import Client, ManifestInfo, ManifestList, ShippingPlan, User
from freightdesk.schemas.client import ClientCreate, ClientResponse, ClientUpdate
from freightdesk.schemas.manifest import ManifestLineResponse
from freightdesk.schemas.shipping_rate import ShippingPlanCreate, ShippingPlanResponse

router = APIRouter()
plans_router = APIRouter()


def _ensure_plan(db: Session, shipping_plan_id):
    if shipping_plan_id is None:
        return
    if not db.query(ShippingPlan).filter(ShippingPlan.id == shipping_plan_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping plan {shipping_plan_id} not found"
        )


def _get_client_or_404(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {client_id} not found"
        )
    return client


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Create a new client."""
    # Check if client with same company name exists
    existing = db.query(Client).filter(Client.company_name == client_data.company_name).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Client with company name '{client_data.company_name}' already exists"
        )
    _ensure_plan(db, client_data.shipping_plan_id)

    client = Client(
        company_name=client_data.company_name,
        role=client_data.role,
        shipping_plan_id=client_data.shipping_plan_id,
        contact_name=client_data.contact_name,
        contact_phone=client_data.contact_phone,
    )
    db.add(client)
    db.commit()
    db.refresh(client)

    return client


@router.get("/", response_model=List[ClientResponse])
async def list_clients(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """List all clients."""
    clients = db.query(Client).order_by(Client.company_name).all()
    return clients


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Get a specific client."""
    return _get_client_or_404(db, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    client_data: ClientUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Update a client's details or shipping plan."""
    client = _get_client_or_404(db, client_id)
    changes = client_data.model_dump(exclude_unset=True)
    if "shipping_plan_id" in changes:
        _ensure_plan(db, changes["shipping_plan_id"])
    if changes.get("company_name") and changes["company_name"] != client.company_name:
        taken = db.query(Client).filter(Client.company_name == changes["company_name"]).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Client with company name '{changes['company_name']}' already exists"
            )
    for key, value in changes.items():
        if value is None and key in ("company_name", "role"):
            continue
        setattr(client, key, value)
    db.commit()
    db.refresh(client)
    return client


@router.get("/{client_id}/cn-numbers", response_model=List[ManifestLineResponse])
async def get_cn_numbers(
    client_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """List the consignment lines shipped by a client."""
    _get_client_or_404(db, client_id)
    lines = (
        db.query(ManifestList)
        .join(ManifestInfo)
        .filter(ManifestList.consignor_id == client_id, ManifestInfo.deleted_at.is_(None))
        .order_by(ManifestList.id)
        .all()
    )
    return lines


@plans_router.get("/", response_model=List[ShippingPlanResponse])
async def list_shipping_plans(
    db: Session = Depends(get_db)
):
    """List shipping plans."""
    return db.query(ShippingPlan).order_by(ShippingPlan.name).all()


@plans_router.post("/", response_model=ShippingPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_shipping_plan(
    plan_data: ShippingPlanCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Create a shipping plan."""
    if db.query(ShippingPlan).filter(ShippingPlan.name == plan_data.name).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping plan '{plan_data.name}' already exists"
        )
    plan = ShippingPlan(name=plan_data.name, description=plan_data.description)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan
