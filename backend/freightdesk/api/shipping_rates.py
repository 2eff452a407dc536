"""
Shipping rate table and price calculation API endpoints.
"""
import logging
from pathlib import Path
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File as FastAPIFile
from sqlalchemy import distinct
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from freightdesk.api.deps import require_admin
from freightdesk.db.database import get_db, settings
from freightdesk.models import ShippingPlan, ShippingRate, User
from freightdesk.schemas.shipping_rate import (
    RateImportResponse,
    ShippingCalculationRequest,
    ShippingCalculationResponse,
    ShippingRateCreate,
    ShippingRateResponse,
    ShippingRateUpdate,
)
from freightdesk.services.rate_ingestion import infer_file_type, ingest_rate_sheet
from freightdesk.services.rating_engine import (
    calculate_price_for_client,
    combine_weight,
    format_price,
    round_price,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_rate_or_404(db: Session, rate_id: int) -> ShippingRate:
    rate = db.query(ShippingRate).filter(ShippingRate.id == rate_id).first()
    if not rate:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Shipping rate {rate_id} not found"
        )
    return rate


def _ensure_unique_route(db: Session, origin: str, destination: str, plan_id: Optional[int], exclude_id: Optional[int] = None):
    query = db.query(ShippingRate).filter(
        ShippingRate.origin == origin,
        ShippingRate.destination == destination,
    )
    if plan_id is None:
        query = query.filter(ShippingRate.shipping_plan_id.is_(None))
    else:
        query = query.filter(ShippingRate.shipping_plan_id == plan_id)
    if exclude_id is not None:
        query = query.filter(ShippingRate.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping rate for {origin} -> {destination} already exists for this plan"
        )


def _ensure_plan(db: Session, plan_id: Optional[int]):
    if plan_id is not None and not db.query(ShippingPlan).filter(ShippingPlan.id == plan_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping plan {plan_id} not found"
        )


@router.get("/shipping_rates", response_model=List[ShippingRateResponse])
async def list_shipping_rates(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    shipping_plan_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """List shipping rates, optionally filtered."""
    query = db.query(ShippingRate)
    if origin:
        query = query.filter(ShippingRate.origin == origin.strip().upper())
    if destination:
        query = query.filter(ShippingRate.destination == destination.strip().upper())
    if shipping_plan_id is not None:
        query = query.filter(ShippingRate.shipping_plan_id == shipping_plan_id)
    return query.order_by(ShippingRate.origin, ShippingRate.destination, ShippingRate.id).all()


@router.post("/shipping_rates", response_model=ShippingRateResponse, status_code=status.HTTP_201_CREATED)
async def create_shipping_rate(
    rate_data: ShippingRateCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Create a shipping rate for a route."""
    _ensure_plan(db, rate_data.shipping_plan_id)
    _ensure_unique_route(db, rate_data.origin, rate_data.destination, rate_data.shipping_plan_id)

    rate = ShippingRate(**rate_data.model_dump())
    db.add(rate)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping rate for {rate_data.origin} -> {rate_data.destination} already exists for this plan"
        )
    db.refresh(rate)
    logger.info("Created shipping rate %s -> %s (plan %s)", rate.origin, rate.destination, rate.shipping_plan_id)
    return rate


@router.put("/shipping_rates/{rate_id}", response_model=ShippingRateResponse)
async def update_shipping_rate(
    rate_id: int,
    rate_data: ShippingRateUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Update a shipping rate."""
    rate = _get_rate_or_404(db, rate_id)
    changes = rate_data.model_dump(exclude_unset=True)
    if "shipping_plan_id" in changes:
        _ensure_plan(db, changes["shipping_plan_id"])
    _ensure_unique_route(
        db,
        changes.get("origin") or rate.origin,
        changes.get("destination") or rate.destination,
        changes["shipping_plan_id"] if "shipping_plan_id" in changes else rate.shipping_plan_id,
        exclude_id=rate.id,
    )
    for key, value in changes.items():
        if value is None and key != "shipping_plan_id":
            continue
        setattr(rate, key, value)
    db.commit()
    db.refresh(rate)
    return rate


@router.delete("/shipping_rates/{rate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shipping_rate(
    rate_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Delete a shipping rate."""
    rate = _get_rate_or_404(db, rate_id)
    db.delete(rate)
    db.commit()


@router.post("/shipping_rates/import", response_model=RateImportResponse, status_code=status.HTTP_201_CREATED)
async def import_shipping_rates(
    shipping_plan_id: Optional[int] = None,
    file: UploadFile = FastAPIFile(...),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    Import a rate sheet (xlsx or csv).

    Rows upsert by origin, destination and plan.
    """
    file_type = infer_file_type(file.filename or "")
    if file_type not in ("xlsx", "csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {file_type or 'unknown'}. Upload .xlsx or .csv"
        )
    _ensure_plan(db, shipping_plan_id)

    # Save uploaded file temporarily
    upload_dir = Path(settings.upload_dir) / "rates"
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / Path(file.filename).name
    with open(file_path, "wb") as buffer:
        content = await file.read()
        buffer.write(content)

    try:
        result = ingest_rate_sheet(str(file_path), db, shipping_plan_id)
        return RateImportResponse(message=f"Rate sheet {file.filename} imported", **result)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.exception("Error importing rate sheet %s", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error importing rate sheet: {str(e)}"
        )
    finally:
        # Clean up temp file
        if file_path.exists():
            file_path.unlink()


@router.get("/shipping-rates/origins", response_model=List[str])
async def list_origins(
    db: Session = Depends(get_db)
):
    """Distinct origins in the rate tables."""
    rows = db.query(distinct(ShippingRate.origin)).order_by(ShippingRate.origin).all()
    return [row[0] for row in rows]


@router.get("/shipping-rates/destinations", response_model=List[str])
async def list_destinations(
    db: Session = Depends(get_db)
):
    """Distinct destinations in the rate tables."""
    rows = db.query(distinct(ShippingRate.destination)).order_by(ShippingRate.destination).all()
    return [row[0] for row in rows]


@router.post("/calculate_shipping", response_model=ShippingCalculationResponse)
async def calculate_shipping(
    payload: ShippingCalculationRequest,
    db: Session = Depends(get_db)
):
    """Price a shipment for a route, optionally on a client's shipping plan."""
    if payload.weight is not None:
        weight = payload.weight
    else:
        weight = combine_weight(payload.kg, payload.gram or 0)

    base_price = calculate_price_for_client(
        db, payload.origin, payload.destination, weight, payload.client_id
    )
    total_price = calculate_price_for_client(
        db, payload.origin, payload.destination, weight, payload.client_id, payload.discount
    )
    return ShippingCalculationResponse(
        origin=payload.origin,
        destination=payload.destination,
        weight=str(weight),
        price=format_price(base_price),
        discount=format_price(payload.discount),
        total_price=format_price(round_price(total_price)),
    )
