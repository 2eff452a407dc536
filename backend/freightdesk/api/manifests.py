"""
Manifest API endpoints.
"""
from datetime import date
from typing import List, Optional
import logging
import traceback
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import distinct
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from freightdesk.api.deps import get_current_user
from freightdesk.db.database import get_db
from freightdesk.models import Client, ClientRole, ShippingRate, User
from freightdesk.schemas.client import CompanyOption
from freightdesk.schemas.manifest import (
    EstimateRequest,
    EstimateResponse,
    FormDataResponse,
    ManifestAppendRequest,
    ManifestBatchRequest,
    ManifestBatchResponse,
    ManifestDetailResponse,
    ManifestInfoResponse,
    ManifestInfoUpdate,
    ManifestLineResponse,
)
from freightdesk.services.clock import Clock, get_clock
from freightdesk.services.manifest_service import (
    BatchResult,
    cn_no_exists,
    create_or_append_manifest,
    delete_manifest,
    get_manifest_info,
    list_manifests,
    update_manifest_info,
)
from freightdesk.services.rating_engine import (
    calculate_price_for_client,
    combine_weight,
    format_price,
    split_weight,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def database_error(db: Session, action: str, error: SQLAlchemyError) -> HTTPException:
    """Roll back, log and build the 500 response for a storage failure."""
    db.rollback()
    logger.error(f"Database error while {action}: {str(error)}")
    logger.error(f"Traceback: {traceback.format_exc()}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Database error: {str(error)}"
    )


def _batch_response(result: BatchResult) -> ManifestBatchResponse:
    return ManifestBatchResponse(
        message="Manifest created successfully" if result.created else "Manifest updated successfully",
        manifest_info=ManifestInfoResponse.model_validate(result.manifest_info),
        manifest_lists=[ManifestLineResponse.model_validate(line) for line in result.lines],
        warnings=result.warnings,
    )


@router.get("/form-data", response_model=FormDataResponse)
async def get_form_data(
    db: Session = Depends(get_db)
):
    """Companies and route options for the manifest entry form."""
    companies = (
        db.query(Client)
        .filter(Client.role != ClientRole.ADMIN)
        .order_by(Client.company_name)
        .all()
    )
    origins = db.query(distinct(ShippingRate.origin)).order_by(ShippingRate.origin).all()
    destinations = db.query(distinct(ShippingRate.destination)).order_by(ShippingRate.destination).all()
    return FormDataResponse(
        companies=[CompanyOption.model_validate(company) for company in companies],
        origins=[row[0] for row in origins],
        destinations=[row[0] for row in destinations],
    )


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_price(
    payload: EstimateRequest,
    db: Session = Depends(get_db)
):
    """
    Price a consignment before it is saved.

    A CN No already on file would be stored at 0, so the estimate is 0 too.
    """
    if cn_no_exists(db, payload.cn_no):
        return EstimateResponse(
            estimated_total_price=format_price(0),
            message=f"CN No: {payload.cn_no} already exists, total price set to 0.",
        )
    price = calculate_price_for_client(
        db,
        payload.origin,
        payload.destination,
        combine_weight(*split_weight(payload.kg)),
        payload.consignor_id,
        payload.discount,
    )
    return EstimateResponse(estimated_total_price=format_price(price))


@router.post("/", response_model=ManifestBatchResponse, status_code=status.HTTP_201_CREATED)
async def create_manifest(
    payload: ManifestBatchRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """
    Create a manifest with its consignment lines.

    With manifest_info_id the lines are appended to that manifest instead and
    priced from the rate tables.
    """
    try:
        result = create_or_append_manifest(
            db,
            payload.manifest_lists,
            header=None if payload.manifest_info_id is not None else payload.header(),
            manifest_info_id=payload.manifest_info_id,
            user_id=current_user.id,
            clock=clock,
        )
    except SQLAlchemyError as e:
        raise database_error(db, "saving manifest", e)
    return _batch_response(result)


@router.post("/{manifest_info_id}/lists", response_model=ManifestBatchResponse, status_code=status.HTTP_201_CREATED)
async def append_manifest_lines(
    manifest_info_id: int,
    payload: ManifestAppendRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """Append consignment lines to an existing manifest."""
    try:
        result = create_or_append_manifest(
            db,
            payload.manifest_lists,
            manifest_info_id=manifest_info_id,
            user_id=current_user.id,
            clock=clock,
        )
    except SQLAlchemyError as e:
        raise database_error(db, f"appending to manifest {manifest_info_id}", e)
    return _batch_response(result)


@router.get("/", response_model=List[ManifestDetailResponse])
async def get_manifests(
    consignor_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """List manifests, newest first."""
    manifests = list_manifests(db, consignor_id, start_date, end_date)
    return [ManifestDetailResponse.model_validate(manifest) for manifest in manifests]


@router.get("/{manifest_info_id}", response_model=ManifestDetailResponse)
async def get_manifest(
    manifest_info_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Get a manifest with its consignment lines."""
    manifest_info = get_manifest_info(db, manifest_info_id, with_lines=True)
    return ManifestDetailResponse.model_validate(manifest_info)


@router.put("/{manifest_info_id}", response_model=ManifestInfoResponse)
async def update_manifest(
    manifest_info_id: int,
    payload: ManifestInfoUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Update manifest header fields. The manifest number never changes."""
    try:
        manifest_info = update_manifest_info(db, manifest_info_id, payload.model_dump(exclude_unset=True))
    except SQLAlchemyError as e:
        raise database_error(db, f"updating manifest {manifest_info_id}", e)
    return ManifestInfoResponse.model_validate(manifest_info)


@router.delete("/{manifest_info_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_manifest(
    manifest_info_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: User = Depends(get_current_user),
):
    """Soft delete a manifest."""
    try:
        delete_manifest(db, manifest_info_id, clock)
    except SQLAlchemyError as e:
        raise database_error(db, f"deleting manifest {manifest_info_id}", e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
