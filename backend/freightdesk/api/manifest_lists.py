"""
Consignment line API endpoints: edits, delivery confirmation and statements.
"""
from datetime import date
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.responses import FileResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from freightdesk.api.deps import get_current_user
from freightdesk.api.manifests import database_error
from freightdesk.db.database import get_db
from freightdesk.models import User
from freightdesk.schemas.manifest import (
    ConfirmShipmentRequest,
    ConfirmShipmentResponse,
    ManifestLineResponse,
    ManifestLineUpdate,
    ManifestLineUpdateResponse,
    StatementResponse,
)
from freightdesk.services.clock import Clock, get_clock
from freightdesk.services.manifest_service import (
    confirm_shipment,
    delete_manifest_line,
    update_manifest_line,
)
from freightdesk.services.rating_engine import get_consignor
from freightdesk.services.statement import build_statement, generate_statement_excel

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/statement", response_model=StatementResponse)
async def get_statement(
    consignor_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Billable lines of a consignor, optionally within a creation date range."""
    get_consignor(db, consignor_id)
    return build_statement(db, consignor_id, start_date, end_date)


@router.get("/statement/excel")
async def download_statement(
    consignor_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Download a consignor statement as xlsx."""
    get_consignor(db, consignor_id)
    file_path = generate_statement_excel(db, consignor_id, start_date, end_date)
    return FileResponse(
        file_path,
        media_type=XLSX_MEDIA_TYPE,
        filename=Path(file_path).name
    )


@router.put("/{line_id}", response_model=ManifestLineUpdateResponse)
async def update_line(
    line_id: int,
    payload: ManifestLineUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Edit a consignment line; price-relevant changes re-price it."""
    try:
        line, warnings = update_manifest_line(db, line_id, payload.model_dump(exclude_unset=True))
    except SQLAlchemyError as e:
        raise database_error(db, f"updating manifest list {line_id}", e)
    return ManifestLineUpdateResponse(
        manifest_list=ManifestLineResponse.model_validate(line),
        warnings=warnings,
    )


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(
    line_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Remove a consignment line."""
    try:
        delete_manifest_line(db, line_id)
    except SQLAlchemyError as e:
        raise database_error(db, f"deleting manifest list {line_id}", e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{line_id}/confirm", response_model=ConfirmShipmentResponse)
async def confirm_line(
    line_id: int,
    payload: Optional[ConfirmShipmentRequest] = Body(None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: User = Depends(get_current_user),
):
    """Mark a consignment delivered, on the given date or today."""
    delivery_date = payload.delivery_date if payload else None
    try:
        line = confirm_shipment(db, line_id, delivery_date, clock)
    except SQLAlchemyError as e:
        raise database_error(db, f"confirming manifest list {line_id}", e)
    return ConfirmShipmentResponse(
        message="Shipment confirmed",
        manifest_list=ManifestLineResponse.model_validate(line),
    )
