"""
Manifest document endpoints (invoice PDF, manifest Excel).
"""
from pathlib import Path
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from freightdesk.api.deps import get_current_user
from freightdesk.api.manifest_lists import XLSX_MEDIA_TYPE
from freightdesk.db.database import get_db
from freightdesk.models import User
from freightdesk.schemas.manifest import ExportRequest
from freightdesk.services.clock import Clock, get_clock
from freightdesk.services.export import generate_invoice_pdf, generate_manifest_excel

router = APIRouter()


def _pdf_response(file_path: str) -> FileResponse:
    return FileResponse(
        file_path,
        media_type="application/pdf",
        filename=Path(file_path).name
    )


@router.post("/pdf")
async def export_invoice_pdf(
    payload: ExportRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: User = Depends(get_current_user),
):
    """Invoice PDF covering every line of the selected manifests."""
    return _pdf_response(generate_invoice_pdf(db, payload.manifest_ids, clock))


@router.get("/pdf/{manifest_info_id}")
async def export_manifest_pdf(
    manifest_info_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: User = Depends(get_current_user),
):
    """Invoice PDF for one manifest."""
    return _pdf_response(generate_invoice_pdf(db, [manifest_info_id], clock))


@router.get("/excel/{manifest_info_id}")
async def export_manifest_excel(
    manifest_info_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Manifest workbook with header block, lines and totals."""
    file_path = generate_manifest_excel(db, manifest_info_id)
    return FileResponse(
        file_path,
        media_type=XLSX_MEDIA_TYPE,
        filename=Path(file_path).name
    )
