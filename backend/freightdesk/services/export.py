"""
Export services for invoice PDFs and manifest Excel workbooks.
"""
from pathlib import Path
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy.orm import Session, selectinload
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
import time
import uuid
from xml.sax.saxutils import escape
import logging
from freightdesk.db.database import settings
from freightdesk.models import Client, ManifestInfo, ManifestList
from freightdesk.services.clock import Clock
from freightdesk.services.errors import ManifestNotFoundError
from freightdesk.services.rating_engine import find_shipping_rate, format_price, round_price

logger = logging.getLogger(__name__)

INVOICE_COLUMNS = [
    "Item", "Description", "Consignment Note", "Delivery Date", "Qty",
    "UOM", "U/ Price RM", "Disc.", "Total RM",
]
HEADER_FILL = PatternFill(start_color="F3F8FA", end_color="F3F8FA", fill_type="solid")
TOTAL_FILL = PatternFill(start_color="E9F6FF", end_color="E9F6FF", fill_type="solid")


def _export_dir() -> Path:
    export_dir = Path(settings.export_dir)
    export_dir.mkdir(parents=True, exist_ok=True)
    return export_dir


def export_path(stem: str, suffix: str) -> Path:
    """Unique file in the export directory; concurrent requests never share a file."""
    return _export_dir() / f"{stem}_{uuid.uuid4().hex[:12]}{suffix}"


def load_manifests(db: Session, manifest_ids: Sequence[int]) -> List[ManifestInfo]:
    """Load manifests with their lines in the requested order; any unknown id is an error."""
    manifests = (
        db.query(ManifestInfo)
        .options(
            selectinload(ManifestInfo.manifest_lists)
            .selectinload(ManifestList.consignor)
        )
        .filter(ManifestInfo.id.in_(list(manifest_ids)), ManifestInfo.deleted_at.is_(None))
        .all()
    )
    by_id = {manifest.id: manifest for manifest in manifests}
    for manifest_id in manifest_ids:
        if manifest_id not in by_id:
            raise ManifestNotFoundError(manifest_id)
    # Preserve order, drop repeated ids
    return [by_id[manifest_id] for manifest_id in dict.fromkeys(manifest_ids)]


def _unit_price(db: Session, line: ManifestList, cache: Dict[Tuple, Decimal]) -> Decimal:
    """Per-kg rate of the line's route, 0 when the route has no rate."""
    plan_id = line.consignor.shipping_plan_id if line.consignor else None
    key = (line.origin, line.destination, plan_id)
    if key not in cache:
        rate = find_shipping_rate(db, line.origin, line.destination, plan_id)
        cache[key] = Decimal(str(rate.additional_price_per_kg)) if rate else Decimal("0")
    return cache[key]


def build_invoice_rows(db: Session, manifests: List[ManifestInfo]) -> Tuple[List[List[str]], Decimal]:
    rows: List[List[str]] = []
    total = Decimal("0")
    price_cache: Dict[Tuple, Decimal] = {}
    item = 0
    for manifest in manifests:
        for line in manifest.manifest_lists:
            item += 1
            line_total = round_price(line.total_price)
            total += line_total
            rows.append([
                str(item),
                f"{line.origin} - {line.destination}",
                line.cn_no,
                manifest.date.strftime("%d/%m/%Y"),
                str(line.pcs),
                "KG",
                format_price(_unit_price(db, line, price_cache)),
                format_price(line.discount or 0),
                format_price(line_total),
            ])
    return rows, round_price(total)


def _consignor_names(manifests: List[ManifestInfo]) -> List[str]:
    names: Dict[int, str] = {}
    for manifest in manifests:
        for line in manifest.manifest_lists:
            consignor: Optional[Client] = line.consignor
            if consignor is not None:
                names.setdefault(consignor.id, consignor.company_name)
    return list(names.values())


def generate_invoice_pdf(db: Session, manifest_ids: Sequence[int], clock: Optional[Clock] = None) -> str:
    """
    Generate an invoice PDF covering every line of the given manifests.
    """
    start_time = time.perf_counter()
    clock = clock or Clock()
    manifests = load_manifests(db, manifest_ids)
    rows, total = build_invoice_rows(db, manifests)

    # Name from the first manifest only, a long selection must not overflow the name limit
    stem = f"invoice_{manifests[0].manifest_no}"
    if len(manifests) > 1:
        stem += f"_plus{len(manifests) - 1}"
    file_path = export_path(stem, ".pdf")
    doc = SimpleDocTemplate(str(file_path), pagesize=A4, leftMargin=0.5 * inch, rightMargin=0.5 * inch)
    story = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#4076d4'),
        spaceAfter=12,
    )
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10)

    story.append(Paragraph("INVOICE", title_style))

    bill_to = "<br/>".join(escape(name) for name in _consignor_names(manifests)) or "-"
    manifest_numbers = ", ".join(manifest.manifest_no for manifest in manifests)
    info_table = Table(
        [[
            Paragraph(f"<b>BILL TO</b><br/>{bill_to}", styles['Normal']),
            Paragraph(
                f"<b>Manifest No. :</b> {manifest_numbers}<br/>"
                f"<b>AWB No. :</b> {', '.join(manifest.awb_no for manifest in manifests)}<br/>"
                f"<b>Date :</b> {clock.today().strftime('%d/%m/%Y')}",
                styles['Normal'],
            ),
        ]],
        colWidths=[3.5 * inch, 3.5 * inch],
    )
    info_table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    story.append(info_table)
    story.append(Spacer(1, 0.3 * inch))

    table_data = [INVOICE_COLUMNS]
    table_data.extend([[Paragraph(escape(cell), cell_style) for cell in row] for row in rows])
    table_data.append(["", "", "", "", "", "", "", "Total Price:", format_price(total)])
    data_table = Table(table_data, repeatRows=1)
    data_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f8fa')),
        ('GRID', (0, 0), (-1, -2), 0.5, colors.HexColor('#dddddd')),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#e9f6ff')),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
    ]))
    story.append(data_table)
    story.append(Spacer(1, 0.3 * inch))
    story.append(Paragraph(
        "Thank you for your business! If you have any questions about this invoice, please contact us.",
        styles['Italic'],
    ))

    doc.build(story)
    duration = round(time.perf_counter() - start_time, 3)
    logger.info(
        "Invoice PDF generated for manifests %s lines=%d in %.2fs",
        manifest_numbers,
        len(rows),
        duration,
    )
    return str(file_path)


def generate_manifest_excel(db: Session, manifest_id: int) -> str:
    """
    Generate a manifest workbook with:
    - Header block (manifest no, date, AWB, route, flight)
    - Consignment lines
    - Totals row
    """
    start_time = time.perf_counter()
    manifest = load_manifests(db, [manifest_id])[0]

    wb = Workbook()
    ws = wb.active
    ws.title = "Manifest"
    bold = Font(bold=True)

    ws.append(["Manifest"])
    ws["A1"].font = Font(bold=True, size=14)
    for label, value in (
        ("Manifest No", manifest.manifest_no),
        ("Date", manifest.date.strftime("%d/%m/%Y")),
        ("AWB No", manifest.awb_no),
        ("From", manifest.origin),
        ("To", manifest.destination),
        ("Flight", manifest.flt or ""),
    ):
        ws.append([label, value])
        ws.cell(row=ws.max_row, column=1).font = bold
    ws.append([])

    headers = [
        "No", "CN No", "Consignor", "Consignee", "Origin", "Destination",
        "Pcs", "Kg", "Gram", "Discount %", "Total RM", "Remarks", "Delivery Date",
    ]
    ws.append(headers)
    header_row = ws.max_row
    for cell in ws[header_row]:
        cell.font = bold
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    total_pcs = 0
    total = Decimal("0")
    for index, line in enumerate(manifest.manifest_lists, start=1):
        line_total = round_price(line.total_price)
        total += line_total
        total_pcs += line.pcs
        ws.append([
            index,
            line.cn_no,
            line.consignor.company_name if line.consignor else "",
            line.consignee_name,
            line.origin,
            line.destination,
            line.pcs,
            line.kg,
            line.gram,
            float(line.discount) if line.discount is not None else "",
            float(line_total),
            line.remarks or "",
            line.delivery_date.strftime("%d/%m/%Y") if line.delivery_date else "",
        ])

    ws.append(["Total", "", "", "", "", "", total_pcs, "", "", "", float(round_price(total)), "", ""])
    for cell in ws[ws.max_row]:
        cell.font = bold
        cell.fill = TOTAL_FILL

    for column, width in zip("ABCDEFGHIJKLM", (6, 14, 24, 24, 10, 12, 6, 6, 6, 11, 12, 24, 14)):
        ws.column_dimensions[column].width = width

    file_path = export_path(f"manifest_{manifest.manifest_no}", ".xlsx")
    wb.save(file_path)
    duration = round(time.perf_counter() - start_time, 3)
    logger.info(
        "Manifest workbook generated for %s lines=%d in %.2fs",
        manifest.manifest_no,
        len(manifest.manifest_lists),
        duration,
    )
    return str(file_path)
