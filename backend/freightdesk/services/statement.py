"""
Consignor statements - billable consignment lines over a date range.
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

import pandas as pd
from sqlalchemy.orm import Session

from freightdesk.models import ManifestInfo, ManifestList
from freightdesk.services.export import export_path
from freightdesk.services.rating_engine import round_price

logger = logging.getLogger(__name__)


def build_statement(
    db: Session,
    consignor_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Collect a consignor's lines for invoicing.

    The date range filters on line creation and covers whole days; it only
    applies when both ends are given.
    """
    query = (
        db.query(ManifestList)
        .join(ManifestInfo)
        .filter(
            ManifestList.consignor_id == consignor_id,
            ManifestInfo.deleted_at.is_(None),
        )
    )
    if start_date and end_date:
        query = query.filter(
            ManifestList.created_at >= datetime.combine(start_date, time.min),
            ManifestList.created_at <= datetime.combine(end_date, time.max),
        )

    rows: List[Dict[str, Any]] = []
    total = Decimal("0")
    for line in query.order_by(ManifestList.created_at, ManifestList.id).all():
        price = round_price(line.total_price)
        total += price
        rows.append({
            "description": f"DCN {line.origin}-{line.destination}",
            "consignment_note": line.cn_no,
            "delivery_date": line.created_at.strftime("%d-%m-%Y") if line.created_at else "",
            "qty": line.pcs,
            "total_rm": price,
        })

    return {"data": rows, "total_price": round_price(total)}


def generate_statement_excel(
    db: Session,
    consignor_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> str:
    """Write a consignor statement to an xlsx file and return its path."""
    statement = build_statement(db, consignor_id, start_date, end_date)
    file_path = export_path(f"statement_{consignor_id}", ".xlsx")

    frame = pd.DataFrame(
        [
            {
                "Description": row["description"],
                "Consignment Note": row["consignment_note"],
                "Delivery Date": row["delivery_date"],
                "Qty": row["qty"],
                "Total RM": float(row["total_rm"]),
            }
            for row in statement["data"]
        ],
        columns=["Description", "Consignment Note", "Delivery Date", "Qty", "Total RM"],
    )
    with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="Statement", index=False)
        pd.DataFrame(
            {"Metric": ["Total RM"], "Value": [float(statement["total_price"])]}
        ).to_excel(writer, sheet_name="Summary", index=False)

    logger.info("Statement for consignor %s written with %d line(s)", consignor_id, len(statement["data"]))
    return str(file_path)
