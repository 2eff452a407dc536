"""
Rate sheet ingestion - parses xlsx/csv rate tables into shipping_rates.
"""
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import time

import pandas as pd
from sqlalchemy.orm import Session

from freightdesk.config.mapping_loader import resolve_rate_columns
from freightdesk.models import ShippingPlan, ShippingRate
from freightdesk.models.shipping_rate import normalize_location

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("origin", "destination", "minimum_weight", "minimum_price", "additional_price_per_kg")


def infer_file_type(filename: str) -> str:
    """Infer file type from extension."""
    ext = Path(filename).suffix.lower()
    if ext == ".xlsx" or ext == ".xls":
        return "xlsx"
    elif ext == ".csv":
        return "csv"
    else:
        return ext.lstrip(".")


def read_rate_sheet(file_path: str, file_type: str) -> pd.DataFrame:
    """Read a rate sheet into a DataFrame, combining every non-empty Excel sheet."""
    if file_type == "xlsx":
        excel_file = pd.ExcelFile(file_path)
        dataframes = []
        for sheet_name in excel_file.sheet_names:
            df = pd.read_excel(excel_file, sheet_name=sheet_name)
            if not df.empty:
                dataframes.append(df)
        if dataframes:
            return pd.concat(dataframes, ignore_index=True)
        raise ValueError("No data found in Excel file")
    elif file_type == "csv":
        for encoding in ["utf-8", "latin-1", "cp1252"]:
            try:
                return pd.read_csv(file_path, encoding=encoding)
            except UnicodeDecodeError:
                continue
        raise ValueError("Could not decode CSV file")
    else:
        raise ValueError(f"Unsupported file type: {file_type}")


def _cell_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except TypeError:
        pass
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount >= 0 else None


def _cell_text(value) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except TypeError:
        pass
    text = str(value).strip()
    return text or None


def _resolve_plan(db: Session, name: Optional[str], cache: Dict[str, ShippingPlan]) -> Optional[ShippingPlan]:
    if not name:
        return None
    key = name.strip()
    if key in cache:
        return cache[key]
    plan = db.query(ShippingPlan).filter(ShippingPlan.name == key).first()
    if not plan:
        plan = ShippingPlan(name=key)
        db.add(plan)
        db.flush()
    cache[key] = plan
    return plan


def ingest_rate_sheet(
    file_path: str,
    db: Session,
    shipping_plan_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Upsert shipping rates from a rate sheet.

    Rows are keyed by (origin, destination, plan). A plan column in the sheet
    names the plan per row; otherwise every row goes to shipping_plan_id
    (or the default table when that is None).

    Returns:
        created / updated / skipped counts and per-row error messages
    """
    start_time = time.perf_counter()
    df = read_rate_sheet(file_path, infer_file_type(file_path))
    df.columns = [str(column).strip() for column in df.columns]
    columns = resolve_rate_columns(list(df.columns))
    missing = [name for name in REQUIRED_FIELDS if name not in columns]
    if missing:
        raise ValueError(f"Rate sheet is missing columns: {', '.join(missing)}")

    created = updated = skipped = 0
    errors: List[str] = []
    plan_cache: Dict[str, ShippingPlan] = {}

    try:
        for index, row in df.iterrows():
            line_no = int(index) + 2  # header is sheet row 1
            origin = normalize_location(_cell_text(row[columns["origin"]]))
            destination = normalize_location(_cell_text(row[columns["destination"]]))
            values = {name: _cell_decimal(row[columns[name]]) for name in REQUIRED_FIELDS[2:]}

            if not origin or not destination or any(value is None for value in values.values()):
                skipped += 1
                errors.append(f"Row {line_no}: incomplete or invalid rate")
                continue

            plan_id = shipping_plan_id
            if "shipping_plan" in columns:
                plan = _resolve_plan(db, _cell_text(row[columns["shipping_plan"]]), plan_cache)
                if plan is not None:
                    plan_id = plan.id

            query = db.query(ShippingRate).filter(
                ShippingRate.origin == origin,
                ShippingRate.destination == destination,
            )
            if plan_id is None:
                query = query.filter(ShippingRate.shipping_plan_id.is_(None))
            else:
                query = query.filter(ShippingRate.shipping_plan_id == plan_id)
            rate = query.first()

            if rate:
                for name, value in values.items():
                    setattr(rate, name, value)
                updated += 1
            else:
                db.add(ShippingRate(
                    origin=origin,
                    destination=destination,
                    shipping_plan_id=plan_id,
                    **values,
                ))
                created += 1
            # Later rows for the same route must see this one
            db.flush()

        db.commit()
    except Exception:
        db.rollback()
        raise

    duration = round(time.perf_counter() - start_time, 3)
    logger.info(
        "Rate sheet %s ingested: created=%d updated=%d skipped=%d in %.2fs",
        Path(file_path).name,
        created,
        updated,
        skipped,
        duration,
    )
    return {"created": created, "updated": updated, "skipped": skipped, "errors": errors}
