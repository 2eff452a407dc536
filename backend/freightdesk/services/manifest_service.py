"""
Manifest service - batch creation of manifests and their consignment lines,
line maintenance and shipment confirmation.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from freightdesk.models import Client, ManifestInfo, ManifestList
from freightdesk.services.clock import Clock
from freightdesk.services.errors import (
    ManifestNotFoundError,
    RecordNotFoundError,
    ShipmentAlreadyConfirmedError,
)
from freightdesk.services.manifest_numbers import allocate_manifest_no
from freightdesk.services.rating_engine import (
    calculate_price,
    combine_weight,
    db_rate_lookup,
    get_consignor,
    round_price,
    split_weight,
)

logger = logging.getLogger(__name__)

# A number collision on commit means another request won the allocation; retry from scratch
MAX_ALLOCATION_ATTEMPTS = 3
DUPLICATE_CN_WARNING = "CN No: {cn_no} already exists, the total price will be set to 0"
REPRICE_FIELDS = ("kg", "discount", "origin", "destination", "consignor_id", "cn_no")


@dataclass
class BatchResult:
    manifest_info: ManifestInfo
    lines: List[ManifestList] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    created: bool = False


def cn_no_exists(
    db: Session,
    cn_no: str,
    exclude_line_id: Optional[int] = None,
    before_line_id: Optional[int] = None,
) -> bool:
    """
    Whether another line already carries this CN No.

    before_line_id restricts the match to older lines: of a set of lines
    sharing a CN No, only the first one is billable.
    """
    query = db.query(ManifestList.id).filter(ManifestList.cn_no == str(cn_no))
    if exclude_line_id is not None:
        query = query.filter(ManifestList.id != exclude_line_id)
    if before_line_id is not None:
        query = query.filter(ManifestList.id < before_line_id)
    return query.first() is not None


def get_manifest_info(db: Session, manifest_info_id: int, with_lines: bool = False) -> ManifestInfo:
    query = db.query(ManifestInfo)
    if with_lines:
        query = query.options(selectinload(ManifestInfo.manifest_lists))
    manifest_info = query.filter(
        ManifestInfo.id == manifest_info_id,
        ManifestInfo.deleted_at.is_(None),
    ).first()
    if not manifest_info:
        raise ManifestNotFoundError(manifest_info_id)
    return manifest_info


def get_manifest_line(db: Session, line_id: int) -> ManifestList:
    line = (
        db.query(ManifestList)
        .join(ManifestInfo)
        .filter(ManifestList.id == line_id, ManifestInfo.deleted_at.is_(None))
        .first()
    )
    if not line:
        raise RecordNotFoundError(f"Manifest list {line_id} not found")
    return line


def list_manifests(
    db: Session,
    consignor_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[ManifestInfo]:
    query = (
        db.query(ManifestInfo)
        .options(selectinload(ManifestInfo.manifest_lists))
        .filter(ManifestInfo.deleted_at.is_(None))
    )
    if consignor_id is not None:
        query = query.filter(ManifestInfo.manifest_lists.any(ManifestList.consignor_id == consignor_id))
    if start_date:
        query = query.filter(ManifestInfo.date >= start_date)
    if end_date:
        query = query.filter(ManifestInfo.date <= end_date)
    return query.order_by(ManifestInfo.date.desc(), ManifestInfo.id.desc()).all()


def _write_batch(
    db: Session,
    lines: Iterable[Any],
    header: Optional[Dict[str, Any]],
    manifest_info_id: Optional[int],
    user_id: Optional[int],
    clock: Clock,
) -> BatchResult:
    appending = manifest_info_id is not None
    if appending:
        manifest_info = get_manifest_info(db, manifest_info_id)
    else:
        manifest_info = ManifestInfo(
            date=header["date"],
            awb_no=header["awb_no"],
            origin=header["origin"],
            destination=header["destination"],
            flt=header.get("flt"),
            manifest_no=allocate_manifest_no(db, clock),
            user_id=user_id,
        )
        db.add(manifest_info)
        db.flush()

    result = BatchResult(manifest_info=manifest_info, created=not appending)
    consignors: Dict[int, Client] = {}
    seen_cn_nos = set()

    for line in lines:
        consignor = consignors.get(line.consignor_id)
        if consignor is None:
            consignor = get_consignor(db, line.consignor_id)
            consignors[line.consignor_id] = consignor

        cn_no = str(line.cn_no)
        kg, gram = split_weight(line.kg)
        if cn_no in seen_cn_nos or cn_no_exists(db, cn_no):
            logger.warning("Duplicate CN No %s on manifest %s, pricing at 0", cn_no, manifest_info.manifest_no)
            result.warnings.append(DUPLICATE_CN_WARNING.format(cn_no=cn_no))
            total_price = Decimal("0")
        elif appending:
            # Priced from the stored kg + gram so a later re-price gives the same amount
            total_price = calculate_price(
                line.origin,
                line.destination,
                combine_weight(kg, gram),
                db_rate_lookup(db, consignor.shipping_plan_id),
                line.discount or 0,
            )
        else:
            total_price = line.total_price
        seen_cn_nos.add(cn_no)

        row = ManifestList(
            manifest_info_id=manifest_info.id,
            consignor_id=consignor.id,
            consignee_name=line.consignee_name,
            cn_no=cn_no,
            pcs=line.pcs,
            kg=kg,
            gram=gram,
            total_price=round_price(total_price),
            discount=line.discount,
            origin=line.origin,
            destination=line.destination,
            remarks=line.remarks,
        )
        db.add(row)
        result.lines.append(row)

    db.flush()
    return result


def create_or_append_manifest(
    db: Session,
    lines: List[Any],
    header: Optional[Dict[str, Any]] = None,
    manifest_info_id: Optional[int] = None,
    user_id: Optional[int] = None,
    clock: Optional[Clock] = None,
) -> BatchResult:
    """
    Create a manifest with its lines, or append lines to an existing manifest.

    Business rules:
    1. A new manifest gets the next YYYYMMnnn number and keeps caller prices
    2. Appended lines are priced from the consignor's rate table
    3. A CN No already on file (or earlier in the batch) is stored at price 0
       and reported back as a warning
    4. Header and lines commit together or not at all
    """
    if header is None and manifest_info_id is None:
        raise ValueError("Either a manifest header or an existing manifest id is required")
    clock = clock or Clock()

    for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
        try:
            result = _write_batch(db, lines, header, manifest_info_id, user_id, clock)
            db.commit()
        except IntegrityError:
            db.rollback()
            if manifest_info_id is not None or attempt == MAX_ALLOCATION_ATTEMPTS:
                raise
            logger.warning(
                "Manifest number collision, retrying allocation (attempt %d/%d)",
                attempt,
                MAX_ALLOCATION_ATTEMPTS,
            )
            continue
        except Exception:
            db.rollback()
            raise

        db.refresh(result.manifest_info)
        for row in result.lines:
            db.refresh(row)
        logger.info(
            "%s manifest %s with %d line(s), %d warning(s)",
            "Created" if result.created else "Appended to",
            result.manifest_info.manifest_no,
            len(result.lines),
            len(result.warnings),
        )
        return result

    # Loop always returns or raises
    raise RuntimeError("Manifest allocation failed")


def update_manifest_info(db: Session, manifest_info_id: int, changes: Dict[str, Any]) -> ManifestInfo:
    manifest_info = get_manifest_info(db, manifest_info_id)
    for key in ("date", "awb_no", "origin", "destination", "flt"):
        if key in changes and changes[key] is not None:
            setattr(manifest_info, key, changes[key])
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(manifest_info)
    return manifest_info


def delete_manifest(db: Session, manifest_info_id: int, clock: Optional[Clock] = None) -> None:
    """Soft delete: the manifest disappears from listings but keeps its number."""
    clock = clock or Clock()
    manifest_info = get_manifest_info(db, manifest_info_id)
    manifest_info.deleted_at = clock.now()
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted manifest %s", manifest_info.manifest_no)


def update_manifest_line(db: Session, line_id: int, changes: Dict[str, Any]) -> Tuple[ManifestList, List[str]]:
    """
    Apply a partial update to a consignment line.

    Changing weight, discount, route, consignor or CN No re-prices the line.
    """
    line = get_manifest_line(db, line_id)
    warnings: List[str] = []
    cn_no_changed = changes.get("cn_no") is not None and str(changes["cn_no"]) != line.cn_no

    try:
        if changes.get("consignor_id") is not None:
            get_consignor(db, changes["consignor_id"])
        if changes.get("kg") is not None:
            line.kg, line.gram = split_weight(changes["kg"])
        for key in ("consignor_id", "consignee_name", "cn_no", "pcs", "origin", "destination"):
            if changes.get(key) is not None:
                setattr(line, key, changes[key])
        for key in ("discount", "remarks"):
            if key in changes:
                setattr(line, key, changes[key])

        if any(key in changes for key in REPRICE_FIELDS):
            # A line moved onto a taken CN No is the duplicate; otherwise only older lines count
            if cn_no_changed:
                duplicate = cn_no_exists(db, line.cn_no, exclude_line_id=line.id)
            else:
                duplicate = cn_no_exists(db, line.cn_no, before_line_id=line.id)
            if duplicate:
                warnings.append(DUPLICATE_CN_WARNING.format(cn_no=line.cn_no))
                line.total_price = Decimal("0.00")
            else:
                consignor = get_consignor(db, line.consignor_id)
                line.total_price = round_price(calculate_price(
                    line.origin,
                    line.destination,
                    combine_weight(line.kg, line.gram),
                    db_rate_lookup(db, consignor.shipping_plan_id),
                    line.discount or 0,
                ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(line)
    return line, warnings


def delete_manifest_line(db: Session, line_id: int) -> None:
    line = get_manifest_line(db, line_id)
    db.delete(line)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def confirm_shipment(
    db: Session,
    line_id: int,
    delivery_date: Optional[date] = None,
    clock: Optional[Clock] = None,
) -> ManifestList:
    """
    Mark a consignment delivered. pending -> delivered is one-way.

    The conditional update only matches pending rows, so of two concurrent
    confirmations exactly one succeeds.
    """
    clock = clock or Clock()
    line = get_manifest_line(db, line_id)
    confirmed_on = delivery_date or clock.today()

    outcome = db.execute(
        update(ManifestList)
        .where(ManifestList.id == line_id, ManifestList.delivery_date.is_(None))
        .values(delivery_date=confirmed_on, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount == 0:
        db.rollback()
        raise ShipmentAlreadyConfirmedError(line_id)
    db.commit()
    db.refresh(line)
    logger.info("Confirmed shipment %s (CN %s) delivered on %s", line.id, line.cn_no, confirmed_on)
    return line
