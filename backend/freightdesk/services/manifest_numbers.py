"""
Manifest number allocation.

Numbers have the form YYYYMMnnn: the calendar month of allocation followed by
a sequence that restarts at 001 every month.
"""
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from freightdesk.models import ManifestInfo
from freightdesk.services.clock import Clock

SEQUENCE_WIDTH = 3


def month_prefix(today: date) -> str:
    return today.strftime("%Y%m")


def _sequence_of(number: str, prefix: str) -> Optional[int]:
    if not number or not number.startswith(prefix):
        return None
    suffix = number[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def next_manifest_no(existing_numbers: Iterable[str], today: date) -> str:
    """
    Compute the next manifest number for the month of `today`.

    Numbers from other months are ignored. The sequence is read from
    everything after the prefix, so it keeps counting past 999.
    """
    prefix = month_prefix(today)
    sequences = [
        seq for seq in (_sequence_of(str(number), prefix) for number in existing_numbers)
        if seq is not None
    ]
    next_sequence = max(sequences) + 1 if sequences else 1
    return f"{prefix}{next_sequence:0{SEQUENCE_WIDTH}d}"


def allocate_manifest_no(db: Session, clock: Clock) -> str:
    """
    Read this month's numbers from the store and return the next one.

    Soft-deleted manifests still hold their numbers. Uniqueness is finally
    enforced by the unique constraint on manifest_infos.manifest_no.
    """
    today = clock.today()
    prefix = month_prefix(today)
    rows = (
        db.query(ManifestInfo.manifest_no)
        .filter(ManifestInfo.manifest_no.like(f"{prefix}%"))
        .all()
    )
    return next_manifest_no((row.manifest_no for row in rows), today)
