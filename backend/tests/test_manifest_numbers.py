from datetime import date, datetime

from freightdesk.models import ManifestInfo
from freightdesk.services.clock import FixedClock
from freightdesk.services.manifest_numbers import allocate_manifest_no, next_manifest_no


def test_first_number_of_month():
    assert next_manifest_no([], date(2024, 3, 15)) == "202403001"


def test_increments_highest_sequence():
    existing = ["202403001", "202403007", "202403002"]
    assert next_manifest_no(existing, date(2024, 3, 31)) == "202403008"


def test_month_rollover_restarts_sequence():
    existing = ["202403041", "202403042"]
    assert next_manifest_no(existing, date(2024, 4, 1)) == "202404001"


def test_year_rollover():
    assert next_manifest_no(["202412099"], date(2025, 1, 2)) == "202501001"


def test_sequence_continues_past_999():
    assert next_manifest_no(["202403999"], date(2024, 3, 20)) == "2024031000"
    assert next_manifest_no(["202403999", "2024031000"], date(2024, 3, 20)) == "2024031001"


def test_foreign_numbers_ignored():
    assert next_manifest_no(["MANUAL-1", "202403abc"], date(2024, 3, 1)) == "202403001"


def _manifest(manifest_no, deleted=False):
    return ManifestInfo(
        date=date(2024, 3, 1),
        awb_no="AWB-1",
        origin="KL",
        destination="PEN",
        manifest_no=manifest_no,
        deleted_at=datetime(2024, 3, 2) if deleted else None,
    )


def test_allocation_reads_store_and_counts_deleted(db):
    db.add_all([_manifest("202403001"), _manifest("202403002", deleted=True), _manifest("202402009")])
    db.commit()

    clock = FixedClock(datetime(2024, 3, 20, 9, 0))
    assert allocate_manifest_no(db, clock) == "202403003"


def test_allocation_follows_clock_month(db):
    db.add(_manifest("202403005"))
    db.commit()

    assert allocate_manifest_no(db, FixedClock(datetime(2024, 4, 1, 0, 5))) == "202404001"
