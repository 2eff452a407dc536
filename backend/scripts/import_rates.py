"""
Script to import rate sheets (xlsx/csv) into the shipping rate tables.

Usage:
    python scripts/import_rates.py rates.xlsx [more.csv ...] [--plan-id 2]
"""
import argparse
import sys
import os
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from freightdesk.db.database import SessionLocal
from freightdesk.services.rate_ingestion import ingest_rate_sheet


def import_rates(paths, shipping_plan_id=None):
    """Import every given rate sheet."""
    db = SessionLocal()

    try:
        results = {}
        for path in paths:
            sheet = Path(path)
            if not sheet.exists():
                print(f"✗ Rate sheet not found: {sheet}")
                continue

            print(f"Importing rates from {sheet}...")
            result = ingest_rate_sheet(str(sheet), db, shipping_plan_id)
            results[sheet.name] = result
            print(
                f"✓ {sheet.name}: {result['created']} created, "
                f"{result['updated']} updated, {result['skipped']} skipped"
            )
            for error in result["errors"]:
                print(f"    {error}")

        print("\n" + "=" * 50)
        print("Import Summary:")
        for name, result in results.items():
            print(f"  {name}: {result['created'] + result['updated']} rates loaded")

    except Exception as e:
        print(f"\n✗ Error importing rates: {e}")
        import traceback
        traceback.print_exc()
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import shipping rate sheets")
    parser.add_argument("paths", nargs="+", help="xlsx or csv rate sheets")
    parser.add_argument("--plan-id", type=int, default=None, help="shipping plan for rows without a plan column")
    args = parser.parse_args()
    import_rates(args.paths, args.plan_id)
