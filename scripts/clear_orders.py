"""
Delete orders by status group (development helper).

Usage: clear_orders.py [--unpaid | --paid | --all]
  --unpaid  Delete only pending/canceled orders
  --paid    Delete only paid orders
  --all     Delete ALL orders

Pending orders are canceled and their booked slots released before the
delete, so no slot is left booked without an order.
"""

import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

import argparse

from marketplace.config import settings
from marketplace.database import SessionLocal
from marketplace.services.maintenance import clear_orders


def parse_args(argv=None) -> str:
    parser = argparse.ArgumentParser(description="Delete orders by status group.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--unpaid", action="store_const", const="unpaid", dest="target",
                       help="Delete only pending/canceled orders")
    group.add_argument("--paid", action="store_const", const="paid", dest="target",
                       help="Delete only paid orders")
    group.add_argument("--all", action="store_const", const="all", dest="target",
                       help="Delete ALL orders")
    return parser.parse_args(argv).target


def main(argv=None) -> None:
    target = parse_args(argv)

    db = SessionLocal()
    try:
        result = clear_orders(db, target)
    finally:
        db.close()

    print(
        f"DB={settings.database_url} | Filter={target} | Deleted={result.deleted} "
        f"(target={result.matched}, slots released={result.released}) | "
        f"before={result.before} -> after={result.after}"
    )


if __name__ == "__main__":
    main()
