"""
Cancel pending orders past reserved_until and release their slots.

Cron entry point, e.g. every minute:
    * * * * * cd /srv/marketplace && python scripts/sweep_stale_orders.py
"""

import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

import logging

from marketplace.config import settings
from marketplace.services.reservation_sweeper import sweep_stale_reservations


def main() -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    result = sweep_stale_reservations()
    print(
        f"scanned={result.scanned} canceled={result.canceled} "
        f"skipped={result.skipped} failed={result.failed} "
        f"released={result.slots_released}"
    )
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
