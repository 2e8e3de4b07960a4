# scripts/confirm_pending.py
# Usage (cron / scheduler, e.g. every minute):
#   python scripts/confirm_pending.py [--config prod] [--at 2026-01-15T12:40]
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

# --- ensure project root on sys.path ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from clock import FixedClock  # noqa: E402
from blueprints.orders.services import confirm_due_orders  # noqa: E402


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Confirm today's pending orders past their deadline")
    parser.add_argument("--config", default=None, help="config name (dev/test/prod)")
    parser.add_argument("--at", default=None, help="pretend 'now' is this ISO datetime (service time zone)")
    args = parser.parse_args(argv)

    app = create_app(args.config)
    with app.app_context():
        clock = app.extensions["clock"]
        if args.at:
            at = datetime.fromisoformat(args.at)
            if at.tzinfo is None:
                at = at.replace(tzinfo=clock.tz)
            clock = FixedClock(at)
        n = confirm_due_orders(clock=clock)
    print(f"[confirm] {n} order(s) confirmed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
