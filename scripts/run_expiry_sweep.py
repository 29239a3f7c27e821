"""
Expiry Sweep — scheduled job (cron / k8s CronJob).

  1. VERIFIED documents past expires_at → EXPIRED (performed by "system")
  2. Expiring-soon notices for documents inside the warning window

Idempotent: safe to re-run or to run from several workers at once.

Usage:
    python -m scripts.run_expiry_sweep [--days 30] [--now 2025-01-31T00:00:00] [--skip-notify] [--json]
"""
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from kyc_engine.api.services import build_services
from kyc_engine.config.settings import get_settings
from kyc_engine.core.entities.document import to_naive_utc, utcnow
from kyc_engine.infrastructure.db.database import init_db


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Expire due documents and send expiring-soon notices")
    parser.add_argument("--days", type=int, default=settings.expiry_warning_days,
                        help="Warning window for expiring-soon notices")
    parser.add_argument("--now", type=datetime.fromisoformat, default=None,
                        help="Reference time (ISO 8601, default: current UTC time)")
    parser.add_argument("--skip-notify", action="store_true", help="Only expire, send no notices")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    init_db()
    services = build_services(settings)
    now = to_naive_utc(args.now) if args.now else utcnow()

    report = services.sweep.expire_due(now)
    if not args.skip_notify:
        services.sweep.notify_expiring(now, days=args.days, report=report)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print(f"{'='*60}")
    print(f"  Expiry sweep @ {now.isoformat()}")
    print(f"{'='*60}")
    print(f"  Scanned:           {report.scanned}")
    print(f"  Expired:           {report.expired}")
    print(f"  Already expired:   {report.already_expired}")
    print(f"  Conflicts retried: {report.conflicts_retried}")
    print(f"  Expiring notices:  {report.notified}" + ("  (skipped)" if args.skip_notify else ""))
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
