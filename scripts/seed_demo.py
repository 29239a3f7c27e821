"""
Seed demo owners/documents into the configured database.

Usage:
    python -m scripts.seed_demo
"""
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from kyc_engine.api.demo_data import load_demo_data
from kyc_engine.api.services import build_services
from kyc_engine.config.settings import get_settings
from kyc_engine.infrastructure.db.database import init_db


def main():
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    init_db()
    services = build_services(settings)
    created = load_demo_data(services)
    if created:
        print(f"Seeded {created} demo documents")
        for owner in ("demo-owner-verified", "demo-owner-pending", "demo-owner-rejected", "demo-owner-expiring"):
            status = services.status.execute(owner)
            print(f"  {owner:24s} {status.status.value:15s} {status.completion_percentage:3d}%")
    else:
        print("Database already has documents; nothing seeded")


if __name__ == "__main__":
    main()
