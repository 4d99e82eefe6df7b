#!/usr/bin/env python3
"""
Create tables and seed default plans, ranks, winners and the settings row.
Run from the project root: python -m scripts.init_db
or: PYTHONPATH=. python scripts/init_db.py
"""
import os
import sys

# project root on PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.logging import configure_logging
from app.db.init_db import create_tables
from app.db.session import SessionLocal, engine
from app.services.catalog.service import CatalogService
from app.services.site_settings.settings_service import SiteSettingsService


def main():
    configure_logging()
    create_tables(engine)
    db = SessionLocal()
    try:
        catalog = CatalogService(db)
        plans = catalog.seed_plans()
        _, ranks = catalog.seed_ranks()
        winners = catalog.seed_winners()
        SiteSettingsService(db).get_or_create()
        print(f"Tables ready. Plans created: {plans}, ranks: {ranks}, winners created: {winners}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
