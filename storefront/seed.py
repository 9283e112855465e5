"""
seed.py: migrate the database and optionally load demo events for local dev
"""
import argparse, os, subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from storefront.core.config import settings
from storefront.core.logging import configure_logging, get_logger
from storefront.db import models
from storefront.db.session import make_engine
from storefront.services import registrations

logger = get_logger(__name__)

DEMO_EVENTS = [
    {"slug": "wheel-throwing-101", "title": "Wheel throwing for beginners", "location": "Studio A", "price": 4500, "total_seats": 8},
    {"slug": "natural-dyes", "title": "Natural dyes with onion skins", "location": "Dye shed", "price": 3000, "total_seats": 12},
    {"slug": "spoon-carving", "title": "Green wood spoon carving", "location": "Workshop", "price": 3500, "total_seats": 6},
]

def local_dsn(dsn: str) -> str:
    # make the docker hostname usable from the host when migrating locally
    return dsn.replace("@postgres:", "@localhost:")

def run_alembic(repo_root: Path, dsn: str):
    logger.info("migrating", cwd=str(repo_root))
    subprocess.run(["alembic", "upgrade", "head"], cwd=repo_root, check=True, env={**os.environ, "POSTGRES_DSN": dsn})

def seed_demo(db: Session, start: datetime | None = None) -> list[int]:
    """Create the demo events that are not there yet; returns their ids."""
    start = start or datetime.now(timezone.utc).replace(hour=10, minute=0, second=0, microsecond=0) + timedelta(days=14)
    created = []
    for offset, demo in enumerate(DEMO_EVENTS):
        if db.execute(select(models.Event.id).where(models.Event.slug == demo["slug"])).first():
            continue
        starts_at = start + timedelta(days=7 * offset)
        event = registrations.create_event(db, starts_at=starts_at, ends_at=starts_at + timedelta(hours=3), **demo)
        created.append(event.id)
    logger.info("demo_events_seeded", created=len(created))
    return created

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--skip-migrations", action="store_true", help="Only load demo data")
    ap.add_argument("--demo", action="store_true", help="Load demo events after migrating")
    args = ap.parse_args()

    configure_logging()
    dsn = local_dsn(settings.POSTGRES_DSN)

    if not args.skip_migrations:
        run_alembic(Path(__file__).resolve().parents[1], dsn)
    if args.demo:
        with sessionmaker(bind=make_engine(dsn))() as db:
            seed_demo(db)

if __name__ == "__main__":
    main()
