"""Table creation for a fresh database (and the test SQLite engine)."""
from sqlalchemy.engine import Engine

from app.db.base import Base

# imported for their table registration on Base.metadata
from app.models import audit_log, order, plan, rank, site_settings, video_proof, winner  # noqa: F401


def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
