"""SQLAlchemy engine and session wiring."""
import os
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./people.db")


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI's threadpool workers
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind=None):
    """Create any missing tables."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ready at %s", bind.url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
