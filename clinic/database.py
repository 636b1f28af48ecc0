import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic.config import DATABASE_URL

logger = logging.getLogger(__name__)


def build_engine(url: str):
    # SQLite connections are shared across the request thread pool
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    """Create all tables. Production deployments should prefer migrations."""
    # Import models so the metadata knows about every table
    from clinic.models import appointment, prescription, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
