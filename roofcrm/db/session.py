import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from roofcrm.core.config import SQLALCHEMY_DATABASE_URI

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread off because FastAPI serves requests from a threadpool
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URI.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URI, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables that don't exist yet. Alembic is not used for this service."""
    from roofcrm.db.base import Base

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database schema ensured on {target.url.render_as_string(hide_password=True)}")


def get_db():
    """One session per request; anything left uncommitted after an error is rolled back."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
