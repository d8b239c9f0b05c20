"""
SQLite engine, session factory and declarative base
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from pavilion.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = f"sqlite:///{settings.DATABASE_PATH}"

# Request handlers run in a threadpool, so connections cross threads
engine = create_engine(DATABASE_URL, echo=False, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass


def init_db():
    """Create tournament, match and ball tables if missing"""
    from pavilion.models import tournament, ball  # noqa
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready at %s", settings.DATABASE_PATH)


def get_db():
    """FastAPI dependency - one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
