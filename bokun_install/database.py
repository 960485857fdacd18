"""
Installations and audit log storage. One engine per process, built from INSTALL_DATABASE_URL.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bokun_install.config import DATABASE_URL
from bokun_install.models import Base


def _make_engine(url: str):
    if url.startswith("sqlite:///:memory:"):
        # Single shared connection, otherwise each session would see its own empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        # Sessions hop between the event loop and the threadpool
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create the installations and audit_log tables if missing."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
