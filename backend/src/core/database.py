# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator

from fastapi import HTTPException
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS
from core.exceptions import SchedulingError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    """Engine keyword arguments for the configured backend."""
    options: Dict[str, Any] = {
        "pool_pre_ping": True,  # Verify connections before use
        "echo": False,          # Disable SQL logging
        "future": True,         # Use SQLAlchemy 2.0 style
    }
    if url.startswith("sqlite"):
        # FastAPI runs sync endpoints in a threadpool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_recycle"] = DB_POOL_RECYCLE_SECONDS
    return options


# Create SQLAlchemy engine with optimized settings
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)

# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# SQLAlchemy event listeners to automatically set created_at and updated_at in clinic time
@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using clinic-local time."""
    # Import here to avoid circular import
    from utils.datetime_utils import clinic_now_naive
    now = clinic_now_naive()
    for column_name in ("created_at", "updated_at"):
        # Only mapped columns; read-only properties are skipped
        if column_name in mapper.columns and getattr(target, column_name, None) is None:  # type: ignore
            setattr(target, column_name, now)  # type: ignore


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using clinic-local time."""
    from utils.datetime_utils import clinic_now_naive
    if "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", clinic_now_naive())  # type: ignore


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide database sessions.

    Yields a database session that is automatically closed after the request.
    Handles cleanup even if an exception occurs during request processing.

    Yields:
        Session: SQLAlchemy database session

    Example:
        ```python
        @app.get("/items")
        def read_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
        ```
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except (HTTPException, SchedulingError):
        # Don't log expected business errors as failures
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI dependency injection.

    Useful for background tasks (the reminder scheduler), scripts, or testing
    where you need manual session management.

    Yields:
        Session: SQLAlchemy database session

    Example:
        ```python
        with get_db_context() as db:
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        ```
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except (HTTPException, SchedulingError):
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Database transaction failed: {e}")
        raise
    finally:
        db.close()


def create_tables() -> None:
    """
    Create all database tables defined in SQLAlchemy models.

    Safe to call multiple times - will not recreate existing tables.
    """
    # Import models so every table is registered on Base.metadata
    import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create database tables: {e}")
        raise


def drop_tables() -> None:
    """
    Drop all database tables defined in SQLAlchemy models.

    WARNING: This will permanently delete all data in the tables!
    Only use in testing or development environments.
    """
    import models  # noqa: F401

    try:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to drop database tables: {e}")
        raise
