"""
Database Connection Manager.

This module handles the low-level details of connecting to the database.
It exposes the SQLModel engine which will be used by the Repositories.
"""

from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel

from ...config import settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    The shared engine for settings.DATABASE_URL, created on first use.
    """
    # echo=False in production to avoid leaking sensitive data in logs
    return create_engine(settings.DATABASE_URL, echo=False)


def init_db(engine: Engine = None):
    """
    Idempotent initialization.
    Creates tables if they do not exist.
    Useful for local dev or simple deployments.
    """
    # Register the table models on SQLModel.metadata
    from . import tables  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())
