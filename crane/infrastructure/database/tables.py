"""
Database Table Definitions.

This module defines the SQL schema using SQLModel.
We use the 'DBModel' suffix to distinguish these persistence models
from the Pydantic domain models (Blueprint, Execution).
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from ...domain.models import utc_now


def _document_column() -> Column:
    # JSONB on PostgreSQL, plain JSON elsewhere (e.g. SQLite in tests)
    return Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)


class BlueprintDBModel(SQLModel, table=True):
    """
    Persistence model for Blueprints.
    Maps 1-to-1 with the 'blueprints' table.
    """

    __tablename__ = "blueprints"

    blueprint_id: str = Field(primary_key=True)
    organization_id: str = Field(index=True)
    name: str

    # Store the entire Blueprint definition (tiles, metadata) as a JSON document.
    blueprint_data: Dict[str, Any] = Field(sa_column=_document_column())

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ExecutionDBModel(SQLModel, table=True):
    """
    Persistence model for Executions (run history).
    Maps 1-to-1 with the 'executions' table.
    """

    __tablename__ = "executions"

    execution_id: str = Field(primary_key=True)
    blueprint_id: str = Field(index=True)
    organization_id: Optional[str] = Field(default=None, index=True)
    status: str = Field(index=True)

    # Store the whole Execution record (variables, result, artifacts) as a JSON document.
    execution_data: Dict[str, Any] = Field(sa_column=_document_column())

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
