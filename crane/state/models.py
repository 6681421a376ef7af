"""
State Layer - Runtime Data Models

This module defines what a run produces and how it is recorded: per-tile
results, the overall run result (the same shape for every execution mode),
and the persistent execution record that tracks a run through its lifecycle.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from ..domain.models import CraneModel, utc_now


class ExecutionStatus(str, Enum):
    """Lifecycle of an execution record."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


class TileStatus(str, Enum):
    """Progress states reported for a single tile."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TileResult(CraneModel):
    """
    Outcome of executing one tile. Created once, never mutated.

    Attributes:
        tile_id: The executed tile.
        status: "completed" or "failed".
        result: Optional payload (provider response, extracted data, ...).
        error: Failure message when status is "failed".
        duration: Wall time in milliseconds.
    """

    tile_id: str
    status: Literal["completed", "failed"]
    result: Optional[Any] = None
    error: Optional[str] = None
    duration: Optional[int] = None

    @property
    def completed(self) -> bool:
        return self.status == TileStatus.COMPLETED.value


class ExecutionResult(CraneModel):
    """
    The uniform outcome of a run, whatever the execution mode.

    Extra keys are kept, since results from a delegated endpoint are
    trusted verbatim.
    """

    model_config = ConfigDict(extra="allow")

    success: bool
    duration: Optional[int] = None
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    tile_results: Optional[List[TileResult]] = None

    @classmethod
    def failure(cls, error: str, duration: Optional[int] = None) -> "ExecutionResult":
        return cls(success=False, error=error, duration=duration)


class ExecutionArtifact(CraneModel):
    """A file produced during a run (e.g. a screenshot), stored elsewhere."""

    type: str
    tile_id: Optional[str] = None
    storage_id: str
    metadata: Optional[Dict[str, Any]] = None


class Execution(CraneModel):
    """
    Persistent record of one blueprint run.
    """

    model_config = ConfigDict(frozen=False)

    id: str
    blueprint_id: str
    organization_id: Optional[str] = None
    context: Optional[Any] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.PENDING
    result: Optional[ExecutionResult] = None
    artifacts: List[ExecutionArtifact] = Field(default_factory=list)
    workflow_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
