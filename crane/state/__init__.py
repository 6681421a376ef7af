"""
State Layer - Runtime Data Models

Defines the results a run produces and the execution record that tracks
each run from creation to completion.
"""

from crane.state.models import (
    Execution,
    ExecutionArtifact,
    ExecutionResult,
    ExecutionStatus,
    TileResult,
    TileStatus,
)

__all__ = [
    "Execution",
    "ExecutionArtifact",
    "ExecutionResult",
    "ExecutionStatus",
    "TileResult",
    "TileStatus",
]
