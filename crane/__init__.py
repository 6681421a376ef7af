"""
Crane - Blueprint Execution Engine

Describes web-portal automations as linked steps ("tiles"), runs them
against a pluggable browser action provider (in-process, on an external
endpoint, or inside a durable workflow), and compiles them to standalone
Python.
"""

from crane.domain import (
    Blueprint,
    BlueprintDraft,
    Tile,
    TileType,
    blueprint,
)
from crane.state import (
    Execution,
    ExecutionResult,
    ExecutionStatus,
    TileResult,
)
from crane.providers import ActionProvider, ActResult, CredentialResolver, ResolvedCredential
from crane.execution import SequenceRunner, TileDispatcher, execute_with_mode, sort_tiles
from crane.compiler import compile_blueprint

__all__ = [
    # Domain Layer
    "Blueprint",
    "BlueprintDraft",
    "Tile",
    "TileType",
    "blueprint",
    # State Layer
    "Execution",
    "ExecutionResult",
    "ExecutionStatus",
    "TileResult",
    # Providers
    "ActionProvider",
    "ActResult",
    "CredentialResolver",
    "ResolvedCredential",
    # Execution Layer
    "SequenceRunner",
    "TileDispatcher",
    "execute_with_mode",
    "sort_tiles",
    # Compiler
    "compile_blueprint",
]
