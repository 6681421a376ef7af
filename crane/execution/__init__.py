"""
Execution Layer - Ordering, Dispatch and Execution Modes

Orders a blueprint's tiles, executes them one at a time against an
ActionProvider (SequenceRunner + TileDispatcher), and decides whether a run
happens in-process, on an external endpoint, or inside a durable workflow.
"""

from crane.execution.dispatcher import TileDispatcher
from crane.execution.interpolation import find_placeholders, interpolate, stringify
from crane.execution.modes import (
    DirectExecutionConfig,
    ExecutionMode,
    ExecutionRequest,
    HttpExecutionConfig,
    WorkflowExecutionConfig,
    config_from_settings,
    execute_with_mode,
)
from crane.execution.ordering import sort_tiles
from crane.execution.runner import SequenceRunner
from crane.execution.workflow import (
    RetryPolicy,
    WorkflowArgs,
    WorkflowBackend,
    WorkflowExecutor,
    WorkflowStatus,
    run_blueprint_workflow,
)

__all__ = [
    "TileDispatcher",
    "SequenceRunner",
    "sort_tiles",
    "interpolate",
    "stringify",
    "find_placeholders",
    # Modes
    "ExecutionMode",
    "ExecutionRequest",
    "DirectExecutionConfig",
    "HttpExecutionConfig",
    "WorkflowExecutionConfig",
    "execute_with_mode",
    "config_from_settings",
    # Durable workflows
    "RetryPolicy",
    "WorkflowArgs",
    "WorkflowBackend",
    "WorkflowExecutor",
    "WorkflowStatus",
    "run_blueprint_workflow",
]
