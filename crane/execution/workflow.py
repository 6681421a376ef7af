"""
Durable Workflow Execution

Wraps an external durable workflow engine (start/status/cancel/cleanup) so a
whole blueprint run can be handed off with a retry policy. The engine owns
retries and backoff, applied to the whole run; nothing here retries.

`run_blueprint_workflow` is the body the workflow engine executes for one
attempt.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..domain.models import Blueprint, CraneModel
from ..providers.interface import AdapterContext, AdapterFactory, CredentialResolver
from ..services.exceptions import NonRetriableError
from ..state.models import ExecutionResult, TileResult
from .runner import run_and_close

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """Whole-run retry behaviour requested from the workflow engine."""

    max_attempts: int = Field(default=3, ge=1)
    initial_backoff_ms: int = Field(default=1000, ge=0)
    base: float = Field(default=2.0, ge=1)

    def backoff_ms(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        return self.initial_backoff_ms * self.base ** (attempt - 1)


class WorkflowOptions(BaseModel):
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    max_parallelism: int = Field(default=1, ge=1)


class WorkflowState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


class WorkflowStatus(CraneModel):
    type: WorkflowState
    workflow_id: str
    current_tile_index: Optional[int] = None
    tile_results: Optional[List[TileResult]] = None
    error: Optional[str] = None


class WorkflowArgs(CraneModel):
    """Serialisable hand-off to the workflow engine."""

    blueprint_id: str
    execution_id: str
    organization_id: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    context: Optional[Any] = None
    blueprint: Optional[Blueprint] = None


# Called by the engine when the workflow finishes: (workflow id, run result, context).
OnWorkflowComplete = Callable[[str, ExecutionResult, Any], Awaitable[None]]


class WorkflowBackend(ABC):
    """
    The durable workflow engine capability. Implementations persist the
    workflow, run `run_blueprint_workflow` with retries, and call
    `on_complete` once the workflow is done.
    """

    @abstractmethod
    async def start(
        self,
        args: Dict[str, Any],
        options: WorkflowOptions,
        on_complete: Optional[OnWorkflowComplete] = None,
        context: Any = None,
    ) -> str:
        """Starts a workflow and returns its handle without waiting for it."""
        pass

    @abstractmethod
    async def status(self, workflow_id: str) -> WorkflowStatus:
        pass

    @abstractmethod
    async def cancel(self, workflow_id: str) -> None:
        pass

    @abstractmethod
    async def cleanup(self, workflow_id: str) -> None:
        """Removes the stored state of a finished workflow."""
        pass


class WorkflowExecutor:
    """Binds a backend to the retry policy and parallelism bound of this deployment."""

    def __init__(
        self,
        backend: WorkflowBackend,
        retry: Optional[RetryPolicy] = None,
        max_parallelism: int = 1,
    ):
        self.backend = backend
        self.options = WorkflowOptions(retry=retry or RetryPolicy(), max_parallelism=max_parallelism)

    async def start(
        self,
        args: WorkflowArgs,
        on_complete: Optional[OnWorkflowComplete] = None,
        context: Any = None,
    ) -> str:
        workflow_id = await self.backend.start(
            args.to_wire(), self.options, on_complete=on_complete, context=context
        )
        logger.info(f"Started workflow {workflow_id} for execution {args.execution_id}")
        return workflow_id

    async def status(self, workflow_id: str) -> WorkflowStatus:
        return await self.backend.status(workflow_id)

    async def cancel(self, workflow_id: str) -> None:
        logger.info(f"Cancelling workflow {workflow_id}")
        await self.backend.cancel(workflow_id)

    async def cleanup(self, workflow_id: str) -> None:
        await self.backend.cleanup(workflow_id)


async def run_blueprint_workflow(
    args: WorkflowArgs,
    adapter_factory: AdapterFactory,
    credentials: Optional[CredentialResolver] = None,
) -> ExecutionResult:
    """
    One attempt of a durable blueprint run.

    Adapter creation errors propagate so the workflow engine can retry the
    whole run. Tile failures are part of the returned result.

    Raises:
        NonRetriableError: if the arguments carry no blueprint.
    """
    if args.blueprint is None:
        raise NonRetriableError(f"Workflow arguments for execution {args.execution_id} carry no blueprint")

    provider = await adapter_factory(AdapterContext(blueprint_id=args.blueprint_id))
    return await run_and_close(provider, args.blueprint, args.variables, credentials=credentials)
