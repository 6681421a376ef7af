"""
Execution Modes

Chooses how a whole blueprint run happens. The three strategies share the
ExecutionResult shape and never change tile semantics:

- direct: the SequenceRunner runs in this process on a provider created by
  an injected factory. The provider is always closed afterwards.
- http: the blueprint, variables and execution id are POSTed to an external
  endpoint whose JSON reply is taken as the result.
- workflow: the run is handed to a durable workflow engine; the result only
  carries the workflow handle.

Configuration problems come back as a failed ExecutionResult, never as an
exception.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx

from ..config import Settings
from ..domain.models import Blueprint
from ..providers.interface import AdapterContext, AdapterFactory, CredentialResolver
from ..services.exceptions import ConfigurationError
from ..state.models import ExecutionResult
from .dispatcher import ArtifactCallback
from .runner import ProgressCallback, run_and_close
from .workflow import OnWorkflowComplete, RetryPolicy, WorkflowArgs, WorkflowBackend, WorkflowExecutor

logger = logging.getLogger(__name__)

MISSING_CONFIG_ERROR = 'No execution config. Set execution mode to "direct", "workflow", or "http".'


class ExecutionMode(str, Enum):
    DIRECT = "direct"
    HTTP = "http"
    WORKFLOW = "workflow"


# ==============================================================================
# Configuration
# ==============================================================================


@dataclass(eq=False)
class DirectExecutionConfig:
    adapter_factory: Optional[AdapterFactory]
    mode: ExecutionMode = field(default=ExecutionMode.DIRECT, init=False)


@dataclass(eq=False)
class HttpExecutionConfig:
    endpoint: Optional[str]
    timeout: float = 300.0
    # Test hook, e.g. httpx.MockTransport
    transport: Optional[httpx.AsyncBaseTransport] = None
    mode: ExecutionMode = field(default=ExecutionMode.HTTP, init=False)


@dataclass(eq=False)
class WorkflowExecutionConfig:
    executor: Optional[WorkflowExecutor]
    on_complete: Optional[OnWorkflowComplete] = None
    mode: ExecutionMode = field(default=ExecutionMode.WORKFLOW, init=False)


ExecutionConfig = Union[DirectExecutionConfig, HttpExecutionConfig, WorkflowExecutionConfig]


@dataclass
class ExecutionRequest:
    """Everything one run needs, whatever the mode."""

    blueprint: Blueprint
    variables: Dict[str, Any] = field(default_factory=dict)
    execution_id: Optional[str] = None
    organization_id: Optional[str] = None
    context: Optional[Any] = None
    credentials: Optional[CredentialResolver] = None
    on_progress: Optional[ProgressCallback] = None
    on_artifact: Optional[ArtifactCallback] = None


# ==============================================================================
# Strategies
# ==============================================================================


class ExecutionStrategy(ABC):
    @abstractmethod
    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        pass


class DirectExecution(ExecutionStrategy):
    def __init__(self, config: DirectExecutionConfig):
        if config.adapter_factory is None:
            raise ConfigurationError("Direct execution mode requires an adapter factory")
        self.config = config

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        started = time.monotonic()
        context_id = request.context if isinstance(request.context, str) else None

        try:
            provider = await self.config.adapter_factory(
                AdapterContext(blueprint_id=request.blueprint.id, context_id=context_id)
            )
        except Exception as e:
            logger.error(f"Adapter factory failed for blueprint '{request.blueprint.id}': {e}")
            return ExecutionResult.failure(
                f"Failed to create adapter: {e}", duration=int((time.monotonic() - started) * 1000)
            )

        return await run_and_close(
            provider,
            request.blueprint,
            request.variables,
            credentials=request.credentials,
            on_progress=request.on_progress,
            on_artifact=request.on_artifact,
        )


class DelegatedExecution(ExecutionStrategy):
    def __init__(self, config: HttpExecutionConfig):
        if not config.endpoint:
            raise ConfigurationError("HTTP execution mode requires an endpoint")
        self.config = config

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        payload = {
            "blueprint": request.blueprint.to_wire(),
            "variables": request.variables,
            "executionId": request.execution_id,
        }

        logger.info(f"Delegating blueprint '{request.blueprint.id}' to {self.config.endpoint}")
        async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.config.transport) as client:
            response = await client.post(self.config.endpoint, json=payload)

        if not response.is_success:
            logger.error(f"Delegated execution returned {response.status_code}")
            return ExecutionResult.failure(
                f"Execution failed: {response.status_code} {response.reason_phrase}"
            )

        return ExecutionResult.model_validate(response.json())


class WorkflowExecution(ExecutionStrategy):
    def __init__(self, config: WorkflowExecutionConfig):
        if config.executor is None:
            raise ConfigurationError("Workflow execution mode requires a workflow backend")
        self.config = config

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        args = WorkflowArgs(
            blueprint_id=request.blueprint.id or "",
            execution_id=request.execution_id or "",
            organization_id=request.organization_id,
            variables=request.variables,
            context=request.context,
            blueprint=request.blueprint,
        )
        workflow_id = await self.config.executor.start(
            args, on_complete=self.config.on_complete, context={"executionId": request.execution_id}
        )
        # The run continues inside the workflow engine.
        return ExecutionResult(success=True, outputs={"workflowId": workflow_id})


def select_strategy(config: Optional[ExecutionConfig]) -> ExecutionStrategy:
    """
    Raises:
        ConfigurationError: if no mode is configured or its config is incomplete.
    """
    if config is None:
        raise ConfigurationError(MISSING_CONFIG_ERROR)
    if isinstance(config, DirectExecutionConfig):
        return DirectExecution(config)
    if isinstance(config, HttpExecutionConfig):
        return DelegatedExecution(config)
    if isinstance(config, WorkflowExecutionConfig):
        return WorkflowExecution(config)
    raise ConfigurationError(f"Unsupported execution config: {type(config).__name__}")


async def execute_with_mode(
    config: Optional[ExecutionConfig], request: ExecutionRequest
) -> ExecutionResult:
    """
    Runs a request with the configured strategy. Always returns a result.
    """
    try:
        strategy = select_strategy(config)
    except ConfigurationError as e:
        logger.error(f"Execution not configured: {e}")
        return ExecutionResult.failure(str(e))

    try:
        return await strategy.execute(request)
    except Exception as e:
        logger.exception(f"Execution of blueprint '{request.blueprint.id}' failed")
        return ExecutionResult.failure(f"Execution failed: {e}")


def config_from_settings(
    settings: Settings,
    adapter_factory: Optional[AdapterFactory] = None,
    workflow_backend: Optional[WorkflowBackend] = None,
    on_workflow_complete: Optional[OnWorkflowComplete] = None,
) -> Optional[ExecutionConfig]:
    """
    Builds the execution config for `settings.EXECUTION_MODE`, or None when
    no mode is set. A missing collaborator is left as None; runs then fail
    with a configuration error instead of the config failing to build.
    """
    mode = settings.EXECUTION_MODE
    if mode is None:
        return None

    if mode == ExecutionMode.DIRECT.value:
        return DirectExecutionConfig(adapter_factory=adapter_factory)

    if mode == ExecutionMode.HTTP.value:
        return HttpExecutionConfig(
            endpoint=settings.EXECUTION_ENDPOINT, timeout=settings.EXECUTION_TIMEOUT_SECONDS
        )

    if workflow_backend is None:
        logger.warning("Workflow execution mode has no workflow backend; runs will fail")
        return WorkflowExecutionConfig(executor=None, on_complete=on_workflow_complete)

    retry = RetryPolicy(
        max_attempts=settings.WORKFLOW_MAX_ATTEMPTS,
        initial_backoff_ms=settings.WORKFLOW_INITIAL_BACKOFF_MS,
        base=settings.WORKFLOW_BACKOFF_BASE,
    )
    executor = WorkflowExecutor(
        workflow_backend, retry=retry, max_parallelism=settings.WORKFLOW_MAX_PARALLELISM
    )
    return WorkflowExecutionConfig(executor=executor, on_complete=on_workflow_complete)
