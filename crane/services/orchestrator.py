"""
Crane Service - Application Orchestration Layer

This service is the entry point for running stored blueprints. It orchestrates
the interaction between the Data Layer (Repositories), the Execution Layer
(modes, runner) and the API. It makes sure every run is recorded: created,
started, and completed with its result.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..compiler.codegen import CompiledBlueprint, CompileOptions, compile_blueprint
from ..execution.dispatcher import ArtifactCallback
from ..execution.modes import ExecutionConfig, ExecutionRequest, WorkflowExecutionConfig, execute_with_mode
from ..execution.runner import ProgressCallback
from ..execution.workflow import WorkflowStatus
from ..providers.interface import CredentialResolver
from ..repositories.blueprint import BlueprintRepository
from ..repositories.execution import ExecutionRepository
from ..state.models import Execution, ExecutionArtifact, ExecutionResult
from .exceptions import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """The run result plus the ID of the execution record that tracks it."""

    result: ExecutionResult
    execution_id: Optional[str] = None


class CraneService:
    def __init__(
        self,
        blueprints: BlueprintRepository,
        executions: ExecutionRepository,
        execution_config: Optional[ExecutionConfig] = None,
    ):
        self.blueprints = blueprints
        self.executions = executions
        self.execution_config = execution_config

        # Workflow runs report back here unless the caller wired its own hook.
        if isinstance(execution_config, WorkflowExecutionConfig) and execution_config.on_complete is None:
            execution_config.on_complete = self.handle_workflow_complete

    async def execute(
        self,
        blueprint_id: str,
        variables: Optional[Dict[str, Any]] = None,
        credentials: Optional[CredentialResolver] = None,
        context: Any = None,
        on_progress: Optional[ProgressCallback] = None,
        on_artifact: Optional[ArtifactCallback] = None,
    ) -> ExecutionOutcome:
        """
        The Core Loop:
        1. Load Blueprint
        2. Create and start the execution record
        3. Run it with the configured execution mode
        4. Record the result (workflow runs stay 'running' until they report back)
        """
        started = time.monotonic()
        variables = variables or {}

        # 1. Load Blueprint
        blueprint = self.blueprints.get(blueprint_id)
        if blueprint is None:
            logger.warning(f"Execution requested for unknown blueprint {blueprint_id}")
            return ExecutionOutcome(
                result=ExecutionResult.failure(
                    f"Blueprint not found: {blueprint_id}",
                    duration=int((time.monotonic() - started) * 1000),
                )
            )

        # 2. Record the run
        execution = self.executions.create(
            blueprint_id=blueprint_id,
            organization_id=blueprint.organization_id,
            variables=variables,
            context=context,
        )
        self.executions.start(execution.id)
        logger.info(f"Execution {execution.id} started for blueprint '{blueprint.name}'")

        # 3. Run
        request = ExecutionRequest(
            blueprint=blueprint,
            variables=variables,
            execution_id=execution.id,
            organization_id=blueprint.organization_id,
            context=context,
            credentials=credentials,
            on_progress=on_progress,
            on_artifact=self._recording_artifacts(execution.id, on_artifact),
        )
        result = await execute_with_mode(self.execution_config, request)

        # 4. Record the result
        if isinstance(self.execution_config, WorkflowExecutionConfig) and result.success:
            workflow_id = (result.outputs or {}).get("workflowId")
            self.executions.attach_workflow(execution.id, workflow_id)
            logger.info(f"Execution {execution.id} handed to workflow {workflow_id}")
        else:
            self.executions.complete(execution.id, result)
            logger.info(f"Execution {execution.id} finished: success={result.success}")

        return ExecutionOutcome(result=result, execution_id=execution.id)

    async def handle_workflow_complete(self, workflow_id: str, result: ExecutionResult, context: Any):
        """Completion hook given to the workflow engine. `context` carries the execution ID."""
        execution_id = (context or {}).get("executionId")
        if not execution_id:
            logger.error(f"Workflow {workflow_id} completed without an execution ID")
            return
        self.complete_workflow(execution_id, result)

    def complete_workflow(self, execution_id: str, result: ExecutionResult) -> Execution:
        logger.info(f"Workflow run {execution_id} completed: success={result.success}")
        return self.executions.complete(execution_id, result)

    async def workflow_status(self, execution_id: str) -> Optional[WorkflowStatus]:
        """
        Status of the workflow behind an execution, or None when it has none.
        Raises NotFoundError or ConfigurationError.
        """
        execution = self._require_execution(execution_id)
        if not execution.workflow_id:
            return None
        return await self._workflow_config().executor.status(execution.workflow_id)

    async def cancel(self, execution_id: str, reason: Optional[str] = None) -> Execution:
        """Cancels the workflow (if any) and marks the record cancelled."""
        execution = self._require_execution(execution_id)
        if execution.workflow_id:
            await self._workflow_config().executor.cancel(execution.workflow_id)
        return self.executions.cancel(execution_id, reason)

    def compile(self, blueprint_id: str, options: Optional[CompileOptions] = None) -> CompiledBlueprint:
        blueprint = self.blueprints.get(blueprint_id)
        if blueprint is None:
            raise NotFoundError("Blueprint", blueprint_id)
        return compile_blueprint(blueprint, options)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _recording_artifacts(
        self, execution_id: str, on_artifact: Optional[ArtifactCallback]
    ) -> Optional[ArtifactCallback]:
        """Wraps the caller's artifact callback so stored artifacts land on the record."""
        if on_artifact is None:
            return None

        async def _record(artifact_type: str, tile_id: str, data: bytes) -> Optional[str]:
            storage_id = await on_artifact(artifact_type, tile_id, data)
            if storage_id:
                self.executions.add_artifact(
                    execution_id,
                    ExecutionArtifact(
                        type=artifact_type,
                        tile_id=tile_id,
                        storage_id=storage_id,
                        metadata={"size": len(data)},
                    ),
                )
            return storage_id

        return _record

    def _require_execution(self, execution_id: str) -> Execution:
        execution = self.executions.get(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)
        return execution

    def _workflow_config(self) -> WorkflowExecutionConfig:
        if not isinstance(self.execution_config, WorkflowExecutionConfig) or self.execution_config.executor is None:
            raise ConfigurationError("Workflow execution mode is not configured")
        return self.execution_config
