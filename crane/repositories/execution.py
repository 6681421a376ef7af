import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from ..infrastructure.database.connection import get_engine
from ..infrastructure.database.tables import ExecutionDBModel
from ..services.exceptions import NotFoundError, ValidationError
from ..domain.models import utc_now
from ..state.models import Execution, ExecutionArtifact, ExecutionResult, ExecutionStatus

DEFAULT_LIST_LIMIT = 50


class ExecutionRepository(ABC):
    """
    Defines how the application stores run history.

    Implementations provide storage (get/list/insert/save); the lifecycle
    transitions (start, complete, cancel...) are shared.
    """

    @abstractmethod
    def get(self, execution_id: str) -> Optional[Execution]:
        """Retrieves an execution by ID, or None."""
        pass

    @abstractmethod
    def list(
        self,
        organization_id: str,
        blueprint_id: Optional[str] = None,
        status: Optional[ExecutionStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Execution]:
        """Executions of an organization, newest first."""
        pass

    @abstractmethod
    def _insert(self, execution: Execution):
        pass

    @abstractmethod
    def _save(self, execution: Execution):
        """Persists an existing execution record."""
        pass

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def create(
        self,
        blueprint_id: str,
        organization_id: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        context: Any = None,
    ) -> Execution:
        """Creates a pending execution with a unique ID."""
        execution = Execution(
            id=str(uuid.uuid4()),
            blueprint_id=blueprint_id,
            organization_id=organization_id,
            variables=variables or {},
            context=context,
        )
        self._insert(execution)
        return execution

    def start(self, execution_id: str) -> Execution:
        """
        Marks a pending execution as running.
        Raises ValidationError if it is not pending.
        """
        execution = self._require(execution_id)
        if execution.status != ExecutionStatus.PENDING:
            raise ValidationError(f"Execution not pending: {execution_id}")
        execution.status = ExecutionStatus.RUNNING
        execution.started_at = utc_now()
        self._save(execution)
        return execution

    def complete(
        self,
        execution_id: str,
        result: ExecutionResult,
        artifacts: Optional[List[ExecutionArtifact]] = None,
    ) -> Execution:
        """
        Records the run result; the status follows `result.success`.
        Artifacts already attached are kept unless `artifacts` is given.
        A cancelled run stays cancelled.
        """
        execution = self._require(execution_id)
        if execution.status == ExecutionStatus.CANCELLED:
            return execution
        execution.status = ExecutionStatus.COMPLETED if result.success else ExecutionStatus.FAILED
        execution.result = result
        if artifacts is not None:
            execution.artifacts = list(artifacts)
        execution.completed_at = utc_now()
        self._save(execution)
        return execution

    def cancel(self, execution_id: str, reason: Optional[str] = None) -> Execution:
        """Cancels a pending or running execution. Finished ones are left as they are."""
        execution = self._require(execution_id)
        if execution.status.is_terminal:
            return execution
        execution.status = ExecutionStatus.CANCELLED
        execution.result = ExecutionResult.failure(reason or "Cancelled")
        execution.completed_at = utc_now()
        self._save(execution)
        return execution

    def attach_workflow(self, execution_id: str, workflow_id: str) -> Execution:
        execution = self._require(execution_id)
        execution.workflow_id = workflow_id
        self._save(execution)
        return execution

    def add_artifact(self, execution_id: str, artifact: ExecutionArtifact) -> Execution:
        execution = self._require(execution_id)
        execution.artifacts = [*execution.artifacts, artifact]
        self._save(execution)
        return execution

    def _require(self, execution_id: str) -> Execution:
        execution = self.get(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)
        return execution


class InMemoryExecutionRepository(ExecutionRepository):
    """
    Uses in-memory dictionary for execution storage for testing/dev purposes.
    """

    def __init__(self):
        self._store: Dict[str, Execution] = {}

    def get(self, execution_id: str) -> Optional[Execution]:
        execution = self._store.get(execution_id)
        # Callers get a copy; changes only land through _save.
        return execution.model_copy(deep=True) if execution else None

    def list(self, organization_id, blueprint_id=None, status=None, limit=None) -> List[Execution]:
        matches = [
            e.model_copy(deep=True)
            for e in self._store.values()
            if e.organization_id == organization_id
            and (blueprint_id is None or e.blueprint_id == blueprint_id)
            and (status is None or e.status == status)
        ]
        matches.sort(key=lambda e: e.created_at, reverse=True)
        return matches[: limit or DEFAULT_LIST_LIMIT]

    def _insert(self, execution: Execution):
        self._store[execution.id] = execution.model_copy(deep=True)

    def _save(self, execution: Execution):
        self._store[execution.id] = execution.model_copy(deep=True)


class PostgresExecutionRepository(ExecutionRepository):
    """
    Reads and writes the 'executions' table (JSONB document per run).
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()

    def get(self, execution_id: str) -> Optional[Execution]:
        with Session(self.engine) as db:
            result = db.get(ExecutionDBModel, execution_id)
            if not result:
                return None
            return Execution.model_validate(result.execution_data)

    def list(self, organization_id, blueprint_id=None, status=None, limit=None) -> List[Execution]:
        statement = select(ExecutionDBModel).where(ExecutionDBModel.organization_id == organization_id)
        if blueprint_id is not None:
            statement = statement.where(ExecutionDBModel.blueprint_id == blueprint_id)
        if status is not None:
            statement = statement.where(ExecutionDBModel.status == ExecutionStatus(status).value)
        statement = statement.order_by(col(ExecutionDBModel.created_at).desc()).limit(
            limit or DEFAULT_LIST_LIMIT
        )

        with Session(self.engine) as db:
            rows = db.exec(statement).all()
            return [Execution.model_validate(row.execution_data) for row in rows]

    def _insert(self, execution: Execution):
        db_model = ExecutionDBModel(
            execution_id=execution.id,
            blueprint_id=execution.blueprint_id,
            organization_id=execution.organization_id,
            status=execution.status.value,
            execution_data=execution.model_dump(mode="json"),
            created_at=execution.created_at,
        )
        with Session(self.engine) as db:
            db.add(db_model)
            db.commit()

    def _save(self, execution: Execution):
        with Session(self.engine) as db:
            result = db.get(ExecutionDBModel, execution.id)
            if not result:
                raise NotFoundError("Execution", execution.id)

            # Update the JSON blob, the indexed status and the timestamp
            result.execution_data = execution.model_dump(mode="json")
            result.status = execution.status.value
            result.updated_at = utc_now()
            db.add(result)
            db.commit()
