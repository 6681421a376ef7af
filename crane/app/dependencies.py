"""
Dependency Injection Wiring (Composition Root).

This module acts as the central "container" for the application's services.
It is responsible for:
1. Instantiating the core Singleton services (Repositories, execution config).
2. Wiring them together (e.g., injecting the Repositories and the execution
   config into the CraneService).
3. Managing the lifecycle of these objects using @lru_cache to ensure
   they are created only once per application process.

By consolidating construction logic here, we keep the API layer (main.py)
clean and strictly focused on routing, while allowing for easy dependency
overrides during testing.
"""

import importlib
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from ..config import settings
from ..execution.modes import ExecutionConfig, config_from_settings
from ..execution.workflow import WorkflowBackend
from ..infrastructure.database.connection import init_db
from ..providers.interface import AdapterFactory, CredentialResolver
from ..repositories.blueprint import BlueprintRepository, PostgresBlueprintRepository
from ..repositories.execution import ExecutionRepository, PostgresExecutionRepository
from ..services.exceptions import ConfigurationError
from ..services.orchestrator import CraneService

logger = logging.getLogger(__name__)


def load_adapter_factory(path: str) -> AdapterFactory:
    """
    Imports an adapter factory from "package.module:attribute"
    (or "package.module.attribute").
    """
    module_name, _, attribute = path.partition(":")
    if not attribute:
        module_name, _, attribute = path.rpartition(".")
    try:
        factory = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError, ValueError) as e:
        raise ConfigurationError(f"Cannot load adapter factory '{path}': {e}") from e
    if not callable(factory):
        raise ConfigurationError(f"Adapter factory '{path}' is not callable")
    return factory


# Adapter Factory (Singleton)
@lru_cache()
def get_adapter_factory() -> Optional[AdapterFactory]:
    if not settings.ADAPTER_FACTORY:
        return None
    logger.info(f"Loading adapter factory {settings.ADAPTER_FACTORY}")
    return load_adapter_factory(settings.ADAPTER_FACTORY)


# Credential Resolver (Singleton)
# Vault-backed resolvers are wired by the host application; None disables AUTH tiles.
@lru_cache()
def get_credential_resolver() -> Optional[CredentialResolver]:
    return None


# Workflow Backend (Singleton)
# Durable workflow engines are wired by the host application (override this dependency);
# without one, workflow-mode runs fail with a configuration error.
@lru_cache()
def get_workflow_backend() -> Optional[WorkflowBackend]:
    return None


# Execution Config (Singleton)
@lru_cache()
def get_execution_config(
    adapter_factory: Optional[AdapterFactory] = Depends(get_adapter_factory),
    workflow_backend: Optional[WorkflowBackend] = Depends(get_workflow_backend),
) -> Optional[ExecutionConfig]:
    return config_from_settings(settings, adapter_factory=adapter_factory, workflow_backend=workflow_backend)


# Blueprint Repository (Singleton)
@lru_cache()
def get_blueprint_repository() -> BlueprintRepository:
    # return InMemoryBlueprintRepository()
    init_db()
    return PostgresBlueprintRepository()


# Execution Repository (Singleton)
# Note: In-memory storage must be a singleton so data persists across requests!
@lru_cache()
def get_execution_repository() -> ExecutionRepository:
    # return InMemoryExecutionRepository()
    init_db()
    return PostgresExecutionRepository()


# The Crane Service (Singleton Service)
@lru_cache()
def get_crane_service(
    blueprints: BlueprintRepository = Depends(get_blueprint_repository),
    executions: ExecutionRepository = Depends(get_execution_repository),
    execution_config: Optional[ExecutionConfig] = Depends(get_execution_config),
) -> CraneService:
    """
    Injects all necessary components into the CraneService.
    """
    return CraneService(
        blueprints=blueprints,
        executions=executions,
        execution_config=execution_config,
    )
