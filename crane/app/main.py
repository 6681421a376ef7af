"""
HTTP surface.

POST /execute is the endpoint a delegated ("http") execution mode talks to:
it runs the posted blueprint in-process with the configured adapter factory.
The other routes run and inspect stored blueprints through the CraneService.
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..compiler.codegen import CompileOptions, compile_blueprint
from ..config import settings
from ..execution.modes import DirectExecutionConfig, ExecutionRequest, execute_with_mode
from ..providers.interface import AdapterFactory, CredentialResolver
from ..services.exceptions import ConfigurationError, CraneError, NotFoundError, ValidationError
from ..services.orchestrator import CraneService
from .dependencies import get_adapter_factory, get_crane_service, get_credential_resolver
from .schemas import CompileRequest, ErrorResponse, ExecuteRequest, RunBlueprintRequest

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Crane Blueprint Engine")


def _error(status_code: int, message: str, code: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=message, code=code).to_wire()
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(CraneError)
async def handle_crane_error(request: Request, exc: CraneError):
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return _error(status_code, str(exc), exc.code)


# --- Endpoints ---

@app.post("/execute")
async def execute(
    body: ExecuteRequest,
    adapter_factory: Optional[AdapterFactory] = Depends(get_adapter_factory),
    credentials: Optional[CredentialResolver] = Depends(get_credential_resolver),
):
    """Runs a posted blueprint and returns its result plus the caller's executionId."""
    if body.blueprint is None:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing blueprint in request body")

    try:
        if adapter_factory is None:
            raise ConfigurationError("No adapter factory configured (set CRANE_ADAPTER_FACTORY)")

        result = await execute_with_mode(
            DirectExecutionConfig(adapter_factory=adapter_factory),
            ExecutionRequest(
                blueprint=body.blueprint,
                variables=body.variables,
                execution_id=body.execution_id,
                credentials=credentials,
            ),
        )
    except Exception as e:
        logger.exception("Blueprint execution failed")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error")

    return {**result.to_wire(), "executionId": body.execution_id}


@app.post("/compile")
def compile_posted_blueprint(body: CompileRequest):
    """Compiles a posted blueprint into a Python module."""
    options = CompileOptions(function_name=body.function_name, include_comments=body.include_comments)
    return compile_blueprint(body.blueprint, options).to_wire()


@app.post("/blueprints/{blueprint_id}/executions")
async def run_blueprint(
    blueprint_id: str,
    body: RunBlueprintRequest,
    service: CraneService = Depends(get_crane_service),
    credentials: Optional[CredentialResolver] = Depends(get_credential_resolver),
):
    """Runs a stored blueprint and records the run."""
    outcome = await service.execute(
        blueprint_id, body.variables, credentials=credentials, context=body.context
    )
    return {**outcome.result.to_wire(), "executionId": outcome.execution_id}


@app.get("/executions/{execution_id}")
def get_execution(
    execution_id: str,
    service: CraneService = Depends(get_crane_service),
):
    execution = service.executions.get(execution_id)
    if not execution:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution.to_wire()


@app.post("/executions/{execution_id}/cancel")
async def cancel_execution(
    execution_id: str,
    service: CraneService = Depends(get_crane_service),
):
    execution = await service.cancel(execution_id)
    return execution.to_wire()
