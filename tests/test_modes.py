import json
from unittest.mock import AsyncMock

import httpx
import pytest

from crane.config import Settings
from crane.domain.models import Blueprint
from crane.execution.modes import (
    MISSING_CONFIG_ERROR,
    DirectExecutionConfig,
    ExecutionRequest,
    HttpExecutionConfig,
    WorkflowExecutionConfig,
    config_from_settings,
    execute_with_mode,
)
from crane.execution.workflow import WorkflowExecutor
from crane.providers.interface import AdapterContext

from conftest import FakeActionProvider, chain


def make_blueprint(*specs):
    return Blueprint(id="bp_1", organization_id="org_1", name="bp", tiles=chain(*specs))


def request_for(blueprint, **kwargs):
    return ExecutionRequest(blueprint=blueprint, variables={"who": "Ann"}, execution_id="exec_1", **kwargs)


class TestDirectMode:
    @pytest.mark.asyncio
    async def test_runs_with_provider_from_factory(self):
        provider = FakeActionProvider()
        factory = AsyncMock(return_value=provider)
        blueprint = make_blueprint(("TYPE", {"instruction": "name", "value": "{{who}}"}))

        result = await execute_with_mode(DirectExecutionConfig(adapter_factory=factory), request_for(blueprint))

        assert result.success is True
        assert provider.instructions == ['Type "Ann" into name']
        assert provider.close_count == 1
        factory.assert_awaited_once_with(AdapterContext(blueprint_id="bp_1", context_id=None))

    @pytest.mark.asyncio
    async def test_closes_provider_once_when_step_two_throws(self):
        provider = FakeActionProvider(failures={"Click on 2": RuntimeError("crashed")})
        blueprint = make_blueprint(
            ("CLICK", {"instruction": "1"}),
            ("CLICK", {"instruction": "2"}),
            ("CLICK", {"instruction": "3"}),
            ("CLICK", {"instruction": "4"}),
        )
        result = await execute_with_mode(
            DirectExecutionConfig(adapter_factory=AsyncMock(return_value=provider)), request_for(blueprint)
        )
        assert result.success is False
        assert result.error == "crashed"
        assert provider.close_count == 1

    @pytest.mark.asyncio
    async def test_factory_failure_is_a_failed_result(self):
        factory = AsyncMock(side_effect=RuntimeError("no browsers left"))
        result = await execute_with_mode(
            DirectExecutionConfig(adapter_factory=factory), request_for(make_blueprint(("CLICK", {"instruction": "x"})))
        )
        assert result.success is False
        assert result.error == "Failed to create adapter: no browsers left"

    @pytest.mark.asyncio
    async def test_repeated_runs_close_every_provider(self):
        providers = [FakeActionProvider(), FakeActionProvider(), FakeActionProvider()]
        factory = AsyncMock(side_effect=providers)
        config = DirectExecutionConfig(adapter_factory=factory)
        blueprint = make_blueprint(("CLICK", {"instruction": "x"}))

        for _ in providers:
            await execute_with_mode(config, request_for(blueprint))

        assert [p.close_count for p in providers] == [1, 1, 1]


class TestDelegatedMode:
    @pytest.mark.asyncio
    async def test_posts_blueprint_and_trusts_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "duration": 12,
                    "outputs": {"total": 3},
                    "tileResults": [{"tileId": "t1", "status": "completed"}],
                },
            )

        config = HttpExecutionConfig(endpoint="https://runner.test/execute", transport=httpx.MockTransport(handler))
        blueprint = make_blueprint(("CLICK", {"instruction": "x"}))
        result = await execute_with_mode(config, request_for(blueprint))

        assert result.success is True
        assert result.outputs == {"total": 3}
        assert result.tile_results[0].tile_id == "t1"
        assert seen["url"] == "https://runner.test/execute"
        assert seen["body"]["executionId"] == "exec_1"
        assert seen["body"]["variables"] == {"who": "Ann"}
        assert seen["body"]["blueprint"]["organizationId"] == "org_1"
        assert seen["body"]["blueprint"]["tiles"][0]["connections"] == {}

    @pytest.mark.asyncio
    async def test_non_2xx_becomes_failed_result(self):
        config = HttpExecutionConfig(
            endpoint="https://runner.test/execute",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        result = await execute_with_mode(config, request_for(make_blueprint(("CLICK", {"instruction": "x"}))))
        assert result.success is False
        assert result.error == "Execution failed: 503 Service Unavailable"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_result(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        config = HttpExecutionConfig(endpoint="https://runner.test/execute", transport=httpx.MockTransport(handler))
        result = await execute_with_mode(config, request_for(make_blueprint(("CLICK", {"instruction": "x"}))))
        assert result.success is False
        assert result.error == "Execution failed: connection refused"

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_a_configuration_failure(self):
        result = await execute_with_mode(HttpExecutionConfig(endpoint=None), request_for(make_blueprint()))
        assert result.success is False
        assert "endpoint" in result.error


class TestWorkflowMode:
    @pytest.mark.asyncio
    async def test_returns_workflow_handle_immediately(self):
        backend = AsyncMock()
        backend.start.return_value = "wf_123"
        on_complete = AsyncMock()
        config = WorkflowExecutionConfig(executor=WorkflowExecutor(backend), on_complete=on_complete)

        result = await execute_with_mode(config, request_for(make_blueprint(("CLICK", {"instruction": "x"}))))

        assert result.success is True
        assert result.outputs == {"workflowId": "wf_123"}
        args, options = backend.start.await_args.args
        assert args["executionId"] == "exec_1"
        assert args["blueprintId"] == "bp_1"
        assert args["blueprint"]["name"] == "bp"
        assert options.retry.max_attempts == 3
        assert backend.start.await_args.kwargs == {"on_complete": on_complete, "context": {"executionId": "exec_1"}}
        on_complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_failure_becomes_failed_result(self):
        backend = AsyncMock()
        backend.start.side_effect = RuntimeError("workflow store unavailable")
        config = WorkflowExecutionConfig(executor=WorkflowExecutor(backend))
        result = await execute_with_mode(config, request_for(make_blueprint()))
        assert result.success is False
        assert result.error == "Execution failed: workflow store unavailable"


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_no_config_is_a_failed_result(self):
        result = await execute_with_mode(None, request_for(make_blueprint()))
        assert result.success is False
        assert result.error == MISSING_CONFIG_ERROR

    def test_unset_mode_gives_no_config(self):
        assert config_from_settings(Settings(EXECUTION_MODE=None)) is None

    @pytest.mark.asyncio
    async def test_direct_mode_without_factory_fails_runs(self):
        config = config_from_settings(Settings(EXECUTION_MODE="direct"))
        result = await execute_with_mode(config, request_for(make_blueprint(("CLICK", {"instruction": "go"}))))
        assert result.success is False
        assert result.error == "Direct execution mode requires an adapter factory"

    def test_direct_mode(self):
        factory = AsyncMock()
        config = config_from_settings(Settings(EXECUTION_MODE="direct"), adapter_factory=factory)
        assert isinstance(config, DirectExecutionConfig)
        assert config.adapter_factory is factory

    def test_http_mode(self):
        settings = Settings(EXECUTION_MODE="http", EXECUTION_ENDPOINT="https://runner.test", EXECUTION_TIMEOUT_SECONDS=5)
        config = config_from_settings(settings)
        assert isinstance(config, HttpExecutionConfig)
        assert config.endpoint == "https://runner.test"
        assert config.timeout == 5

    def test_workflow_mode_uses_retry_settings(self):
        settings = Settings(
            EXECUTION_MODE="workflow",
            WORKFLOW_MAX_ATTEMPTS=5,
            WORKFLOW_INITIAL_BACKOFF_MS=200,
            WORKFLOW_BACKOFF_BASE=3,
            WORKFLOW_MAX_PARALLELISM=4,
        )
        config = config_from_settings(settings, workflow_backend=AsyncMock())
        options = config.executor.options
        assert (options.retry.max_attempts, options.retry.initial_backoff_ms, options.retry.base) == (5, 200, 3)
        assert options.max_parallelism == 4

    @pytest.mark.asyncio
    async def test_workflow_mode_without_backend_fails_runs(self):
        config = config_from_settings(Settings(EXECUTION_MODE="workflow"))
        assert isinstance(config, WorkflowExecutionConfig)
        result = await execute_with_mode(config, request_for(make_blueprint(("CLICK", {"instruction": "go"}))))
        assert result.success is False
        assert result.error == "Workflow execution mode requires a workflow backend"
