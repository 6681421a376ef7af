from unittest.mock import AsyncMock, patch

import pytest

from crane.execution.dispatcher import TileDispatcher
from crane.providers.interface import ActResult

from conftest import FakeActionProvider, make_tile


async def run_tile(provider, type, parameters=None, variables=None, **kwargs):
    dispatcher = TileDispatcher(provider, **kwargs)
    return await dispatcher.execute(make_tile("tile", type, parameters), variables or {})


class TestNavigate:
    @pytest.mark.asyncio
    async def test_interpolates_url_and_applies_defaults(self, provider):
        result = await run_tile(provider, "NAVIGATE", {"url": "{{portal}}/home"}, {"portal": "https://x.test"})
        assert result.status == "completed"
        assert result.tile_id == "tile"
        assert provider.calls == [("navigate", "https://x.test/home", "load", 30000)]

    @pytest.mark.asyncio
    async def test_passes_wait_strategy_and_timeout(self, provider):
        await run_tile(provider, "NAVIGATE", {"url": "https://x.test", "waitUntil": "networkidle", "timeout": 5000})
        assert provider.calls == [("navigate", "https://x.test", "networkidle", 5000)]

    @pytest.mark.asyncio
    async def test_provider_exception_becomes_failed_result(self):
        provider = FakeActionProvider(failures={"navigate": RuntimeError("net::ERR_NAME_NOT_RESOLVED")})
        result = await run_tile(provider, "NAVIGATE", {"url": "https://x.test"})
        assert result.status == "failed"
        assert result.error == "net::ERR_NAME_NOT_RESOLVED"
        assert result.duration is not None


class TestClickAndSelect:
    @pytest.mark.asyncio
    async def test_click_instruction(self, provider):
        result = await run_tile(provider, "CLICK", {"instruction": "the {{button}}"}, {"button": "Save button"})
        assert result.status == "completed"
        assert provider.instructions == ["Click on the Save button"]
        assert result.result == {"success": True, "message": None}

    @pytest.mark.asyncio
    async def test_click_reported_failure(self):
        provider = FakeActionProvider(
            act_results={"Click on submit": ActResult(success=False, message="element not found")}
        )
        result = await run_tile(provider, "CLICK", {"instruction": "submit"})
        assert result.status == "failed"
        assert result.error == "element not found"

    @pytest.mark.asyncio
    async def test_select_instruction(self, provider):
        await run_tile(provider, "SELECT", {"instruction": "the state dropdown", "value": "{{st}}"}, {"st": "CA"})
        assert provider.instructions == ['Select "CA" from the state dropdown']


class TestType:
    @pytest.mark.asyncio
    async def test_literal_value_has_priority(self, provider):
        params = {"instruction": "name", "value": "Lit {{x}}", "variable": "first", "credentialField": "username"}
        await run_tile(provider, "TYPE", params, {"x": "1", "first": "Ann"})
        assert provider.instructions == ['Type "Lit 1" into name']

    @pytest.mark.asyncio
    async def test_variable_value(self, provider):
        await run_tile(provider, "TYPE", {"instruction": "name field", "variable": "first"}, {"first": "Ann"})
        assert provider.instructions == ['Type "Ann" into name field']

    @pytest.mark.asyncio
    async def test_missing_variable_types_empty_string(self, provider):
        await run_tile(provider, "TYPE", {"instruction": "name field", "variable": "first"})
        assert provider.instructions == ['Type "" into name field']

    @pytest.mark.asyncio
    async def test_credential_field(self, provider, credentials):
        result = await run_tile(
            provider, "TYPE", {"instruction": "member id", "credentialField": "memberId"}, credentials=credentials
        )
        assert result.status == "completed"
        assert provider.instructions == ['Type "M-42" into member id']

    @pytest.mark.asyncio
    async def test_credential_field_without_resolver_fails_without_acting(self, provider):
        result = await run_tile(provider, "TYPE", {"instruction": "password", "credentialField": "password"})
        assert result.status == "failed"
        assert result.error == "No credential resolver provided for TYPE tile"
        assert provider.instructions == []

    @pytest.mark.asyncio
    async def test_nothing_to_type(self, provider):
        await run_tile(provider, "TYPE", {"instruction": "search"})
        assert provider.instructions == ['Type "" into search']


class TestAuth:
    @pytest.mark.asyncio
    async def test_logs_in_with_domain_credentials(self, provider, credentials):
        result = await run_tile(provider, "AUTH", credentials=credentials)
        assert result.status == "completed"
        assert provider.instructions == [
            'Type "ann@example.com" into the username or email field',
            'Type "s3cret" into the password field',
            "Click the login or sign in button",
        ]

    @pytest.mark.asyncio
    async def test_without_resolver(self, provider):
        result = await run_tile(provider, "AUTH")
        assert result.error == "No credential resolver provided for AUTH tile"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unknown_domain(self, credentials):
        provider = FakeActionProvider(url="https://other.test/login")
        result = await run_tile(provider, "AUTH", credentials=credentials)
        assert result.status == "failed"
        assert result.error == "No credentials found for domain: other.test"
        assert provider.instructions == []

    @pytest.mark.asyncio
    async def test_username_failure_stops_login(self, credentials):
        provider = FakeActionProvider(
            act_results={
                'Type "ann@example.com" into the username or email field': ActResult(success=False, message="no input")
            }
        )
        result = await run_tile(provider, "AUTH", credentials=credentials)
        assert result.error == "Failed to enter username: no input"
        assert len(provider.instructions) == 1

    @pytest.mark.asyncio
    async def test_password_failure(self, credentials):
        provider = FakeActionProvider(
            act_results={'Type "s3cret" into the password field': ActResult(success=False, message="hidden")}
        )
        result = await run_tile(provider, "AUTH", credentials=credentials)
        assert result.error == "Failed to enter password: hidden"
        assert len(provider.instructions) == 2

    @pytest.mark.asyncio
    async def test_page_without_hostname(self, credentials):
        provider = FakeActionProvider(url="about:blank")
        result = await run_tile(provider, "AUTH", credentials=credentials)
        assert result.status == "failed"
        assert result.error == "Invalid URL: about:blank"


class TestExtractScreenshotWait:
    @pytest.mark.asyncio
    async def test_extract_returns_payload_and_passes_schema(self):
        provider = FakeActionProvider(extracted={"total": 12})
        schema = {"type": "object"}
        result = await run_tile(
            provider, "EXTRACT", {"instruction": "the {{what}}", "outputVariable": "t", "schema": schema}, {"what": "total"}
        )
        assert result.status == "completed"
        assert result.result == {"total": 12}
        assert provider.calls == [("extract", "the total", schema)]

    @pytest.mark.asyncio
    async def test_screenshot_emits_artifact(self, provider):
        on_artifact = AsyncMock(return_value="storage-1")
        result = await run_tile(provider, "SCREENSHOT", {"fullPage": True}, on_artifact=on_artifact)
        assert result.status == "completed"
        assert result.result == {"type": "screenshot", "size": 4}
        assert provider.calls == [("screenshot", True)]
        on_artifact.assert_awaited_once_with("screenshot", "tile", b"\x89PNG")

    @pytest.mark.asyncio
    async def test_artifact_callback_failure_does_not_fail_tile(self, provider):
        on_artifact = AsyncMock(side_effect=RuntimeError("storage down"))
        result = await run_tile(provider, "SCREENSHOT", on_artifact=on_artifact)
        assert result.status == "completed"

    @pytest.mark.asyncio
    async def test_wait_sleeps_for_milliseconds(self, provider):
        with patch("crane.execution.dispatcher.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await run_tile(provider, "WAIT", {"ms": 2500})
        assert result.status == "completed"
        sleep.assert_awaited_once_with(2.5)


class TestForm:
    @pytest.mark.asyncio
    async def test_fills_fields_in_order(self, provider):
        params = {
            "fields": [
                {"instruction": "first name", "variable": "first"},
                {"instruction": "city", "value": "{{city}}"},
                {"instruction": "notes"},
            ]
        }
        result = await run_tile(provider, "FORM", params, {"first": "Ann", "city": "Oslo"})
        assert result.status == "completed"
        assert provider.instructions == [
            'Type "Ann" into first name',
            'Type "Oslo" into city',
            'Type "" into notes',
        ]

    @pytest.mark.asyncio
    async def test_stops_at_first_failed_field(self):
        provider = FakeActionProvider(
            act_results={'Type "Ann" into first name': ActResult(success=False, message="readonly")}
        )
        params = {"fields": [{"instruction": "first name", "value": "Ann"}, {"instruction": "city"}]}
        result = await run_tile(provider, "FORM", params)
        assert result.error == 'Failed to fill field "first name": readonly'
        assert len(provider.instructions) == 1


class TestMalformedTiles:
    @pytest.mark.asyncio
    async def test_unknown_type(self, provider):
        result = await run_tile(provider, "HOVER", {"instruction": "menu"})
        assert result.status == "failed"
        assert result.error == "Unknown tile type: HOVER"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self, provider):
        result = await run_tile(provider, "CLICK", {})
        assert result.status == "failed"
        assert result.error.startswith("Invalid parameters for CLICK tile: instruction:")
        assert provider.calls == []


