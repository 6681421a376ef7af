"""
Dispatcher - Tile Execution Layer

This module defines the TileDispatcher, which executes a single tile against
an ActionProvider. Each of the nine tile kinds has its own handler; the
dispatcher turns every outcome, including exceptions raised by the provider
and malformed parameters, into exactly one TileResult. Nothing escapes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from pydantic import ValidationError as ParametersError

from ..domain.models import (
    AuthParameters,
    ClickParameters,
    ExtractParameters,
    FormParameters,
    NavigateParameters,
    ScreenshotParameters,
    SelectParameters,
    Tile,
    TileType,
    TypeParameters,
    WaitParameters,
)
from ..providers.interface import ActionProvider, ActResult, CredentialResolver, ResolvedCredential
from ..state.models import TileResult, TileStatus
from .interpolation import interpolate, stringify

logger = logging.getLogger(__name__)

# Called with (artifact type, tile id, raw bytes); returns a storage id.
ArtifactCallback = Callable[[str, str, bytes], Awaitable[Optional[str]]]

# Login instructions used by AUTH tiles (shared with the code generator).
USERNAME_TARGET = "the username or email field"
PASSWORD_TARGET = "the password field"
SUBMIT_INSTRUCTION = "Click the login or sign in button"


def click_instruction(target: str) -> str:
    return f"Click on {target}"


def type_instruction(value: str, target: str) -> str:
    return f'Type "{value}" into {target}'


def select_instruction(value: str, target: str) -> str:
    return f'Select "{value}" from {target}'


def domain_of(url: str) -> str:
    """Hostname of a URL. Raises ValueError when there is none."""
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL: {url}")
    return hostname


def variable_text(variables: Mapping[str, Any], name: str) -> str:
    """Value of a named variable as text; missing or null becomes ''."""
    value = variables.get(name)
    return "" if value is None else stringify(value)


@dataclass
class StepOutcome:
    """What a handler reports; the dispatcher adds identity and timing."""

    status: str
    result: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: Any = None) -> "StepOutcome":
        return cls(status=TileStatus.COMPLETED.value, result=result)

    @classmethod
    def failure(cls, error: str) -> "StepOutcome":
        return cls(status=TileStatus.FAILED.value, error=error)

    @classmethod
    def from_act(cls, act: ActResult) -> "StepOutcome":
        if act.success:
            return cls.ok(act.model_dump())
        return cls(
            status=TileStatus.FAILED.value,
            result=act.model_dump(),
            error=act.message or "Action reported failure",
        )


class TileDispatcher:
    # 1. DEPENDENCY INJECTION: the provider and resolver belong to the current run
    def __init__(
        self,
        provider: ActionProvider,
        credentials: Optional[CredentialResolver] = None,
        on_artifact: Optional[ArtifactCallback] = None,
    ):
        self.provider = provider
        self.credentials = credentials
        self.on_artifact = on_artifact
        self._handlers: Dict[TileType, Callable[..., Awaitable[StepOutcome]]] = {
            TileType.NAVIGATE: self._navigate,
            TileType.CLICK: self._click,
            TileType.TYPE: self._type,
            TileType.AUTH: self._auth,
            TileType.EXTRACT: self._extract,
            TileType.SCREENSHOT: self._screenshot,
            TileType.WAIT: self._wait,
            TileType.SELECT: self._select,
            TileType.FORM: self._form,
        }

    async def execute(self, tile: Tile, variables: Mapping[str, Any]) -> TileResult:
        """
        Executes one tile with `variables` as interpolation context.
        Always returns a TileResult; never raises (except on cancellation).
        """
        started = time.monotonic()

        kind = tile.kind
        if kind is None:
            logger.error(f"Tile '{tile.id}' has unknown type '{tile.type}'")
            return self._finish(tile, started, StepOutcome.failure(f"Unknown tile type: {tile.type}"))

        try:
            params = tile.typed_parameters()
            logger.debug(f"Dispatching tile '{tile.id}' ({kind.value})")
            outcome = await self._handlers[kind](tile, params, variables)
        except ParametersError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'parameters'}: {err['msg']}"
                for err in e.errors()
            )
            logger.error(f"Tile '{tile.id}' has invalid parameters: {problems}")
            outcome = StepOutcome.failure(f"Invalid parameters for {tile.type} tile: {problems}")
        except Exception as e:
            logger.error(f"Tile '{tile.id}' ({tile.type}) failed: {e}")
            outcome = StepOutcome.failure(str(e) or type(e).__name__)

        return self._finish(tile, started, outcome)

    # ==========================================================================
    # Handlers
    # ==========================================================================

    async def _navigate(self, tile: Tile, params: NavigateParameters, variables: Mapping[str, Any]) -> StepOutcome:
        url = interpolate(params.url, variables)
        await self.provider.navigate(url, wait_until=params.wait_until, timeout=params.timeout)
        return StepOutcome.ok()

    async def _click(self, tile: Tile, params: ClickParameters, variables: Mapping[str, Any]) -> StepOutcome:
        instruction = interpolate(params.instruction, variables)
        result = await self.provider.act(click_instruction(instruction))
        return StepOutcome.from_act(result)

    async def _type(self, tile: Tile, params: TypeParameters, variables: Mapping[str, Any]) -> StepOutcome:
        instruction = interpolate(params.instruction, variables)

        # Value priority: literal, then variable, then credential field
        if params.value:
            value = interpolate(params.value, variables)
        elif params.variable:
            value = variable_text(variables, params.variable)
        elif params.credential_field:
            if self.credentials is None:
                return StepOutcome.failure("No credential resolver provided for TYPE tile")
            domain, credential = await self._resolve_credential()
            if credential is None:
                return StepOutcome.failure(f"No credentials found for domain: {domain}")
            value = credential.field_value(params.credential_field)
        else:
            value = ""

        result = await self.provider.act(type_instruction(value, instruction))
        return StepOutcome.from_act(result)

    async def _auth(self, tile: Tile, params: AuthParameters, variables: Mapping[str, Any]) -> StepOutcome:
        if self.credentials is None:
            return StepOutcome.failure("No credential resolver provided for AUTH tile")

        domain, credential = await self._resolve_credential()
        if credential is None:
            return StepOutcome.failure(f"No credentials found for domain: {domain}")

        username = await self.provider.act(type_instruction(credential.username, USERNAME_TARGET))
        if not username.success:
            return StepOutcome.failure(f"Failed to enter username: {username.message}")

        password = await self.provider.act(type_instruction(credential.password, PASSWORD_TARGET))
        if not password.success:
            return StepOutcome.failure(f"Failed to enter password: {password.message}")

        submit = await self.provider.act(SUBMIT_INSTRUCTION)
        return StepOutcome.from_act(submit)

    async def _extract(self, tile: Tile, params: ExtractParameters, variables: Mapping[str, Any]) -> StepOutcome:
        instruction = interpolate(params.instruction, variables)
        extracted = await self.provider.extract(instruction, params.extraction_schema)
        return StepOutcome.ok(extracted)

    async def _screenshot(self, tile: Tile, params: ScreenshotParameters, variables: Mapping[str, Any]) -> StepOutcome:
        data = await self.provider.screenshot(full_page=params.full_page)
        await self._emit_artifact("screenshot", tile.id, data)
        # Only a descriptor is kept in the result; the bytes go to the artifact callback.
        return StepOutcome.ok({"type": "screenshot", "size": len(data)})

    async def _wait(self, tile: Tile, params: WaitParameters, variables: Mapping[str, Any]) -> StepOutcome:
        await asyncio.sleep(params.ms / 1000)
        return StepOutcome.ok()

    async def _select(self, tile: Tile, params: SelectParameters, variables: Mapping[str, Any]) -> StepOutcome:
        instruction = interpolate(params.instruction, variables)
        value = interpolate(params.value, variables)
        result = await self.provider.act(select_instruction(value, instruction))
        return StepOutcome.from_act(result)

    async def _form(self, tile: Tile, params: FormParameters, variables: Mapping[str, Any]) -> StepOutcome:
        for field in params.fields:
            instruction = interpolate(field.instruction, variables)
            if field.value:
                value = interpolate(field.value, variables)
            elif field.variable:
                value = variable_text(variables, field.variable)
            else:
                value = ""

            result = await self.provider.act(type_instruction(value, instruction))
            if not result.success:
                return StepOutcome.failure(f'Failed to fill field "{instruction}": {result.message}')

        return StepOutcome.ok()

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _resolve_credential(self) -> Tuple[str, Optional[ResolvedCredential]]:
        domain = domain_of(await self.provider.current_url())
        return domain, await self.credentials.resolve(domain)

    async def _emit_artifact(self, artifact_type: str, tile_id: str, data: bytes):
        if self.on_artifact is None:
            return
        try:
            await self.on_artifact(artifact_type, tile_id, data)
        except Exception as e:
            logger.warning(f"Artifact callback failed for tile '{tile_id}': {e}")

    def _finish(self, tile: Tile, started: float, outcome: StepOutcome) -> TileResult:
        return TileResult(
            tile_id=tile.id,
            status=outcome.status,
            result=outcome.result,
            error=outcome.error,
            duration=int((time.monotonic() - started) * 1000),
        )
