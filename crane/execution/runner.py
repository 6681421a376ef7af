"""
Runner - Blueprint Sequencing Layer

The SequenceRunner is the deterministic loop that walks a blueprint's tiles in
chain order and delegates each one to the TileDispatcher.
-----------------------------------------------

The control logic is strictly sequential and "fail-fast":
1. Tiles are ordered once, up front (see `sort_tiles`).
2. Every tile sees the caller's variables merged with all outputs captured so
    far; a completed EXTRACT tile publishes its payload under its output
    variable name.
3. The first failed tile ends the run. Nothing is retried here.

Progress notifications are a side channel: they never change control flow
or results.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..domain.models import Blueprint, Tile, TileType
from ..providers.interface import ActionProvider, CredentialResolver
from ..state.models import ExecutionResult, TileResult, TileStatus
from .dispatcher import ArtifactCallback, TileDispatcher
from .ordering import sort_tiles

logger = logging.getLogger(__name__)

# Called with (tile id, "running" | "completed" | "failed").
ProgressCallback = Callable[[str, str], None]

EMPTY_BLUEPRINT_ERROR = "Blueprint has no executable tiles"


class SequenceRunner:
    def __init__(
        self,
        provider: ActionProvider,
        credentials: Optional[CredentialResolver] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_artifact: Optional[ArtifactCallback] = None,
    ):
        self.dispatcher = TileDispatcher(provider, credentials=credentials, on_artifact=on_artifact)
        self.on_progress = on_progress

    async def run(
        self,
        blueprint: Union[Blueprint, Sequence[Tile]],
        variables: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        """
        Runs the blueprint (or a raw tile list) and aggregates the outcome.
        """
        tiles = blueprint.tiles if isinstance(blueprint, Blueprint) else blueprint
        return await self.run_ordered(sort_tiles(tiles), variables or {})

    async def run_ordered(
        self, ordered: Sequence[Tile], variables: Mapping[str, Any]
    ) -> ExecutionResult:
        """Runs tiles that are already in execution order."""
        started = time.monotonic()
        tile_results: List[TileResult] = []
        outputs: Dict[str, Any] = {}

        logger.info(f"Running {len(ordered)} tile(s)")

        for tile in ordered:
            self._notify(tile.id, TileStatus.RUNNING.value)

            # Outputs shadow caller variables of the same name.
            tile_result = await self.dispatcher.execute(tile, {**variables, **outputs})
            tile_results.append(tile_result)

            self._notify(tile.id, tile_result.status)

            if tile_result.completed:
                self._capture_output(tile, tile_result, outputs)
            else:
                logger.info(f"Stopping at failed tile '{tile.id}': {tile_result.error}")
                break

        return self._aggregate(tile_results, outputs, started)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _capture_output(self, tile: Tile, tile_result: TileResult, outputs: Dict[str, Any]):
        if tile.kind != TileType.EXTRACT:
            return
        output_variable = tile.typed_parameters().output_variable
        if output_variable:
            outputs[output_variable] = tile_result.result

    def _aggregate(
        self, tile_results: List[TileResult], outputs: Dict[str, Any], started: float
    ) -> ExecutionResult:
        duration = int((time.monotonic() - started) * 1000)

        if not tile_results:
            return ExecutionResult(success=False, duration=duration, error=EMPTY_BLUEPRINT_ERROR, tile_results=[])

        success = all(result.completed for result in tile_results)
        first_error = next((r.error for r in tile_results if not r.completed), None)

        logger.info(f"Run finished: success={success}, tiles={len(tile_results)}, duration={duration}ms")

        return ExecutionResult(
            success=success,
            duration=duration,
            outputs=outputs if success else None,
            error=None if success else first_error,
            tile_results=tile_results,
        )

    def _notify(self, tile_id: str, status: str):
        if self.on_progress is None:
            return
        try:
            self.on_progress(tile_id, status)
        except Exception as e:
            logger.warning(f"Progress callback failed for tile '{tile_id}': {e}")


async def run_and_close(
    provider: ActionProvider,
    blueprint: Blueprint,
    variables: Mapping[str, Any],
    credentials: Optional[CredentialResolver] = None,
    on_progress: Optional[ProgressCallback] = None,
    on_artifact: Optional[ArtifactCallback] = None,
) -> ExecutionResult:
    """
    Runs a blueprint on a provider owned by this run, then always closes the
    provider. Close failures are logged and swallowed.
    """
    try:
        runner = SequenceRunner(
            provider, credentials=credentials, on_progress=on_progress, on_artifact=on_artifact
        )
        return await runner.run(blueprint, variables)
    finally:
        try:
            await provider.close()
        except Exception as e:
            logger.warning(f"Failed to close action provider: {e}")
