"""
Blueprint Builder

Fluent, immutable builder for Blueprints. Every method returns a new draft,
so a partially built draft can be reused as a template:

    submit_intake = (
        blueprint("submit-intake")
        .describe("Submit beneficiary intake form")
        .input("portalUrl", "string", True)
        .input("firstName", "string", True)
        .navigate("{{portalUrl}}")
        .auth()
        .type("first name field", variable="firstName")
        .click("submit button")
        .screenshot()
        .extract("confirmation number", "confirmationNumber")
        .build()
    )

Tiles added through the builder are always linked into a single chain.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .models import (
    Blueprint,
    BlueprintMetadata,
    FormField,
    InputField,
    Tile,
    TileConnections,
    TilePosition,
    TileType,
)

LABEL_LIMIT = 30
TILE_SPACING = 120


def _generate_tile_id() -> str:
    return f"tile_{uuid.uuid4().hex[:12]}"


def _short(text: str) -> str:
    if len(text) > LABEL_LIMIT:
        return f"{text[:LABEL_LIMIT]}..."
    return text


@dataclass(frozen=True)
class BlueprintDraft:
    name: str
    description: Optional[str] = None
    tiles: Tuple[Tile, ...] = ()
    input_schema: Tuple[InputField, ...] = ()
    tags: Tuple[str, ...] = field(default_factory=tuple)

    # ==========================================================================
    # Tile Builders
    # ==========================================================================

    def navigate(
        self, url: str, wait_until: str = "load", timeout: int = 30000
    ) -> "BlueprintDraft":
        return self._add_tile(
            TileType.NAVIGATE,
            f"Navigate to {_short(url)}",
            {"url": url, "waitUntil": wait_until, "timeout": timeout},
        )

    def auth(self) -> "BlueprintDraft":
        return self._add_tile(TileType.AUTH, "Authenticate", {})

    def type(
        self,
        instruction: str,
        value: Optional[str] = None,
        variable: Optional[str] = None,
        credential_field: Optional[str] = None,
    ) -> "BlueprintDraft":
        parameters: Dict[str, Any] = {"instruction": instruction}
        if value is not None:
            parameters["value"] = value
        if variable is not None:
            parameters["variable"] = variable
        if credential_field is not None:
            parameters["credentialField"] = credential_field
        return self._add_tile(TileType.TYPE, f"Type: {_short(instruction)}", parameters)

    def click(self, instruction: str) -> "BlueprintDraft":
        return self._add_tile(
            TileType.CLICK, f"Click: {_short(instruction)}", {"instruction": instruction}
        )

    def screenshot(self, full_page: bool = False) -> "BlueprintDraft":
        return self._add_tile(TileType.SCREENSHOT, "Take screenshot", {"fullPage": full_page})

    def extract(
        self, instruction: str, output_variable: str, schema: Any = None
    ) -> "BlueprintDraft":
        parameters: Dict[str, Any] = {
            "instruction": instruction,
            "outputVariable": output_variable,
        }
        if schema is not None:
            parameters["schema"] = schema
        return self._add_tile(TileType.EXTRACT, f"Extract: {output_variable}", parameters)

    def wait(self, ms: float) -> "BlueprintDraft":
        return self._add_tile(TileType.WAIT, f"Wait {ms}ms", {"ms": ms})

    def select(self, instruction: str, value: str) -> "BlueprintDraft":
        return self._add_tile(
            TileType.SELECT,
            f"Select: {_short(value)}",
            {"instruction": instruction, "value": value},
        )

    def form(self, fields: Sequence[Union[FormField, Dict[str, Any]]]) -> "BlueprintDraft":
        wire_fields = [
            f.to_wire() if isinstance(f, FormField) else dict(f) for f in fields
        ]
        return self._add_tile(
            TileType.FORM, f"Fill form ({len(wire_fields)} fields)", {"fields": wire_fields}
        )

    # ==========================================================================
    # Blueprint Attributes
    # ==========================================================================

    def input(
        self,
        name: str,
        type: str = "string",
        required: bool = False,
        description: Optional[str] = None,
    ) -> "BlueprintDraft":
        new_field = InputField(name=name, type=type, required=required, description=description)
        return replace(self, input_schema=self.input_schema + (new_field,))

    def describe(self, description: str) -> "BlueprintDraft":
        return replace(self, description=description)

    def tag(self, *tags: str) -> "BlueprintDraft":
        return replace(self, tags=self.tags + tuple(tags))

    def build(self) -> Blueprint:
        return Blueprint(
            name=self.name,
            description=self.description,
            tiles=list(self.tiles),
            metadata=BlueprintMetadata(
                tags=list(self.tags) if self.tags else None,
                input_schema=list(self.input_schema),
            ),
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _add_tile(
        self, kind: TileType, label: str, parameters: Dict[str, Any]
    ) -> "BlueprintDraft":
        """Appends a tile and links it to the current last tile."""
        tile_id = _generate_tile_id()
        last_tile = self.tiles[-1] if self.tiles else None

        new_tile = Tile(
            id=tile_id,
            type=kind.value,
            label=label,
            position=TilePosition(x=0, y=len(self.tiles) * TILE_SPACING),
            parameters=parameters,
            connections=TileConnections(
                input=last_tile.id if last_tile else None,
                output=None,
            ),
        )

        updated: List[Tile] = list(self.tiles)
        if last_tile is not None:
            updated[-1] = last_tile.model_copy(
                update={
                    "connections": TileConnections(
                        input=last_tile.connections.input, output=tile_id
                    )
                }
            )
        return replace(self, tiles=tuple(updated) + (new_tile,))


def blueprint(name: str) -> BlueprintDraft:
    """Starts a new, empty blueprint draft."""
    return BlueprintDraft(name=name)
