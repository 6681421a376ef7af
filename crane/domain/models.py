"""
Domain Layer - Static Blueprint Models

This module defines the static structure of a portal automation: Blueprints,
their Tiles (steps) and the kind-specific parameter records each Tile carries.
A Blueprint is immutable input to the execution engine and is never mutated
during a run.

Field names follow the wire format (camelCase) through aliases, so blueprints
stored as JSON by other clients load without translation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class CraneModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict using the wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TileType(str, Enum):
    """
    The nine step kinds a Tile can have.

    NAVIGATE: Load a URL.
    CLICK: Natural-language click.
    TYPE: Type a literal, a variable or a credential field into an element.
    AUTH: Log in with the credentials resolved for the current domain.
    EXTRACT: Pull structured data off the page into an output variable.
    SCREENSHOT: Capture the page.
    WAIT: Pause for a fixed duration.
    SELECT: Choose a value from a dropdown.
    FORM: Fill several fields in order.
    """

    NAVIGATE = "NAVIGATE"
    CLICK = "CLICK"
    TYPE = "TYPE"
    EXTRACT = "EXTRACT"
    SCREENSHOT = "SCREENSHOT"
    WAIT = "WAIT"
    SELECT = "SELECT"
    FORM = "FORM"
    AUTH = "AUTH"

    @classmethod
    def parse(cls, value: str) -> Optional["TileType"]:
        """Returns the matching TileType, or None for an unknown kind."""
        try:
            return cls(value)
        except ValueError:
            return None


class FieldType(str, Enum):
    """Types allowed in a blueprint's declared input schema."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"


# ==============================================================================
# Tile Parameters (one record per TileType)
# ==============================================================================


class TileParametersBase(CraneModel):
    """
    Shared behaviour of the per-kind parameter records.

    Unknown keys (e.g. editor-only data) are ignored, and explicit nulls are
    treated as "not provided" so that defaults apply.
    """

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class NavigateParameters(TileParametersBase):
    url: str
    wait_until: Literal["load", "domcontentloaded", "networkidle"] = "load"
    timeout: int = 30000


class ClickParameters(TileParametersBase):
    instruction: str


class TypeParameters(TileParametersBase):
    """
    Attributes:
        instruction: Which element to type into.
        value: Literal text (may contain {{placeholders}}). Highest priority.
        variable: Name of a variable whose value is typed.
        credential_field: "username", "password" or an extra credential field,
            resolved for the current page's domain.
    """

    instruction: str
    value: Optional[str] = None
    variable: Optional[str] = None
    credential_field: Optional[str] = None


class AuthParameters(TileParametersBase):
    pass


class ExtractParameters(TileParametersBase):
    instruction: str
    output_variable: Optional[str] = None
    extraction_schema: Optional[Any] = Field(default=None, alias="schema")


class ScreenshotParameters(TileParametersBase):
    full_page: bool = False


class WaitParameters(TileParametersBase):
    ms: float = 1000


class SelectParameters(TileParametersBase):
    instruction: str
    value: str


class FormField(TileParametersBase):
    instruction: str
    value: Optional[str] = None
    variable: Optional[str] = None


class FormParameters(TileParametersBase):
    fields: List[FormField] = Field(default_factory=list)


TileParameters = Union[
    NavigateParameters,
    ClickParameters,
    TypeParameters,
    AuthParameters,
    ExtractParameters,
    ScreenshotParameters,
    WaitParameters,
    SelectParameters,
    FormParameters,
]

PARAMETER_MODELS: Dict[TileType, Type[TileParametersBase]] = {
    TileType.NAVIGATE: NavigateParameters,
    TileType.CLICK: ClickParameters,
    TileType.TYPE: TypeParameters,
    TileType.AUTH: AuthParameters,
    TileType.EXTRACT: ExtractParameters,
    TileType.SCREENSHOT: ScreenshotParameters,
    TileType.WAIT: WaitParameters,
    TileType.SELECT: SelectParameters,
    TileType.FORM: FormParameters,
}


# ==============================================================================
# Tiles and Blueprints
# ==============================================================================


class TilePosition(CraneModel):
    """Location in the visual editor. Not used by the engine."""

    x: float = 0
    y: float = 0


class TileConnections(CraneModel):
    """
    Singly linked list pointers.

    Attributes:
        input: ID of the predecessor tile, or None for the entry point.
        output: ID of the successor tile, or None for the last tile.
    """

    input: Optional[str] = None
    output: Optional[str] = None


class Tile(CraneModel):
    """
    One automation step.

    `type` is kept as a plain string so that blueprints containing an unknown
    kind still load; the dispatcher reports those as failed steps instead of
    the whole blueprint being rejected.
    """

    id: str
    type: str
    label: str = ""
    description: Optional[str] = None
    position: TilePosition = Field(default_factory=TilePosition)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    connections: TileConnections = Field(default_factory=TileConnections)

    @property
    def kind(self) -> Optional[TileType]:
        return TileType.parse(self.type)

    def typed_parameters(self) -> TileParameters:
        """
        Validates the raw parameter map into this tile's parameter record.

        Raises:
            ValueError: if the kind is unknown.
            pydantic.ValidationError: if the parameters are malformed.
        """
        kind = self.kind
        if kind is None:
            raise ValueError(f"Unknown tile type: {self.type}")
        return PARAMETER_MODELS[kind].model_validate(self.parameters)


class InputField(CraneModel):
    name: str
    type: str = FieldType.STRING.value
    required: bool = False
    description: Optional[str] = None


class BlueprintMetadata(CraneModel):
    tags: Optional[List[str]] = None
    input_schema: List[InputField] = Field(default_factory=list)


class Blueprint(CraneModel):
    """
    A named automation definition composed of linked Tiles.

    Attributes:
        id: Store-assigned identifier (absent for unsaved drafts).
        organization_id: Owning organization scope.
        name: Human-readable name.
        description: Optional longer description.
        tiles: Tiles in construction order. Execution order comes from the
            connections, not from this list.
        metadata: Tags and the declared input-field schema.
    """

    id: Optional[str] = None
    organization_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    tiles: List[Tile] = Field(default_factory=list)
    metadata: BlueprintMetadata = Field(default_factory=BlueprintMetadata)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
