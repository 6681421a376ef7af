"""
Domain Layer - Static Blueprint Models

Defines the core domain model representing the static structure of
portal automations: Blueprints, Tiles and their per-kind parameters.
"""

from crane.domain.models import (
    AuthParameters,
    Blueprint,
    BlueprintMetadata,
    ClickParameters,
    ExtractParameters,
    FieldType,
    FormField,
    FormParameters,
    InputField,
    NavigateParameters,
    PARAMETER_MODELS,
    ScreenshotParameters,
    SelectParameters,
    Tile,
    TileConnections,
    TileParameters,
    TilePosition,
    TileType,
    TypeParameters,
    WaitParameters,
)
from crane.domain.builder import BlueprintDraft, blueprint

__all__ = [
    "AuthParameters",
    "Blueprint",
    "BlueprintDraft",
    "BlueprintMetadata",
    "ClickParameters",
    "ExtractParameters",
    "FieldType",
    "FormField",
    "FormParameters",
    "InputField",
    "NavigateParameters",
    "PARAMETER_MODELS",
    "ScreenshotParameters",
    "SelectParameters",
    "Tile",
    "TileConnections",
    "TileParameters",
    "TilePosition",
    "TileType",
    "TypeParameters",
    "WaitParameters",
    "blueprint",
]
