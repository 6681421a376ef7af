"""
API Layer - Request/Response Schemas

Pydantic models for API request and response validation.
Field names are camelCase on the wire, like the blueprints themselves.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from ..domain.models import Blueprint, CraneModel


class ExecuteRequest(CraneModel):
    # Optional here so a missing blueprint gets the 400 body instead of a 422.
    blueprint: Optional[Blueprint] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    execution_id: Optional[str] = None


class RunBlueprintRequest(CraneModel):
    variables: Dict[str, Any] = Field(default_factory=dict)
    context: Optional[Any] = None


class CompileRequest(CraneModel):
    blueprint: Blueprint
    function_name: str = "execute"
    include_comments: bool = True


class ErrorResponse(CraneModel):
    success: bool = False
    error: str
    code: Optional[str] = None
