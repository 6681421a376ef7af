"""
Blueprint Compiler

Turns a blueprint into a standalone Python module that performs the same
steps, in the same order, as an interpreted run. The generated coroutine
talks to an ActionProvider directly; it does not import this package.

Compilation is pure: the action provider is never touched.
"""

import builtins
import keyword
import logging
from typing import List, Optional

from pydantic import Field
from pydantic import ValidationError as ParametersError

from ..domain.models import Blueprint, CraneModel, Tile, TileType
from ..execution.dispatcher import PASSWORD_TARGET, SUBMIT_INSTRUCTION, USERNAME_TARGET
from ..execution.interpolation import find_placeholders
from ..execution.ordering import sort_tiles
from ..services.exceptions import ValidationError
from .loader import render
from .templates import Template

logger = logging.getLogger(__name__)

# Module-level names of the generated module; the entry function must not shadow them.
GENERATED_MODULE_NAMES = frozenset(
    {
        "asyncio",
        "json",
        "re",
        "urlparse",
        "_PLACEHOLDER",
        "BlueprintStepError",
        "stringify",
        "interpolate",
        "_variable_text",
        "_type_instruction",
        "_act",
        "_resolve_credential",
        "_credential_field",
    }
)


class CompileOptions(CraneModel):
    function_name: str = "execute"
    include_comments: bool = True


class CompiledBlueprint(CraneModel):
    """
    Attributes:
        code: Source of the generated Python module.
        function_name: Name of the generated coroutine.
        input_variables: Variables the steps read, in first-seen order.
        output_variables: Variables produced by EXTRACT steps.
    """

    code: str
    function_name: str
    input_variables: List[str] = Field(default_factory=list)
    output_variables: List[str] = Field(default_factory=list)


class _VariableCollector:
    """Ordered, de-duplicated variable names."""

    def __init__(self):
        self.names: List[str] = []

    def add(self, name: Optional[str]):
        if name and name not in self.names:
            self.names.append(name)

    def add_template(self, template: Optional[str]):
        for name in find_placeholders(template or ""):
            self.add(name)


def compile_blueprint(blueprint: Blueprint, options: Optional[CompileOptions] = None) -> CompiledBlueprint:
    """
    Compiles a blueprint into Python source.

    Raises:
        ValidationError: if the function name is not a valid identifier, clashes
            with a name the generated module defines or uses, or a tile's
            parameters are malformed.
    """
    options = options or CompileOptions()
    function_name = options.function_name
    if not function_name.isidentifier() or keyword.iskeyword(function_name):
        raise ValidationError(f"Invalid function name: {function_name!r}")
    if function_name in GENERATED_MODULE_NAMES or hasattr(builtins, function_name):
        raise ValidationError(f"Function name {function_name!r} is reserved in the generated module")

    inputs = _VariableCollector()
    outputs = _VariableCollector()
    snippets = []

    for tile in sort_tiles(blueprint.tiles):
        snippets.append(_compile_tile(tile, options, inputs, outputs).strip())

    code = render(
        Template.MODULE,
        name=blueprint.name,
        description=blueprint.description,
        function_name=function_name,
        snippets=snippets,
    )

    logger.info(
        f"Compiled blueprint '{blueprint.name}': {len(snippets)} tile(s), "
        f"{len(inputs.names)} input(s), {len(outputs.names)} output(s)"
    )

    return CompiledBlueprint(
        code=code,
        function_name=function_name,
        input_variables=inputs.names,
        output_variables=outputs.names,
    )


def _compile_tile(
    tile: Tile,
    options: CompileOptions,
    inputs: _VariableCollector,
    outputs: _VariableCollector,
) -> str:
    kind = tile.kind
    params = None

    if kind is None:
        logger.warning(f"Tile '{tile.id}' has unknown type '{tile.type}'; it will fail at run time")
    else:
        try:
            params = tile.typed_parameters()
        except ParametersError as e:
            raise ValidationError(f"Invalid parameters for {tile.type} tile '{tile.id}': {e}") from e
        _collect_variables(kind, params, inputs, outputs)

    return render(
        Template.TILE,
        tile=tile,
        kind=kind.value if kind else None,
        params=params,
        include_comments=options.include_comments,
        username_target=USERNAME_TARGET,
        password_target=PASSWORD_TARGET,
        submit_instruction=SUBMIT_INSTRUCTION,
    )


def _collect_variables(kind: TileType, params, inputs: _VariableCollector, outputs: _VariableCollector):
    if kind == TileType.NAVIGATE:
        inputs.add_template(params.url)
    elif kind in (TileType.CLICK, TileType.SELECT):
        inputs.add_template(params.instruction)
        inputs.add_template(getattr(params, "value", None))
    elif kind == TileType.TYPE:
        inputs.add_template(params.instruction)
        if params.value:
            inputs.add_template(params.value)
        inputs.add(params.variable)
    elif kind == TileType.EXTRACT:
        inputs.add_template(params.instruction)
        outputs.add(params.output_variable)
    elif kind == TileType.FORM:
        for field in params.fields:
            inputs.add_template(field.instruction)
            if field.value:
                inputs.add_template(field.value)
            inputs.add(field.variable)
