"""
Compiler - Blueprint to Python Source

Generates a standalone async Python function from a blueprint, using the
same tile ordering and interpolation conventions as the execution engine.
"""

from crane.compiler.codegen import CompileOptions, CompiledBlueprint, compile_blueprint

__all__ = [
    "CompileOptions",
    "CompiledBlueprint",
    "compile_blueprint",
]
