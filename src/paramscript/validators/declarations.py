"""
DECLARE_VARIABLE and INVALIDATE_PARAM.
"""

from ..ast import DeclareVariable, InvalidateParam
from ..errors import error_type_mismatch, error_redeclared_type, error_constraint
from ..runtime.context import AnalysisContext
from ..symbols import TrackedList
from ..types import VariableKind, SCALAR_TYPES, resolve_variable_type
from ..values import default_value, string_val
from .base import require_identifier, evaluate_default


def validate_declare_variable(node: DeclareVariable, ctx: AnalysisContext) -> None:
    """
    Declare a variable. A repeated declaration of the same type only bumps
    the declaration counter; the stored value is kept.
    """
    command = node.kind.value
    name = require_identifier(command, node.name)

    value_type = resolve_variable_type(node.var_kind, node.subtype)
    if value_type is None:
        declared = node.var_kind.value if node.subtype is None else f"{node.var_kind.value} {node.subtype}"
        raise error_type_mismatch("a concrete variable type", declared,
                                  what=f"declaration of '{name}'")

    existing = ctx.symbols.lookup(name)
    if existing is not None:
        if existing.type != value_type:
            raise error_redeclared_type(command, name, str(existing.type), str(value_type))
        result = ctx.symbols.declare(name, existing)
        ctx.note("N001", f"variable '{name}' redeclared (count now {result.count})")
        return

    if node.var_kind == VariableKind.PARAMETER:
        value = evaluate_default(ctx, value_type, node.default)
    else:
        if node.default is not None:
            raise error_constraint(command, f"{node.var_kind.value} '{name}' cannot have a default value")
        value = default_value(value_type)

    ctx.symbols.declare(name, value)


def validate_invalidate_param(node: InvalidateParam, ctx: AnalysisContext) -> None:
    """Queue a parameter for invalidation; the removal itself happens at run time."""
    command = node.kind.value
    name = require_identifier(command, node.name)

    existing = ctx.symbols.lookup(name)
    if existing is None:
        ctx.warn("W201", f"parameter '{name}' is not declared; INVALIDATE_PARAM has no effect yet")
    elif existing.type not in SCALAR_TYPES:
        raise error_type_mismatch("INTEGER, DOUBLE, STRING or BOOL", str(existing.type),
                                  command=command, what=f"invalidated parameter '{name}'")

    ctx.symbols.append_tracked(TrackedList.INVALIDATED_PARAMS, string_val(name))
    ctx.note("N005", f"'{name}' queued for invalidation")
