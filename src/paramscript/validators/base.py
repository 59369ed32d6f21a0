"""
Rules shared by the command validators.

Every helper raises an AnalysisError subclass on a fatal condition and
reports notes/warnings through the context. Helpers never catch errors
raised by the evaluator; those propagate to the driver unchanged.
"""

from typing import Dict, Iterable, Optional

from ..ast import CommandKind, Expression
from ..errors import (
    error_missing_field, error_invalid_identifier, error_invalid_subtype,
    error_redeclared_type, error_image_requires_tooltip, error_on_picture_position,
    error_empty_value, error_constraint,
)
from ..runtime.context import AnalysisContext
from ..symbols import TrackedList
from ..types import ParamSubtype, ValueType, is_valid_identifier
from ..values import (
    Value, default_value, int_val, double_val, string_val, bool_val, map_val,
)


Options = Dict[str, Value]


# =============================================================================
# Names and types
# =============================================================================

def require_identifier(command: str, name: Optional[str], field_name: str = "name") -> str:
    """Return `name` if it is a usable identifier, otherwise raise."""
    if not name:
        raise error_missing_field(command, field_name)
    if not is_valid_identifier(name):
        raise error_invalid_identifier(command, name)
    return name


def require_subtype(command: str, name: str, subtype: Optional[ParamSubtype],
                    allowed: Iterable[ParamSubtype] = tuple(ParamSubtype)) -> ValueType:
    """Map a parameter subtype to its value type, restricted to `allowed`."""
    allowed = tuple(allowed)
    if subtype is None:
        raise error_missing_field(command, "subtype")
    if subtype not in allowed:
        raise error_invalid_subtype(command, name, str(subtype), [str(a) for a in allowed])
    return subtype.value_type


def bind_parameter(ctx: AnalysisContext, command: str, name: str,
                   value_type: ValueType, initial: Optional[Value] = None) -> Value:
    """
    Bind a dialog parameter, or reuse an existing binding of the same type.

    A new binding holds `initial` (or the type's zero value). An existing
    binding keeps its value and has its declaration count incremented.
    """
    existing = ctx.symbols.lookup(name)
    if existing is not None:
        if existing.type != value_type:
            raise error_redeclared_type(command, name, str(existing.type), str(value_type))
        result = ctx.symbols.declare(name, existing)
        ctx.note("N002", f"parameter '{name}' already exists (count now {result.count}); "
                         f"{command} options apply to it")
        return existing

    value = initial if initial is not None else default_value(value_type)
    ctx.symbols.declare(name, value)
    return value


def evaluate_default(ctx: AnalysisContext, value_type: ValueType,
                     expr: Optional[Expression]) -> Value:
    """Evaluate a default expression for a scalar parameter of `value_type`."""
    if expr is None:
        return default_value(value_type)
    ev = ctx.evaluator
    if value_type == ValueType.INTEGER:
        return int_val(ev.evaluate_to_int(expr))
    if value_type == ValueType.BOOL:
        return bool_val(ev.evaluate_to_int(expr) != 0)
    if value_type == ValueType.DOUBLE:
        return double_val(ev.evaluate_to_double(expr))
    if value_type == ValueType.STRING:
        return string_val(ev.evaluate_to_string(expr) or "")
    raise error_constraint(ctx.command_name, f"no default value allowed for a {value_type} binding")


# =============================================================================
# Field evaluation
# =============================================================================

def non_empty_string(ctx: AnalysisContext, expr: Expression, what: str) -> str:
    text = ctx.evaluator.evaluate_to_string(expr)
    if not text:
        raise error_empty_value(ctx.command_name, what)
    return text


def non_negative_int(ctx: AnalysisContext, expr: Expression, what: str) -> int:
    value = ctx.evaluator.evaluate_to_int(expr)
    if value < 0:
        raise error_constraint(ctx.command_name, f"{what} must not be negative, got {value}")
    return value


# =============================================================================
# Display options
# =============================================================================

def add_tooltip_and_image(ctx: AnalysisContext, options: Options, name: str,
                          tooltip: Optional[Expression], image: Optional[Expression],
                          image_key: str = "image") -> None:
    """Evaluate TOOLTIP and IMAGE; IMAGE without TOOLTIP is rejected."""
    if image is not None and tooltip is None:
        raise error_image_requires_tooltip(ctx.command_name, name)
    if tooltip is not None:
        options["tooltip"] = string_val(non_empty_string(ctx, tooltip, f"tooltip of '{name}'"))
    if image is not None:
        options[image_key] = string_val(non_empty_string(ctx, image, f"image of '{name}'"))


def add_on_picture(ctx: AnalysisContext, options: Options, name: str, on_picture: bool,
                   pos_x: Optional[Expression], pos_y: Optional[Expression]) -> None:
    """ON_PICTURE needs both positions as non-negative integers."""
    if not on_picture:
        return
    command = ctx.command_name
    if pos_x is None or pos_y is None:
        raise error_on_picture_position(command, name, "POS_X and POS_Y are required")
    x = ctx.evaluator.evaluate_to_int(pos_x)
    y = ctx.evaluator.evaluate_to_int(pos_y)
    if x < 0 or y < 0:
        raise error_on_picture_position(command, name, f"negative position ({x}, {y})")
    options["on_picture"] = bool_val(True)
    options["posX"] = int_val(x)
    options["posY"] = int_val(y)


def add_display_order(ctx: AnalysisContext, options: Options,
                      expr: Optional[Expression]) -> None:
    if expr is not None:
        options["display_order"] = int_val(non_negative_int(ctx, expr, "DISPLAY_ORDER"))


def add_tag(ctx: AnalysisContext, options: Options, name: str,
            expr: Optional[Expression]) -> None:
    if expr is not None:
        options["tag"] = string_val(non_empty_string(ctx, expr, f"tag of '{name}'"))


def store_options(ctx: AnalysisContext, kind: CommandKind, name: str, options: Options) -> None:
    """Store an option map for parameter `name` in the registry."""
    ctx.symbols.set_options(kind, name, map_val(options))
    ctx.note("N003", f"stored {kind.value} options for '{name}'")


def register_required(ctx: AnalysisContext, which: TrackedList, name: str) -> None:
    ctx.symbols.append_tracked(which, string_val(name))
    ctx.note("N004", f"'{name}' marked as required ({which.value})")


# =============================================================================
# Picture paths
# =============================================================================

def is_rooted_path(path: str) -> bool:
    """Absolute, UNC or drive-qualified."""
    if path.startswith("/") or path.startswith("\\\\"):
        return True
    return len(path) >= 2 and path[0].isalpha() and path[1] == ":"


def resolve_picture_path(ctx: AnalysisContext, file_name: str) -> str:
    """Prefix a relative picture name with the base directory binding."""
    base = ctx.symbols.lookup(ctx.config.base_directory_symbol)
    if base is None or base.type != ValueType.STRING or is_rooted_path(file_name):
        return file_name
    return base.data + file_name
