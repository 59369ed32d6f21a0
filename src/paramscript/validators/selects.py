"""
Geometry selection commands: USER_SELECT, USER_SELECT_OPTIONAL,
USER_SELECT_MULTIPLE and USER_SELECT_MULTIPLE_OPTIONAL.

Single selects accept unknown reference type names and map them to the
host's "unknown" code; multiple selects reject them.
"""

from typing import List, Tuple

from ..ast import SelectCommand, UserSelect, UserSelectMultiple, render_expression
from ..errors import (
    error_duplicate, error_missing_field, error_type_mismatch, error_unknown_reference_type,
)
from ..runtime.context import AnalysisContext
from ..symbols import TrackedList
from ..types import ValueType
from ..values import array_val, bool_val, int_val, reference_val, string_val
from .base import (
    Options, require_identifier, add_tooltip_and_image, add_on_picture,
    add_display_order, add_tag, non_empty_string, store_options, register_required,
)


def _claim_target(node: SelectCommand, ctx: AnalysisContext, field_name: str) -> str:
    command = node.kind.value
    name = require_identifier(command, node.target, field_name)
    if name in ctx.symbols:
        raise error_duplicate(command, name)
    if not node.types:
        raise error_missing_field(command, "TYPES")
    return name


def _resolve_types(node: SelectCommand, ctx: AnalysisContext,
                   strict: bool) -> Tuple[List[str], List[int]]:
    """Evaluate the TYPES list to names and host reference codes."""
    command = node.kind.value
    names: List[str] = []
    codes: List[int] = []
    for i, expr in enumerate(node.types):
        found = ctx.evaluator.static_type(expr)
        if found != ValueType.STRING:
            raise error_type_mismatch("STRING", str(found), expr.span, command, what=f"type {i}")
        type_name = non_empty_string(ctx, expr, f"type {i}")
        if strict and not ctx.config.is_known_reference(type_name):
            raise error_unknown_reference_type(command, type_name, expr.span)
        names.append(type_name)
        codes.append(ctx.config.reference_code(type_name))
    return names, codes


def _common_options(node: SelectCommand, ctx: AnalysisContext, name: str,
                    names: List[str], codes: List[int]) -> Options:
    options: Options = {
        "types": array_val([string_val(n) for n in names]),
        "allowed_types": array_val([int_val(c) for c in codes]),
        "required": bool_val(node.required),
    }
    add_display_order(ctx, options, node.display_order)
    for flag in ("allow_reselect", "select_by_box", "select_by_menu"):
        if getattr(node, flag):
            options[flag] = bool_val(True)
    add_tooltip_and_image(ctx, options, name, node.tooltip, node.image)
    add_on_picture(ctx, options, name, node.on_picture, node.pos_x, node.pos_y)
    add_tag(ctx, options, name, node.tag)
    return options


def validate_user_select(node: UserSelect, ctx: AnalysisContext) -> None:
    """Select one reference; binds a null Reference under the target name."""
    name = _claim_target(node, ctx, "reference")
    names, codes = _resolve_types(node, ctx, strict=False)
    for type_name, code in zip(names, codes):
        if code == ctx.config.unknown_reference_type:
            ctx.note("N020", f"reference type '{type_name}' is not a known host type")

    options = _common_options(node, ctx, name, names, codes)
    ctx.symbols.declare(name, reference_val())
    store_options(ctx, node.kind, name, options)
    if node.required:
        register_required(ctx, TrackedList.REQUIRED_SELECTS, name)


def validate_user_select_multiple(node: UserSelectMultiple, ctx: AnalysisContext) -> None:
    """Select several references into an array, bounded by MAX_SEL."""
    command = node.kind.value
    name = _claim_target(node, ctx, "array")
    names, codes = _resolve_types(node, ctx, strict=True)

    if node.max_sel is None:
        raise error_missing_field(command, "MAX_SEL")
    max_sel = ctx.evaluator.evaluate_to_int(node.max_sel)

    options = _common_options(node, ctx, name, names, codes)
    # Negative means unlimited
    options["max_sel"] = int_val(max_sel)

    if node.include_multi_cad is not None:
        flag = ctx.evaluator.evaluate_to_string(node.include_multi_cad)
        options["include_multi_cad"] = bool_val(flag.strip().upper() in ("TRUE", "1"))

    # Filters stay unevaluated; they may refer to values known only at run time
    for filter_name in ("filter_mdl", "filter_feat", "filter_geom", "filter_ref"):
        expr = getattr(node, filter_name)
        if expr is not None:
            options[filter_name] = string_val(render_expression(expr))
    if node.filter_identifier is not None:
        options["filter_identifier"] = string_val(
            ctx.evaluator.evaluate_to_string(node.filter_identifier))

    ctx.symbols.declare(name, array_val())
    store_options(ctx, node.kind, name, options)
    if node.required:
        register_required(ctx, TrackedList.REQUIRED_SELECTS, name)
    ctx.note("N021", f"'{name}' selects up to "
                     f"{'unlimited' if max_sel < 0 else max_sel} reference(s) of {len(names)} type(s)")
