"""
Dialog parameter commands: SHOW_PARAM, CHECKBOX_PARAM, USER_INPUT_PARAM and
RADIOBUTTON_PARAM.

Each binds the parameter itself (or reuses an existing binding of the same
type) and, when any display option is given, stores an option map in the
registry under the command kind and parameter name.
"""

from ..ast import ShowParam, CheckboxParam, UserInputParam, RadioButtonParam
from ..errors import error_constraint, error_invalid_identifier, error_invalid_subtype
from ..runtime.context import AnalysisContext
from ..symbols import TrackedList
from ..types import ParamSubtype, is_valid_identifier
from ..values import array_val, bool_val, double_val, string_val
from .base import (
    Options, require_identifier, require_subtype, bind_parameter, evaluate_default,
    add_tooltip_and_image, add_on_picture, add_display_order, add_tag,
    non_empty_string, store_options, register_required,
)


_CHOICE_SUBTYPES = (ParamSubtype.INT, ParamSubtype.BOOL)
_NUMERIC_SUBTYPES = (ParamSubtype.INT, ParamSubtype.DOUBLE)


# =============================================================================
# SHOW_PARAM
# =============================================================================

def validate_show_param(node: ShowParam, ctx: AnalysisContext) -> None:
    """Read-only display of a parameter."""
    command = node.kind.value
    name = require_identifier(command, node.name)
    value_type = require_subtype(command, name, node.subtype)
    bind_parameter(ctx, command, name, value_type)

    if node.tooltip is None and node.image is None and not node.on_picture:
        return

    options: Options = {}
    add_tooltip_and_image(ctx, options, name, node.tooltip, node.image)
    add_on_picture(ctx, options, name, node.on_picture, node.pos_x, node.pos_y)
    store_options(ctx, node.kind, name, options)


# =============================================================================
# CHECKBOX_PARAM
# =============================================================================

def validate_checkbox_param(node: CheckboxParam, ctx: AnalysisContext) -> None:
    """A checkbox bound to an INTEGER or BOOL parameter (unchecked by default)."""
    command = node.kind.value
    name = require_identifier(command, node.name)
    value_type = require_subtype(command, name, node.subtype, _CHOICE_SUBTYPES)
    bind_parameter(ctx, command, name, value_type)

    has_options = (node.required or node.display_order is not None or node.tooltip is not None
                   or node.image is not None or node.on_picture or node.tag is not None)
    if not has_options:
        return

    options: Options = {"required": bool_val(node.required)}
    add_display_order(ctx, options, node.display_order)
    add_tooltip_and_image(ctx, options, name, node.tooltip, node.image)
    add_on_picture(ctx, options, name, node.on_picture, node.pos_x, node.pos_y)
    add_tag(ctx, options, name, node.tag)
    store_options(ctx, node.kind, name, options)

    if node.required:
        register_required(ctx, TrackedList.REQUIRED_CHECKBOXES, name)


# =============================================================================
# USER_INPUT_PARAM
# =============================================================================

def validate_user_input_param(node: UserInputParam, ctx: AnalysisContext) -> None:
    """A free-form input field with optional range, width and formatting."""
    command = node.kind.value
    name = require_identifier(command, node.name)
    value_type = require_subtype(command, name, node.subtype)

    initial = None if name in ctx.symbols else evaluate_default(ctx, value_type, node.default)
    bind_parameter(ctx, command, name, value_type, initial)

    has_options = any((
        node.width is not None, node.decimal_places is not None, node.model is not None,
        node.display_order is not None, node.min_value is not None, node.max_value is not None,
        node.tooltip is not None, node.image is not None, node.on_picture,
        node.required, node.no_update, bool(node.default_for),
    ))
    if not has_options:
        return

    ev = ctx.evaluator
    options: Options = {
        "required": bool_val(node.required),
        "no_update": bool_val(node.no_update),
    }

    if node.default_for:
        for target in node.default_for:
            if not is_valid_identifier(target):
                raise error_invalid_identifier(command, target)
            if target not in ctx.symbols:
                ctx.warn("W202", f"DEFAULT_FOR of '{name}' names undeclared parameter '{target}'")
        options["default_for"] = array_val([string_val(t) for t in node.default_for])

    if node.width is not None:
        width = ev.evaluate_to_double(node.width)
        if width <= 0.0:
            raise error_constraint(command, f"WIDTH of '{name}' must be greater than 0")
        options["width"] = double_val(width)

    if node.decimal_places is not None:
        if node.subtype != ParamSubtype.DOUBLE:
            raise error_invalid_subtype(command, name, str(node.subtype), ["DOUBLE"])
        places = ev.evaluate_to_double(node.decimal_places)
        if places < 0.0:
            raise error_constraint(command, f"DECIMAL_PLACES of '{name}' must not be negative")
        options["decimal_places"] = double_val(places)

    if node.model is not None:
        options["model"] = string_val(non_empty_string(ctx, node.model, f"model of '{name}'"))

    add_display_order(ctx, options, node.display_order)

    min_value = max_value = None
    if node.min_value is not None or node.max_value is not None:
        if node.subtype not in _NUMERIC_SUBTYPES:
            raise error_invalid_subtype(command, name, str(node.subtype), ["INTEGER", "DOUBLE"])
    if node.min_value is not None:
        min_value = ev.evaluate_to_double(node.min_value)
        options["min_value"] = double_val(min_value)
    if node.max_value is not None:
        max_value = ev.evaluate_to_double(node.max_value)
        if min_value is not None and max_value < min_value:
            raise error_constraint(command, f"MAX_VALUE {max_value:g} is less than MIN_VALUE "
                                            f"{min_value:g} for '{name}'")
        options["max_value"] = double_val(max_value)

    add_tooltip_and_image(ctx, options, name, node.tooltip, node.image)
    add_on_picture(ctx, options, name, node.on_picture, node.pos_x, node.pos_y)
    store_options(ctx, node.kind, name, options)


# =============================================================================
# RADIOBUTTON_PARAM
# =============================================================================

def validate_radiobutton_param(node: RadioButtonParam, ctx: AnalysisContext) -> None:
    """
    A radio group. The parameter receives the index of the chosen option,
    so only INTEGER and BOOL are allowed, and BOOL has at most two options.
    """
    command = node.kind.value
    name = require_identifier(command, node.name)
    value_type = require_subtype(command, name, node.subtype, _CHOICE_SUBTYPES)
    if node.subtype == ParamSubtype.BOOL and len(node.options) > 2:
        raise error_constraint(command, f"BOOL radio group '{name}' cannot have more than 2 options")
    bind_parameter(ctx, command, name, value_type)

    if len(node.options) < 2:
        ctx.warn("W203", f"radio group '{name}' has fewer than 2 options")

    has_options = (node.required or node.display_order is not None or node.tooltip is not None
                   or node.image is not None or node.on_picture or bool(node.options))
    if not has_options:
        return

    options: Options = {}
    if node.options:
        labels = [non_empty_string(ctx, opt, f"option {i} of '{name}'")
                  for i, opt in enumerate(node.options)]
        options["options"] = array_val([string_val(label) for label in labels])
    options["required"] = bool_val(node.required)
    add_display_order(ctx, options, node.display_order)
    add_tooltip_and_image(ctx, options, name, node.tooltip, node.image)
    add_on_picture(ctx, options, name, node.on_picture, node.pos_x, node.pos_y)
    store_options(ctx, node.kind, name, options)

    if node.required:
        register_required(ctx, TrackedList.REQUIRED_RADIOS, name)
