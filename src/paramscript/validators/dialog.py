"""
Dialog-level commands: CONFIG_ELEM, GLOBAL_PICTURE and SUB_PICTURE.
"""

from typing import Optional

from ..ast import ConfigElem, GlobalPicture, SubPicture, Expression
from ..errors import (
    error_duplicate_singleton, error_missing_field, error_missing_prerequisite,
    error_constraint, error_type_mismatch,
)
from ..runtime.context import AnalysisContext
from ..symbols import Singleton, TrackedList
from ..types import ValueType
from ..values import bool_val, double_val, int_val, map_val, string_val
from .base import non_empty_string, resolve_picture_path


_CONFIG_FLAGS = (
    "no_tables", "no_gui", "auto_commit", "auto_close", "show_gui_for_existing",
    "no_auto_update", "continue_on_cancel", "has_screen_location",
)


def _dimension(ctx: AnalysisContext, expr: Optional[Expression], what: str) -> Optional[float]:
    if expr is None:
        return None
    value = ctx.evaluator.evaluate_to_double(expr)
    if value <= 0.0:
        raise error_constraint(ctx.command_name, f"{what} must be greater than 0, got {value:g}")
    if value < 1.0:
        ctx.note("N010", f"{what} {value:.2f} is a fraction of the screen")
    else:
        ctx.note("N010", f"{what} {value:.2f} is an absolute size")
    return value


def validate_config_elem(node: ConfigElem, ctx: AnalysisContext) -> None:
    """Dialog configuration; at most one per script."""
    command = node.kind.value
    if ctx.symbols.singleton(Singleton.CONFIG_ELEM) is not None:
        raise error_duplicate_singleton(command)

    width = _dimension(ctx, node.width, "width")
    height = _dimension(ctx, node.height, "height")
    if height is not None and width is None:
        raise error_constraint(command, "HEIGHT given without WIDTH")

    location = None
    if node.has_screen_location:
        if node.location is None:
            raise error_missing_field(command, "SCREEN_LOCATION option")
        location = non_empty_string(ctx, node.location, "SCREEN_LOCATION")
        if location not in ctx.config.screen_locations:
            raise error_constraint(
                command, f"invalid SCREEN_LOCATION '{location}'; "
                         f"expected one of {', '.join(ctx.config.screen_locations)}")

    entries = {flag: bool_val(getattr(node, flag)) for flag in _CONFIG_FLAGS}
    if location is not None:
        entries["location_option"] = string_val(location)
    if width is not None:
        entries["width"] = double_val(width)
    if height is not None:
        entries["height"] = double_val(height)

    ctx.symbols.set_singleton(Singleton.CONFIG_ELEM, map_val(entries))


def validate_global_picture(node: GlobalPicture, ctx: AnalysisContext) -> None:
    """The dialog's main picture. The first one wins; later ones are errors."""
    command = node.kind.value
    if node.picture is None:
        raise error_missing_field(command, "picture")
    if ctx.symbols.singleton(Singleton.GLOBAL_PICTURE) is not None:
        raise error_duplicate_singleton(command)

    file_name = non_empty_string(ctx, node.picture, "picture file name")
    path = resolve_picture_path(ctx, file_name)
    ctx.symbols.set_singleton(Singleton.GLOBAL_PICTURE, string_val(path))
    ctx.note("N011", f"global picture set to '{path}'")


def validate_sub_picture(node: SubPicture, ctx: AnalysisContext) -> None:
    """
    An overlay on the global picture. Positions are integers and may be
    negative; the host clips them.
    """
    command = node.kind.value
    for field_name in ("picture", "pos_x", "pos_y"):
        if getattr(node, field_name) is None:
            raise error_missing_field(command, field_name)

    if ctx.symbols.singleton(Singleton.GLOBAL_PICTURE) is None:
        raise error_missing_prerequisite(command, "GLOBAL_PICTURE")

    for label, expr in (("POS_X", node.pos_x), ("POS_Y", node.pos_y)):
        found = ctx.evaluator.static_type(expr)
        if found != ValueType.INTEGER:
            raise error_type_mismatch("INTEGER", str(found), expr.span, command, what=label)

    file_name = non_empty_string(ctx, node.picture, "picture file name")
    path = resolve_picture_path(ctx, file_name)
    if not ctx.config.is_supported_image(path):
        ctx.warn("W301", f"unsupported image format for sub picture '{path}'")

    entry = {
        "path": string_val(path),
        "posX": int_val(ctx.evaluator.evaluate_to_int(node.pos_x)),
        "posY": int_val(ctx.evaluator.evaluate_to_int(node.pos_y)),
    }
    ctx.symbols.append_tracked(TrackedList.SUB_PICTURES, map_val(entry))
