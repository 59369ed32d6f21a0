"""
Command validators, one per command kind.

A validator has the shape ``validate(node, ctx) -> None`` and raises an
AnalysisError subclass on a fatal condition. run_command() applies one
validator inside its own symbol-table transaction and turns a failure into
a diagnostic plus a cleared ``semantic_valid`` flag.
"""

from typing import Callable, Dict

from ..ast import Command, CommandKind
from ..errors import AnalysisError, AllocationError, error_allocation, warning
from ..runtime.context import AnalysisContext

from .declarations import validate_declare_variable, validate_invalidate_param
from .dialog import validate_config_elem, validate_global_picture, validate_sub_picture
from .params import (
    validate_show_param, validate_checkbox_param,
    validate_user_input_param, validate_radiobutton_param,
)
from .selects import validate_user_select, validate_user_select_multiple
from .tables import validate_begin_table
from .control import validate_assignment, validate_if, validate_expression


Validator = Callable[[Command, AnalysisContext], None]

VALIDATORS: Dict[CommandKind, Validator] = {
    CommandKind.DECLARE_VARIABLE: validate_declare_variable,
    CommandKind.CONFIG_ELEM: validate_config_elem,
    CommandKind.GLOBAL_PICTURE: validate_global_picture,
    CommandKind.SUB_PICTURE: validate_sub_picture,
    CommandKind.SHOW_PARAM: validate_show_param,
    CommandKind.CHECKBOX_PARAM: validate_checkbox_param,
    CommandKind.USER_INPUT_PARAM: validate_user_input_param,
    CommandKind.RADIOBUTTON_PARAM: validate_radiobutton_param,
    CommandKind.USER_SELECT: validate_user_select,
    CommandKind.USER_SELECT_OPTIONAL: validate_user_select,
    CommandKind.USER_SELECT_MULTIPLE: validate_user_select_multiple,
    CommandKind.USER_SELECT_MULTIPLE_OPTIONAL: validate_user_select_multiple,
    CommandKind.BEGIN_TABLE: validate_begin_table,
    CommandKind.INVALIDATE_PARAM: validate_invalidate_param,
    CommandKind.ASSIGNMENT: validate_assignment,
    CommandKind.IF: validate_if,
    CommandKind.EXPRESSION: validate_expression,
}


def get_validator(kind: CommandKind):
    """Validator registered for `kind`, or None."""
    return VALIDATORS.get(kind)


def _record_failure(command: Command, ctx: AnalysisContext, error: AnalysisError) -> None:
    command.semantic_valid = False
    diagnostic = error.diagnostic
    if diagnostic.command is None:
        diagnostic.command = command.kind.value
    if diagnostic.span is None:
        diagnostic.span = command.span
    ctx.diagnostics.add(diagnostic)


def run_command(command: Command, ctx: AnalysisContext) -> bool:
    """
    Validate one command.

    Returns False if the command failed (its writes are rolled back and it
    is marked invalid). Commands without a validator are skipped with a
    warning and count as passed. Allocation failures propagate as
    AllocationError after being recorded.
    """
    validator = VALIDATORS.get(command.kind)
    if validator is None:
        ctx.diagnostics.add(warning(
            "W001", f"no validator for {command.kind.value}; command skipped",
            command.span, command.kind.value))
        return True

    try:
        with ctx.command_scope(command):
            validator(command, ctx)
    except AllocationError as exc:
        _record_failure(command, ctx, exc)
        raise
    except MemoryError:
        exc = error_allocation(command.kind.value, command.span)
        _record_failure(command, ctx, exc)
        raise exc from None
    except AnalysisError as exc:
        _record_failure(command, ctx, exc)
        return False
    return True


__all__ = [
    "VALIDATORS",
    "Validator",
    "get_validator",
    "run_command",
]
