"""
Procedural commands: ASSIGNMENT, IF and bare EXPRESSION statements.

Assignments and conditionals are only type-checked here; they run later
in the execution engine. Each one leaves a record in the registry so the
engine can find which conditional branches write which variables.
"""

from typing import List

from ..ast import (
    Assignment, IfCommand, ExpressionCommand, VariableRef,
    ASSIGNABLE_EXPRESSIONS, render_expression,
)
from ..errors import (
    AnalysisError, error_invalid_node, error_missing_field, error_type_mismatch,
    error_condition_type, error_branch_failures,
)
from ..runtime.context import AnalysisContext
from ..symbols import RecordKind
from ..types import ValueType, TRUTHY_TYPES
from ..values import array_val, bool_val, int_val, map_val, string_val


ELSE_BRANCH = -1


# =============================================================================
# ASSIGNMENT
# =============================================================================

def validate_assignment(node: Assignment, ctx: AnalysisContext) -> None:
    """lhs = rhs; Integer widens to Double, Double narrows to Integer with a warning."""
    command = node.kind.value
    if node.lhs is None or node.rhs is None:
        raise error_missing_field(command, "left-hand side" if node.lhs is None else "right-hand side")
    if not isinstance(node.lhs, ASSIGNABLE_EXPRESSIONS):
        raise error_invalid_node(f"cannot assign to {render_expression(node.lhs)}", node.lhs.span, command)

    lhs_type = ctx.evaluator.static_type(node.lhs)
    rhs_type = ctx.evaluator.static_type(node.rhs)
    lhs_text = render_expression(node.lhs)

    if lhs_type != rhs_type:
        if lhs_type == ValueType.DOUBLE and rhs_type == ValueType.INTEGER:
            pass
        elif lhs_type == ValueType.INTEGER and rhs_type == ValueType.DOUBLE:
            ctx.warn("W210", f"DOUBLE value assigned to INTEGER '{lhs_text}' is truncated")
        else:
            raise error_type_mismatch(str(lhs_type), str(rhs_type), node.span, command,
                                      what=f"assignment to '{lhs_text}'")

    record = {
        "assign_id": int_val(node.assign_id),
        "lhs_text": string_val(lhs_text),
        "rhs_text": string_val(render_expression(node.rhs)),
        "lhs_type": string_val(str(lhs_type)),
        "rhs_type": string_val(str(rhs_type)),
    }
    if isinstance(node.lhs, VariableRef):
        record["lhs_name"] = string_val(node.lhs.name)
    if ctx.current_if_id is not None:
        record["if_id"] = int_val(ctx.current_if_id)
        record["branch_index"] = int_val(ctx.current_branch)
    ctx.symbols.set_record(RecordKind.ASSIGNMENTS, node.assign_id, map_val(record))


# =============================================================================
# IF
# =============================================================================

def _check_condition(node: IfCommand, index: int, ctx: AnalysisContext) -> bool:
    branch = node.branches[index]
    try:
        if branch.condition is None:
            raise error_missing_field(node.kind.value, f"condition of branch {index}")
        found = ctx.evaluator.static_type(branch.condition)
        if found not in TRUTHY_TYPES:
            raise error_condition_type(str(found), branch.condition.span)
    except AnalysisError as exc:
        ctx.report(exc.diagnostic)
        return False
    return True


def _assignment_ids(commands) -> List[int]:
    return [c.assign_id for c in commands if isinstance(c, Assignment) and c.semantic_valid]


def validate_if(node: IfCommand, ctx: AnalysisContext) -> None:
    """
    Check every condition and analyze every branch, including the ones
    after a failure. Any failure inside makes the whole conditional
    invalid once all branches have been seen.
    """
    from . import run_command

    if not node.branches:
        raise error_missing_field(node.kind.value, "IF branch")

    failures = 0
    with ctx.if_scope(node.if_id):
        for index, branch in enumerate(node.branches):
            if not _check_condition(node, index, ctx):
                failures += 1
            ctx.current_branch = index
            for command in branch.commands:
                if not run_command(command, ctx):
                    failures += 1

        ctx.current_branch = ELSE_BRANCH
        for command in node.else_commands:
            if not run_command(command, ctx):
                failures += 1

    branch_assignments = [array_val([int_val(i) for i in _assignment_ids(b.commands)])
                          for b in node.branches]
    branch_assignments.append(array_val([int_val(i) for i in _assignment_ids(node.else_commands)]))
    record = {
        "if_id": int_val(node.if_id),
        "branch_count": int_val(len(node.branches)),
        "else_command_count": int_val(len(node.else_commands)),
        "if_condition": string_val(render_expression(node.branches[0].condition)),
        "branch_assignments": array_val(branch_assignments),
        "has_assignments": bool_val(any(b.data for b in branch_assignments)),
    }
    # Committed on its own so the record outlives an aggregate failure
    with ctx.symbols.transaction():
        ctx.symbols.set_record(RecordKind.IFS, node.if_id, map_val(record))

    if failures:
        raise error_branch_failures(failures, node.span)


# =============================================================================
# EXPRESSION
# =============================================================================

def validate_expression(node: ExpressionCommand, ctx: AnalysisContext) -> None:
    if node.expression is None:
        raise error_missing_field(node.kind.value, "expression")
    ctx.evaluator.static_type(node.expression)
