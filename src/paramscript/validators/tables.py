"""
BEGIN_TABLE: selection tables.

A table has a header of selection strings (column names), a row of data
types, and rows of cells. The validated table is bound as a Map under its
identifier with the materialized rows.
"""

from typing import Dict, List, Optional

from ..ast import BeginTable, Expression, StringLiteral, VariableRef
from ..errors import error_constraint, error_invalid_identifier, error_not_evaluable
from ..runtime.context import AnalysisContext
from ..types import ValueType, is_valid_identifier
from ..values import (
    Value, array_val, bool_val, double_val, int_val, map_val, string_val,
)
from .base import require_identifier


SELECTION_COLUMN = "SEL_STRING"
NO_VALUE = "NO_VALUE"

_TABLE_FLAGS = (
    "no_autosel", "no_filter", "depend_on_input", "invalidate_on_unselect",
    "show_autosel", "filter_rigid", "array",
)

# Column types whose cells may name things declared later in the script
_FORWARD_TYPES = ("SUBTABLE", "SUBCOMP")


def _column_types(node: BeginTable, ctx: AnalysisContext) -> List[str]:
    command = node.kind.value
    if len(node.data_types) != node.column_count:
        raise error_constraint(command, f"data type count ({len(node.data_types)}) does not match "
                                        f"column count ({node.column_count})")
    names = []
    for i, expr in enumerate(node.data_types):
        type_name = (ctx.evaluator.evaluate_to_string(expr) or "").upper()
        if type_name not in ctx.config.table_column_types:
            raise error_constraint(command, f"invalid data type '{type_name}' for column {i}")
        names.append(type_name)
    return names


def _column_keys(node: BeginTable, ctx: AnalysisContext) -> List[str]:
    command = node.kind.value
    keys = [SELECTION_COLUMN]
    for i, expr in enumerate(node.sel_strings[1:], start=1):
        if isinstance(expr, VariableRef):
            key = expr.name
        else:
            key = ctx.evaluator.evaluate_to_string(expr)
        if not key or not is_valid_identifier(key):
            raise error_invalid_identifier(command, key or "", getattr(expr, "span", None))
        keys.append(key)
    return keys


def _is_empty_cell(cell: Optional[Expression]) -> bool:
    if cell is None:
        return True
    if isinstance(cell, StringLiteral):
        return cell.value in ("", NO_VALUE)
    if isinstance(cell, VariableRef) and cell.name == NO_VALUE:
        return True
    return False


def _cell_value(ctx: AnalysisContext, cell: Expression, type_name: str,
                row: int, column: int) -> Optional[Value]:
    ev = ctx.evaluator
    value_type = ctx.config.table_column_types[type_name]

    if type_name in _FORWARD_TYPES and isinstance(cell, VariableRef) and cell.name not in ctx.symbols:
        ctx.note("N030", f"'{cell.name}' in row {row}, column {column} is a forward "
                         f"{type_name} reference")
        return string_val(cell.name)

    if value_type == ValueType.INTEGER:
        return int_val(ev.evaluate_to_int(cell))
    if value_type == ValueType.BOOL:
        return bool_val(ev.evaluate_to_int(cell) != 0)
    if value_type == ValueType.DOUBLE:
        return double_val(ev.evaluate_to_double(cell))
    if value_type in (ValueType.STRING, ValueType.REFERENCE):
        # Reference cells hold the name of the component to resolve later
        text = ev.evaluate_to_string(cell)
        if not text or text == NO_VALUE:
            return None
        return string_val(text)
    raise error_not_evaluable(f"cell in row {row}, column {column}", type_name, cell.span)


def validate_begin_table(node: BeginTable, ctx: AnalysisContext) -> None:
    """Validate a selection table and bind it under its identifier."""
    command = node.kind.value
    name = require_identifier(command, node.identifier, "identifier")

    column_types = _column_types(node, ctx)
    options = [ctx.evaluator.evaluate_to_string(opt) or "" for opt in node.options]

    if len(node.sel_strings) != node.column_count or node.column_count == 0:
        raise error_constraint(command, f"table '{name}' needs one SEL_STRING per column")
    keys = _column_keys(node, ctx)

    rows: List[Value] = []
    for r, cells in enumerate(node.rows):
        if len(cells) != node.column_count:
            raise error_constraint(command, f"row {r} of table '{name}' has {len(cells)} cell(s), "
                                            f"expected {node.column_count}")
        row: Dict[str, Optional[Value]] = {}
        for c, cell in enumerate(cells):
            if _is_empty_cell(cell):
                row[keys[c]] = None
            else:
                row[keys[c]] = _cell_value(ctx, cell, column_types[c], r, c)
        rows.append(map_val(row))

    table: Dict[str, Value] = {
        "rows": array_val(rows),
        "columns": array_val([string_val(k) for k in keys]),
        "options": array_val([string_val(o) for o in options]),
        "table_height": int_val(node.table_height),
    }
    if node.name is not None:
        table["name"] = string_val(ctx.evaluator.evaluate_to_string(node.name) or name)
    for flag in _TABLE_FLAGS:
        table[flag] = bool_val(getattr(node, flag))
    if node.filter_column >= 0:
        table["filter_column"] = int_val(node.filter_column)
    if node.filter_only_column >= 0:
        table["filter_only_column"] = int_val(node.filter_only_column)

    if name in ctx.symbols:
        ctx.symbols.overwrite(name, map_val(table))
        ctx.warn("W204", f"table '{name}' replaces an earlier binding")
    else:
        ctx.symbols.declare(name, map_val(table))
