"""
Expression evaluator for paramscript.

Three coupled operations over an expression and the symbol table:

- static_type(): infer a ValueType without evaluating anything
- evaluate_to_int() / evaluate_to_double() / evaluate_to_string(): evaluate
  down to one coerced Python primitive
- evaluate(): full evaluation returning a fresh Value

None of them mutate the symbol table. Failures raise AnalysisError
subclasses; heuristic fallbacks are reported as warnings.
"""

from typing import List, Optional

from ..ast import (
    Expression, IntLiteral, DoubleLiteral, StringLiteral, BoolLiteral,
    Constant, VariableRef, UnaryOp, BinaryOp, FunctionCall,
    ArrayIndex, MapLookup, StructAccess, render_expression,
)
from ..tokens import (
    TokenType, OPERATOR_SYMBOLS,
    ARITHMETIC_OPERATORS, EQUALITY_OPERATORS, ORDERING_OPERATORS, LOGICAL_OPERATORS,
)
from ..types import ValueType, TRUTHY_TYPES
from ..values import (
    Value, int_val, double_val, string_val, bool_val, format_scalar,
)
from ..symbols import SymbolTable
from ..errors import (
    DiagnosticCollector, warning,
    error_invalid_operands, error_function_arity, error_argument_type,
    error_not_evaluable, error_division_by_zero, error_constraint,
    error_undefined_identifier, error_unknown_function, error_missing_member,
    error_index_out_of_range, error_invalid_node, error_type_mismatch,
)
from .builtins import BuiltinError, call_builtin


DEFAULT_EPSILON = 1e-9

# Characters that mark an undeclared identifier as a bare file name
PATH_SEPARATORS = (".", "/", "\\")

_LITERAL_NUMBERS = (IntLiteral, DoubleLiteral, BoolLiteral)


def looks_like_path(name: str) -> bool:
    return any(sep in name for sep in PATH_SEPARATORS)


def _trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


class Evaluator:
    """
    Evaluates expressions against a symbol table.

    Usage:
        ev = Evaluator(symbols, diagnostics)
        ev.static_type(expr)        # -> ValueType
        ev.evaluate_to_int(expr)    # -> Optional[int]
        ev.evaluate(expr)           # -> Value
    """

    def __init__(self, symbols: SymbolTable,
                 diagnostics: Optional[DiagnosticCollector] = None,
                 epsilon: float = DEFAULT_EPSILON):
        self.symbols = symbols
        self.diagnostics = diagnostics
        self.epsilon = epsilon

    # =========================================================================
    # Static typing
    # =========================================================================

    def static_type(self, expr: Expression) -> ValueType:
        """Infer the type of an expression."""
        if expr is None:
            raise error_invalid_node("missing expression")

        if isinstance(expr, IntLiteral):
            return ValueType.INTEGER
        if isinstance(expr, DoubleLiteral):
            return ValueType.DOUBLE
        if isinstance(expr, StringLiteral):
            return ValueType.STRING
        if isinstance(expr, BoolLiteral):
            return ValueType.BOOL
        if isinstance(expr, Constant):
            return ValueType.DOUBLE
        if isinstance(expr, VariableRef):
            return self._type_variable(expr)
        if isinstance(expr, UnaryOp):
            operand = self.static_type(expr.operand)
            if expr.operator == TokenType.MINUS and operand.is_numeric:
                return operand
            raise error_invalid_operands(OPERATOR_SYMBOLS[expr.operator], str(operand), span=expr.span)
        if isinstance(expr, BinaryOp):
            return self._type_binary_op(expr)
        if isinstance(expr, FunctionCall):
            return self._type_function_call(expr)
        if isinstance(expr, ArrayIndex):
            return self._type_array_index(expr)
        if isinstance(expr, MapLookup):
            return self._lookup_map_entry(expr).type
        if isinstance(expr, StructAccess):
            return self._lookup_struct_member(expr).type

        raise error_invalid_node(f"unsupported expression {type(expr).__name__}", expr.span)

    def _type_variable(self, expr: VariableRef) -> ValueType:
        value = self.symbols.lookup(expr.name)
        if value is not None:
            return value.type
        if looks_like_path(expr.name):
            self._warn("W101", f"undeclared identifier '{expr.name}' treated as a file name", expr)
            return ValueType.STRING
        raise error_undefined_identifier(expr.name, expr.span)

    def _type_binary_op(self, expr: BinaryOp) -> ValueType:
        left = self.static_type(expr.left)
        right = self.static_type(expr.right)
        op = expr.operator
        symbol = OPERATOR_SYMBOLS[op]

        if op == TokenType.PLUS and ValueType.STRING in (left, right):
            return ValueType.STRING

        if op in ARITHMETIC_OPERATORS:
            if not (left.is_numeric and right.is_numeric):
                raise error_invalid_operands(symbol, str(left), str(right), expr.span)
            if op == TokenType.SLASH or ValueType.DOUBLE in (left, right):
                return ValueType.DOUBLE
            return ValueType.INTEGER

        if op in EQUALITY_OPERATORS or op in ORDERING_OPERATORS:
            if left != right:
                raise error_invalid_operands(symbol, str(left), str(right), expr.span)
            if op in ORDERING_OPERATORS and not left.is_numeric:
                raise error_invalid_operands(symbol, str(left), str(right), expr.span)
            if not left.is_scalar:
                raise error_invalid_operands(symbol, str(left), str(right), expr.span)
            return ValueType.BOOL

        if op in LOGICAL_OPERATORS:
            if left in TRUTHY_TYPES and right in TRUTHY_TYPES:
                return ValueType.BOOL
            raise error_invalid_operands(symbol, str(left), str(right), expr.span)

        raise error_invalid_node(f"unknown binary operator {op}", expr.span)

    def _type_function_call(self, expr: FunctionCall) -> ValueType:
        sig = self.symbols.lookup_builtin(expr.name)
        if sig is None:
            raise error_unknown_function(expr.name, expr.span)
        if len(expr.args) != sig.arity:
            raise error_function_arity(sig.name, sig.arity, len(expr.args), expr.span)
        for i, (arg, (_, expected)) in enumerate(zip(expr.args, sig.params)):
            found = self.static_type(arg)
            if not expected.is_assignable_from(found):
                raise error_argument_type(sig.name, i, str(expected), str(found), arg.span)
        return sig.return_type

    def _type_array_index(self, expr: ArrayIndex) -> ValueType:
        base_type = self.static_type(expr.base)
        if base_type != ValueType.ARRAY:
            raise error_type_mismatch("ARRAY", str(base_type), expr.span, what="indexed value")
        index_type = self.static_type(expr.index)
        if index_type != ValueType.INTEGER:
            raise error_type_mismatch("INTEGER", str(index_type), expr.span, what="array index")
        # Arrays are homogeneous by convention; the first element decides
        elements = self._resolve_stored(expr.base).as_array()
        if not elements:
            raise error_not_evaluable("element type of empty array", "a typed value", expr.span)
        return elements[0].type

    # =========================================================================
    # Container access (borrowed values, no copies)
    # =========================================================================

    def _resolve_stored(self, expr: Expression) -> Value:
        """The stored Value an access expression refers to."""
        if isinstance(expr, VariableRef):
            value = self.symbols.lookup(expr.name)
            if value is None:
                raise error_undefined_identifier(expr.name, expr.span)
            return value
        if isinstance(expr, ArrayIndex):
            return self._lookup_array_element(expr)
        if isinstance(expr, MapLookup):
            return self._lookup_map_entry(expr)
        if isinstance(expr, StructAccess):
            return self._lookup_struct_member(expr)
        # Computed containers
        return self.evaluate(expr)

    def _lookup_array_element(self, expr: ArrayIndex) -> Value:
        base = self._resolve_stored(expr.base)
        if base.type != ValueType.ARRAY:
            raise error_type_mismatch("ARRAY", str(base.type), expr.span, what="indexed value")
        index = self.evaluate(expr.index)
        if index.type != ValueType.INTEGER:
            raise error_type_mismatch("INTEGER", str(index.type), expr.span, what="array index")
        elements = base.as_array()
        if not 0 <= index.data < len(elements):
            raise error_index_out_of_range(_describe(expr.base), index.data, expr.span)
        return elements[index.data]

    def _lookup_map_entry(self, expr: MapLookup) -> Value:
        base = self._resolve_stored(expr.map)
        if base.type != ValueType.MAP:
            raise error_type_mismatch("MAP", str(base.type), expr.span, what="map lookup")
        entry = base.as_map().get(expr.key)
        if entry is None:
            raise error_missing_member(_describe(expr.map), expr.key, expr.span)
        return entry

    def _lookup_struct_member(self, expr: StructAccess) -> Value:
        base = self._resolve_stored(expr.structure)
        if base.type != ValueType.STRUCTURE:
            raise error_type_mismatch("STRUCTURE", str(base.type), expr.span, what="member access")
        member = base.as_structure().get(expr.member)
        if member is None:
            raise error_missing_member(_describe(expr.structure), expr.member, expr.span)
        return member

    # =========================================================================
    # Coerced evaluation
    # =========================================================================

    def evaluate_to_int(self, expr: Optional[Expression]) -> Optional[int]:
        """
        Evaluate to an integer. Doubles truncate toward zero, booleans give
        0/1. Returns None for an absent expression.
        """
        if expr is None:
            return None
        if isinstance(expr, (IntLiteral, BoolLiteral)):
            return int(expr.value)
        if isinstance(expr, (DoubleLiteral, Constant)):
            return int(expr.value)
        if isinstance(expr, StringLiteral):
            raise error_not_evaluable(f'"{expr.value}"', "INTEGER", expr.span)
        if isinstance(expr, VariableRef):
            return self._number_as_int(self._variable_for_coercion(expr), expr)
        if isinstance(expr, UnaryOp) and expr.operator == TokenType.MINUS:
            return -self.evaluate_to_int(expr.operand)
        if isinstance(expr, BinaryOp) and expr.operator in ARITHMETIC_OPERATORS:
            left = self.evaluate_to_int(expr.left)
            right = self.evaluate_to_int(expr.right)
            if expr.operator == TokenType.PLUS:
                return left + right
            if expr.operator == TokenType.MINUS:
                return left - right
            if expr.operator == TokenType.STAR:
                return left * right
            if right == 0:
                raise error_division_by_zero(expr.span)
            return _trunc_div(left, right)
        return self._number_as_int(self.evaluate(expr), expr)

    def evaluate_to_double(self, expr: Optional[Expression]) -> Optional[float]:
        """
        Evaluate to a double. Integers widen; booleans and strings are
        rejected. Returns None for an absent expression.
        """
        if expr is None:
            return None
        if isinstance(expr, (IntLiteral, DoubleLiteral, Constant)):
            return float(expr.value)
        if isinstance(expr, (StringLiteral, BoolLiteral)):
            raise error_not_evaluable(_describe(expr), "DOUBLE", expr.span)
        if isinstance(expr, VariableRef):
            return self._number_as_double(self._variable_for_coercion(expr), expr)
        if isinstance(expr, UnaryOp) and expr.operator == TokenType.MINUS:
            return -self.evaluate_to_double(expr.operand)
        if isinstance(expr, BinaryOp) and expr.operator in ARITHMETIC_OPERATORS:
            left = self.evaluate_to_double(expr.left)
            right = self.evaluate_to_double(expr.right)
            if expr.operator == TokenType.PLUS:
                return left + right
            if expr.operator == TokenType.MINUS:
                return left - right
            if expr.operator == TokenType.STAR:
                return left * right
            if right == 0.0:
                raise error_division_by_zero(expr.span)
            return left / right
        return self._number_as_double(self.evaluate(expr), expr)

    def evaluate_to_string(self, expr: Optional[Expression]) -> Optional[str]:
        """
        Evaluate to a string.

        Variables render through their type (integers in decimal, doubles
        with up to 15 significant digits, booleans as 1/0); array, reference
        and undeclared names render as the name itself. `+` concatenates
        when both sides evaluate to strings; a numeric literal operand is
        rejected. Returns None for an absent expression.
        """
        if expr is None:
            return None
        if isinstance(expr, StringLiteral):
            return expr.value
        if isinstance(expr, VariableRef):
            value = self.symbols.lookup(expr.name)
            if value is None:
                return expr.name
            text = format_scalar(value)
            return text if text is not None else expr.name
        if isinstance(expr, BinaryOp) and expr.operator == TokenType.PLUS:
            if self._is_string_valued(expr.left) or self._is_string_valued(expr.right):
                return self._concat_operand(expr.left) + self._concat_operand(expr.right)
        value = self.evaluate(expr)
        text = format_scalar(value)
        if text is None:
            raise error_not_evaluable(_describe(expr), "STRING", expr.span)
        return text

    def _is_string_valued(self, expr: Expression) -> bool:
        if isinstance(expr, StringLiteral):
            return True
        if isinstance(expr, VariableRef):
            value = self.symbols.lookup(expr.name)
            return value is None or value.type == ValueType.STRING
        if isinstance(expr, BinaryOp) and expr.operator == TokenType.PLUS:
            return self._is_string_valued(expr.left) or self._is_string_valued(expr.right)
        return False

    def _concat_operand(self, expr: Optional[Expression]) -> str:
        if isinstance(expr, _LITERAL_NUMBERS):
            raise error_not_evaluable(_describe(expr), "STRING operand of '+'", expr.span)
        text = self.evaluate_to_string(expr)
        return text if text is not None else ""

    def _variable_for_coercion(self, expr: VariableRef) -> Value:
        value = self.symbols.lookup(expr.name)
        if value is None:
            raise error_undefined_identifier(expr.name, expr.span)
        return value

    def _number_as_int(self, value: Value, expr: Expression) -> int:
        if value.type in (ValueType.INTEGER, ValueType.BOOL, ValueType.DOUBLE):
            return int(value.data)
        raise error_not_evaluable(_describe(expr), "INTEGER", expr.span)

    def _number_as_double(self, value: Value, expr: Expression) -> float:
        if value.type in (ValueType.INTEGER, ValueType.DOUBLE):
            return float(value.data)
        raise error_not_evaluable(_describe(expr), "DOUBLE", expr.span)

    # =========================================================================
    # Full evaluation
    # =========================================================================

    def evaluate(self, expr: Expression) -> Value:
        """Evaluate an expression to a freshly created Value."""
        if expr is None:
            raise error_invalid_node("missing expression")

        if isinstance(expr, IntLiteral):
            return int_val(expr.value)
        if isinstance(expr, DoubleLiteral):
            return double_val(expr.value)
        if isinstance(expr, StringLiteral):
            return string_val(expr.value)
        if isinstance(expr, BoolLiteral):
            return bool_val(expr.value)
        if isinstance(expr, Constant):
            return double_val(expr.value)
        if isinstance(expr, VariableRef):
            value = self.symbols.lookup(expr.name)
            if value is not None:
                return value.copy()
            if looks_like_path(expr.name):
                self._warn("W101", f"undeclared identifier '{expr.name}' treated as a file name", expr)
                return string_val(expr.name)
            raise error_undefined_identifier(expr.name, expr.span)
        if isinstance(expr, UnaryOp):
            operand = self.evaluate(expr.operand)
            if expr.operator != TokenType.MINUS or not operand.type.is_numeric:
                raise error_invalid_operands(OPERATOR_SYMBOLS[expr.operator], str(operand.type),
                                             span=expr.span)
            return Value(-operand.data, operand.type)
        if isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr)
        if isinstance(expr, FunctionCall):
            return self._eval_function_call(expr)
        if isinstance(expr, (ArrayIndex, MapLookup, StructAccess)):
            return self._resolve_stored(expr).copy()

        raise error_invalid_node(f"unsupported expression {type(expr).__name__}", expr.span)

    def _eval_binary_op(self, expr: BinaryOp) -> Value:
        """Evaluate a binary operation."""
        op = expr.operator

        # Short-circuit for logical operators
        if op in LOGICAL_OPERATORS:
            left = self.evaluate(expr.left)
            if op == TokenType.AND and not left.is_truthy():
                return bool_val(False)
            if op == TokenType.OR and left.is_truthy():
                return bool_val(True)
            return bool_val(self.evaluate(expr.right).is_truthy())

        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        symbol = OPERATOR_SYMBOLS[op]

        if op == TokenType.PLUS and ValueType.STRING in (left.type, right.type):
            return string_val(self._concat_operand(expr.left) + self._concat_operand(expr.right))

        if op in ARITHMETIC_OPERATORS:
            if not (left.type.is_numeric and right.type.is_numeric):
                raise error_invalid_operands(symbol, str(left.type), str(right.type), expr.span)
            return self._arithmetic(op, left, right, expr)

        if op in EQUALITY_OPERATORS:
            equal = self._equal(left, right, expr)
            return bool_val(equal if op == TokenType.EQ else not equal)

        if op in ORDERING_OPERATORS:
            return bool_val(self._ordered(op, left, right, expr))

        raise error_invalid_node(f"unknown binary operator {op}", expr.span)

    def _arithmetic(self, op: TokenType, left: Value, right: Value, expr: BinaryOp) -> Value:
        # Integer result only when neither side is a double and op is not '/'
        integral = (left.type == ValueType.INTEGER and right.type == ValueType.INTEGER
                    and op != TokenType.SLASH)
        a, b = float(left.data), float(right.data)
        if op == TokenType.SLASH:
            if b == 0.0:
                raise error_division_by_zero(expr.span)
            return double_val(a / b)
        if integral:
            if op == TokenType.PLUS:
                return int_val(left.data + right.data)
            if op == TokenType.MINUS:
                return int_val(left.data - right.data)
            return int_val(left.data * right.data)
        if op == TokenType.PLUS:
            return double_val(a + b)
        if op == TokenType.MINUS:
            return double_val(a - b)
        return double_val(a * b)

    def _equal(self, left: Value, right: Value, expr: BinaryOp) -> bool:
        if ValueType.STRING in (left.type, right.type):
            if left.type != right.type:
                raise error_invalid_operands(OPERATOR_SYMBOLS[expr.operator],
                                             str(left.type), str(right.type), expr.span)
            return (left.data or "") == (right.data or "")
        if not (left.type.is_scalar and right.type.is_scalar):
            raise error_invalid_operands(OPERATOR_SYMBOLS[expr.operator],
                                         str(left.type), str(right.type), expr.span)
        if ValueType.DOUBLE in (left.type, right.type):
            return abs(float(left.data) - float(right.data)) <= self.epsilon
        return int(left.data) == int(right.data)

    def _ordered(self, op: TokenType, left: Value, right: Value, expr: BinaryOp) -> bool:
        numeric = (ValueType.INTEGER, ValueType.DOUBLE, ValueType.BOOL)
        if left.type not in numeric or right.type not in numeric:
            raise error_invalid_operands(OPERATOR_SYMBOLS[op], str(left.type), str(right.type), expr.span)
        if ValueType.DOUBLE in (left.type, right.type):
            a, b, eps = float(left.data), float(right.data), self.epsilon
            if op == TokenType.LT:
                return a < b - eps
            if op == TokenType.GT:
                return a > b + eps
            if op == TokenType.LE:
                return a <= b + eps
            return a >= b - eps
        a, b = int(left.data), int(right.data)
        if op == TokenType.LT:
            return a < b
        if op == TokenType.GT:
            return a > b
        if op == TokenType.LE:
            return a <= b
        return a >= b

    def _eval_function_call(self, expr: FunctionCall) -> Value:
        sig = self.symbols.lookup_builtin(expr.name)
        if sig is None:
            raise error_unknown_function(expr.name, expr.span)
        if len(expr.args) != sig.arity:
            raise error_function_arity(sig.name, sig.arity, len(expr.args), expr.span)

        args: List[Value] = []
        for i, (arg, (_, expected)) in enumerate(zip(expr.args, sig.params)):
            value = self.evaluate(arg)
            if value.type == ValueType.INTEGER and expected == ValueType.DOUBLE:
                value = double_val(value.data)
            elif value.type != expected:
                raise error_argument_type(sig.name, i, str(expected), str(value.type), arg.span)
            args.append(value)

        try:
            return call_builtin(sig.name, args)
        except BuiltinError as exc:
            raise error_constraint(None, str(exc), expr.span) from None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _warn(self, code: str, message: str, expr: Expression) -> None:
        if self.diagnostics is not None:
            self.diagnostics.add(warning(code, message, expr.span))


def _describe(expr: Expression) -> str:
    return render_expression(expr)


# =============================================================================
# Convenience functions
# =============================================================================

def static_type(expr: Expression, symbols: SymbolTable) -> ValueType:
    """Infer the type of `expr` against `symbols`."""
    return Evaluator(symbols).static_type(expr)


def evaluate(expr: Expression, symbols: SymbolTable) -> Value:
    """Evaluate `expr` against `symbols`."""
    return Evaluator(symbols).evaluate(expr)
