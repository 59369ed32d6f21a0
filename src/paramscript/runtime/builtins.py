"""
Built-in function implementations.

Signatures live in the symbol table; this module supplies the behaviour
used when a FunctionCall is evaluated. Arguments arrive already coerced to
the declared parameter types (Integer widened to Double where the
signature asks for a Double).
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import math

from ..values import Value, int_val, double_val, bool_val


class BuiltinError(ValueError):
    """A built-in function was called with an argument outside its domain."""


@dataclass
class BuiltinFunction:
    """A built-in function implementation."""
    name: str
    implementation: Callable[..., Value]
    doc: str = ""


_TRUE_WORDS = frozenset({"TRUE", "YES", "ON", "1"})
_FALSE_WORDS = frozenset({"FALSE", "NO", "OFF", "0"})


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text.strip(), 10)
    except ValueError:
        return None


def _parse_double(text: str) -> Optional[float]:
    try:
        result = float(text.strip())
    except ValueError:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _tolerance(places: int) -> float:
    return 0.5 * 10.0 ** (-places)


def _round_half_away(x: float, digits: int) -> float:
    factor = 10.0 ** digits
    if x >= 0:
        return math.floor(x * factor + 0.5) / factor
    return -math.floor(-x * factor + 0.5) / factor


def _checked(func: Callable[[float], float], name: str) -> Callable[[Value], Value]:
    def apply(x: Value) -> Value:
        try:
            return double_val(func(x.data))
        except (ValueError, OverflowError) as exc:
            raise BuiltinError(f"{name}({x.data!r}): {exc}") from None
    return apply


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by upper-case name.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name (case-insensitive)."""
        return self._functions.get(name.upper())

    def register(self, name: str, implementation: Callable[..., Value], doc: str = "") -> None:
        """Register a function."""
        self._functions[name] = BuiltinFunction(name, implementation, doc)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_math_functions()
        self._register_string_functions()
        self._register_conversion_functions()
        self._register_comparison_functions()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register mathematical functions."""
        unary = {
            "SIN": math.sin, "ASIN": math.asin,
            "COS": math.cos, "ACOS": math.acos,
            "TAN": math.tan, "ATAN": math.atan,
            "SINH": math.sinh, "COSH": math.cosh, "TANH": math.tanh,
            "LOG": math.log10, "LN": math.log, "EXP": math.exp,
            "CEIL": lambda x: float(math.ceil(x)),
            "FLOOR": lambda x: float(math.floor(x)),
            "ABS": abs, "SQRT": math.sqrt,
            "SQR": lambda x: x * x,
        }
        for name, func in unary.items():
            self.register(name, _checked(func, name))

        def _pow(base: Value, exponent: Value) -> Value:
            try:
                result = math.pow(base.data, exponent.data)
            except (ValueError, OverflowError) as exc:
                raise BuiltinError(f"POW({base.data!r}, {exponent.data!r}): {exc}") from None
            return double_val(result)

        def _mod(x: Value, y: Value) -> Value:
            if y.data == 0.0:
                raise BuiltinError("MOD by zero")
            return double_val(math.fmod(x.data, y.data))

        def _round(x: Value, digits: Value) -> Value:
            return double_val(_round_half_away(x.data, digits.data))

        self.register("POW", _pow, "base raised to exponent")
        self.register("MOD", _mod, "floating-point remainder with the sign of x")
        self.register("ROUND", _round, "round half away from zero to `digits` places")

    # --- String Functions ---

    def _register_string_functions(self) -> None:
        """Register string search and comparison functions."""

        def _strfind(a: Value, b: Value) -> Value:
            return int_val(a.data.upper().find(b.data.upper()))

        def _strfindcs(a: Value, b: Value) -> Value:
            return int_val(a.data.find(b.data))

        def _compare(a: str, b: str) -> int:
            return (a > b) - (a < b)

        def _strcmp(a: Value, b: Value) -> Value:
            return int_val(_compare(a.data.upper(), b.data.upper()))

        def _strcmpcs(a: Value, b: Value) -> Value:
            return int_val(_compare(a.data, b.data))

        def _strlen(s: Value) -> Value:
            return int_val(len(s.data))

        def _asc(s: Value) -> Value:
            return int_val(ord(s.data[0]) if s.data else 0)

        self.register("STRFIND", _strfind, "case-insensitive index of b in a, -1 if absent")
        self.register("STRFINDCS", _strfindcs, "case-sensitive index of b in a, -1 if absent")
        self.register("STRCMP", _strcmp, "case-insensitive comparison: -1, 0 or 1")
        self.register("STRCMPCS", _strcmpcs, "case-sensitive comparison: -1, 0 or 1")
        self.register("STRLEN", _strlen)
        self.register("ASC", _asc, "code point of the first character, 0 if empty")

    # --- Conversion Functions ---

    def _register_conversion_functions(self) -> None:
        """Register string conversion and classification functions."""

        def _stof(s: Value) -> Value:
            result = _parse_double(s.data)
            if result is None:
                raise BuiltinError(f"STOF: '{s.data}' is not a number")
            return double_val(result)

        def _stoi(s: Value) -> Value:
            result = _parse_int(s.data)
            if result is None:
                raise BuiltinError(f"STOI: '{s.data}' is not an integer")
            return int_val(result)

        def _stob(s: Value) -> Value:
            word = s.data.strip().upper()
            if word in _TRUE_WORDS:
                return bool_val(True)
            if word in _FALSE_WORDS:
                return bool_val(False)
            raise BuiltinError(f"STOB: '{s.data}' is not a boolean")

        def _isnumber(s: Value) -> Value:
            return bool_val(_parse_double(s.data) is not None)

        def _isinteger(s: Value) -> Value:
            return bool_val(_parse_int(s.data) is not None)

        def _isdouble(s: Value) -> Value:
            return bool_val(_parse_int(s.data) is None and _parse_double(s.data) is not None)

        self.register("STOF", _stof)
        self.register("STOI", _stoi)
        self.register("STOB", _stob)
        self.register("ISNUMBER", _isnumber)
        self.register("ISINTEGER", _isinteger)
        self.register("ISDOUBLE", _isdouble)

    # --- Tolerance Comparisons ---

    def _register_comparison_functions(self) -> None:
        """Register comparisons at a given number of decimal places."""

        def _equal(a: Value, b: Value, places: Value) -> Value:
            return bool_val(abs(a.data - b.data) <= _tolerance(places.data))

        def _less(a: Value, b: Value, places: Value) -> Value:
            return bool_val(a.data < b.data - _tolerance(places.data))

        def _less_or_equal(a: Value, b: Value, places: Value) -> Value:
            return bool_val(a.data <= b.data + _tolerance(places.data))

        def _greater(a: Value, b: Value, places: Value) -> Value:
            return bool_val(a.data > b.data + _tolerance(places.data))

        def _greater_or_equal(a: Value, b: Value, places: Value) -> Value:
            return bool_val(a.data >= b.data - _tolerance(places.data))

        self.register("EQUAL", _equal)
        self.register("LESS", _less)
        self.register("LESSOREQUAL", _less_or_equal)
        self.register("GREATER", _greater)
        self.register("GREATEROREQUAL", _greater_or_equal)


# Global registry instance
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_builtin(name: str, args: List[Value]) -> Value:
    """
    Call a built-in function by name.

    Raises KeyError if the function is not registered and BuiltinError if
    an argument is outside the function's domain.
    """
    func = get_builtin_registry().get_function(name)
    if func is None:
        raise KeyError(name)
    return func.implementation(*args)
