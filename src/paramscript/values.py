"""
Runtime values held in the symbol table.

A Value pairs a payload with its ValueType. The type decides which accessor
may be used; reading through the wrong accessor raises ValueAccessError.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .types import ValueType


class ValueAccessError(TypeError):
    """A Value was read through an accessor that does not match its type."""


@dataclass
class Value:
    """
    A typed runtime value.

    `declaration_count` is only meaningful on top-level named bindings,
    where it counts how many times the name has been declared.
    """
    data: Any
    type: ValueType
    declaration_count: int = 1

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type})"

    def _expect(self, *types: ValueType) -> None:
        if self.type not in types:
            wanted = "/".join(str(t) for t in types)
            raise ValueAccessError(f"cannot read {self.type} value as {wanted}")

    # Typed accessors

    def as_int(self) -> int:
        self._expect(ValueType.INTEGER, ValueType.BOOL)
        return int(self.data)

    def as_double(self) -> float:
        self._expect(ValueType.DOUBLE)
        return float(self.data)

    def as_string(self) -> str:
        self._expect(ValueType.STRING)
        return self.data

    def as_bool(self) -> bool:
        self._expect(ValueType.BOOL)
        return bool(self.data)

    def as_array(self) -> List["Value"]:
        self._expect(ValueType.ARRAY)
        return self.data

    def as_map(self) -> Dict[str, "Value"]:
        self._expect(ValueType.MAP)
        return self.data

    def as_structure(self) -> Dict[str, "Value"]:
        self._expect(ValueType.STRUCTURE)
        return self.data

    def as_number(self) -> float:
        """Integer, Bool or Double payload as a float."""
        self._expect(ValueType.INTEGER, ValueType.BOOL, ValueType.DOUBLE)
        return float(self.data)

    def is_truthy(self) -> bool:
        """Check if this value is truthy in a condition or logical operand."""
        if self.type in (ValueType.INTEGER, ValueType.BOOL, ValueType.DOUBLE):
            return self.data != 0
        if self.type == ValueType.STRING:
            return len(self.data) > 0
        return False

    def copy(self) -> "Value":
        """
        Copy for handing out of the symbol table.

        Scalar payloads are independent after the copy. Array, Map and
        Structure payloads are the same container object, so the copy and
        the original share elements.
        """
        return Value(self.data, self.type)

    def snapshot(self) -> "Value":
        """Fully independent copy, including nested containers."""
        return copy.deepcopy(self)

    def to_python(self) -> Any:
        """Unwrap recursively into plain Python data."""
        if self.type == ValueType.ARRAY:
            return [item.to_python() for item in self.data]
        if self.type in (ValueType.MAP, ValueType.STRUCTURE):
            return {key: item.to_python() if item is not None else None
                    for key, item in self.data.items()}
        return self.data


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(int(n), ValueType.INTEGER)


def double_val(x: float) -> Value:
    """Create a double value."""
    return Value(float(x), ValueType.DOUBLE)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueType.STRING)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueType.BOOL)


def reference_val(handle: Any = None) -> Value:
    """Create a reference value; the handle is opaque and may be None."""
    return Value(handle, ValueType.REFERENCE)


def file_descriptor_val(handle: Any = None) -> Value:
    """Create a file descriptor value; the handle is opaque and may be None."""
    return Value(handle, ValueType.FILE_DESCRIPTOR)


def array_val(items: Optional[List[Value]] = None) -> Value:
    """Create an array value."""
    return Value(list(items) if items else [], ValueType.ARRAY)


def map_val(items: Optional[Dict[str, Value]] = None) -> Value:
    """Create a map value."""
    return Value(dict(items) if items else {}, ValueType.MAP)


def structure_val(members: Optional[Dict[str, Value]] = None) -> Value:
    """Create a structure value."""
    return Value(dict(members) if members else {}, ValueType.STRUCTURE)


def string_array_val(items: List[str]) -> Value:
    """Create an array of string values."""
    return array_val([string_val(s) for s in items])


def default_value(value_type: ValueType) -> Value:
    """Zero/empty value for a freshly declared binding of the given type."""
    if value_type == ValueType.INTEGER:
        return int_val(0)
    if value_type == ValueType.DOUBLE:
        return double_val(0.0)
    if value_type == ValueType.STRING:
        return string_val("")
    if value_type == ValueType.BOOL:
        return bool_val(False)
    if value_type == ValueType.REFERENCE:
        return reference_val()
    if value_type == ValueType.FILE_DESCRIPTOR:
        return file_descriptor_val()
    if value_type == ValueType.ARRAY:
        return array_val()
    if value_type == ValueType.MAP:
        return map_val()
    return structure_val()


def format_scalar(value: Value) -> Optional[str]:
    """
    Render a scalar as script text: integers in decimal, doubles with up to
    15 significant digits, booleans as "1"/"0". Returns None for non-scalars.
    """
    if value.type == ValueType.STRING:
        return value.data
    if value.type == ValueType.INTEGER:
        return "%d" % value.data
    if value.type == ValueType.DOUBLE:
        return "%.15g" % value.data
    if value.type == ValueType.BOOL:
        return "1" if value.data else "0"
    return None
