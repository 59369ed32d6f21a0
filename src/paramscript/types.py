"""
Value types for paramscript.

The language has a closed set of value types; there is no user-defined
type system. Declarations name a variable kind (and, for parameters, a
subtype) which resolves to one of these.
"""

import re
from enum import Enum
from typing import Optional


class ValueType(Enum):
    """Runtime type tag carried by every Value."""
    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    BOOL = "BOOL"
    REFERENCE = "REFERENCE"
    FILE_DESCRIPTOR = "FILE_DESCRIPTOR"
    ARRAY = "ARRAY"
    MAP = "MAP"
    STRUCTURE = "STRUCTURE"

    def __str__(self) -> str:
        return self.value

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_TYPES

    @property
    def is_scalar(self) -> bool:
        return self in SCALAR_TYPES

    @property
    def is_container(self) -> bool:
        return self in (ValueType.ARRAY, ValueType.MAP, ValueType.STRUCTURE)

    def is_assignable_from(self, other: "ValueType") -> bool:
        """Check if a value of type `other` can be stored in a slot of this type."""
        if self == other:
            return True
        # int -> double widening
        return self == ValueType.DOUBLE and other == ValueType.INTEGER


NUMERIC_TYPES = frozenset({ValueType.INTEGER, ValueType.DOUBLE})

SCALAR_TYPES = frozenset({
    ValueType.INTEGER, ValueType.DOUBLE, ValueType.STRING, ValueType.BOOL,
})

# Types accepted where a condition or logical operand is expected
TRUTHY_TYPES = frozenset({ValueType.BOOL, ValueType.INTEGER, ValueType.DOUBLE})


class VariableKind(Enum):
    """Variable kinds accepted by DECLARE_VARIABLE."""
    PARAMETER = "PARAMETER"
    REFERENCE = "REFERENCE"
    FILE_DESCRIPTOR = "FILE_DESCRIPTOR"
    ARRAY = "ARRAY"
    MAP = "MAP"
    GENERAL = "GENERAL"
    STRUCTURE = "STRUCTURE"


class ParamSubtype(Enum):
    """Parameter subtypes used by declarations and dialog parameters."""
    INT = "INTEGER"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    BOOL = "BOOL"

    def __str__(self) -> str:
        return self.value

    @property
    def value_type(self) -> ValueType:
        return _SUBTYPE_TO_TYPE[self]


_SUBTYPE_TO_TYPE = {
    ParamSubtype.INT: ValueType.INTEGER,
    ParamSubtype.DOUBLE: ValueType.DOUBLE,
    ParamSubtype.STRING: ValueType.STRING,
    ParamSubtype.BOOL: ValueType.BOOL,
}

_KIND_TO_TYPE = {
    VariableKind.REFERENCE: ValueType.REFERENCE,
    VariableKind.FILE_DESCRIPTOR: ValueType.FILE_DESCRIPTOR,
    VariableKind.ARRAY: ValueType.ARRAY,
    VariableKind.MAP: ValueType.MAP,
    VariableKind.STRUCTURE: ValueType.STRUCTURE,
}


def resolve_variable_type(kind: VariableKind,
                          subtype: Optional[ParamSubtype] = None) -> Optional[ValueType]:
    """
    Map a declared variable kind (and parameter subtype) to a value type.

    Returns None when the pair has no concrete type: a PARAMETER without a
    subtype, or a GENERAL declaration.
    """
    if kind == VariableKind.PARAMETER:
        if subtype is None:
            return None
        return subtype.value_type
    return _KIND_TO_TYPE.get(kind)


def resolve_subtype_name(name: str) -> Optional[ParamSubtype]:
    """Look up a parameter subtype by its script spelling ("INTEGER", "int", ...)."""
    upper = name.strip().upper()
    if upper in ("INT", "INTEGER"):
        return ParamSubtype.INT
    for subtype in ParamSubtype:
        if subtype.name == upper or subtype.value == upper:
            return subtype
    return None


_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_valid_identifier(name: Optional[str]) -> bool:
    """Non-empty, starts with a letter or '_', then letters, digits or '_'."""
    return bool(name) and _IDENTIFIER_RE.fullmatch(name) is not None
