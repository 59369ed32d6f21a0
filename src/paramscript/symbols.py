"""
Symbol table for paramscript analysis.

Holds the named bindings produced by command validation, the registry of
derived configuration (option maps, shared tracking lists, single-instance
entries, conditional/assignment records) and the built-in function
signatures used by the expression checker.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .ast import CommandKind
from .types import ValueType
from .values import Value, array_val, map_val


@dataclass
class FunctionSignature:
    """Type signature for a built-in function."""
    name: str
    params: List[Tuple[str, ValueType]]  # (name, type)
    return_type: ValueType

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass
class DeclareResult:
    """Outcome of SymbolTable.declare()."""
    value: Value
    redeclared: bool

    @property
    def count(self) -> int:
        return self.value.declaration_count


class TrackedList(Enum):
    """Shared array bindings that several commands append to."""
    REQUIRED_CHECKBOXES = "REQUIRED_CHECKBOXES"
    REQUIRED_RADIOS = "REQUIRED_RADIOS"
    REQUIRED_SELECTS = "REQUIRED_SELECTS"
    INVALIDATED_PARAMS = "INVALIDATED_PARAMS"
    SUB_PICTURES = "SUB_PICTURES"


class Singleton(Enum):
    """Entries that exist at most once per script."""
    GLOBAL_PICTURE = "GLOBAL_PICTURE"
    CONFIG_ELEM = "CONFIG_ELEM"
    WATCHER_INDEX = "WATCHER_INDEX"


class RecordKind(Enum):
    """Per-node records keyed by the node's numeric id."""
    IFS = "IFS"
    ASSIGNMENTS = "ASSIGNMENTS"

    def key(self, node_id: int) -> str:
        prefix = "IF" if self == RecordKind.IFS else "ASSIGN"
        return f"{prefix}_{node_id:04d}"


# Flattened key for each command kind's option map
OPTION_KEY_FORMATS: Dict[CommandKind, str] = {
    CommandKind.SHOW_PARAM: "SHOW_PARAM_OPTIONS_{name}",
    CommandKind.CHECKBOX_PARAM: "CHECKBOX_PARAM_OPTIONS_{name}",
    CommandKind.USER_INPUT_PARAM: "USER_INPUT:{name}",
    CommandKind.RADIOBUTTON_PARAM: "RADIOBUTTON:{name}",
    CommandKind.USER_SELECT: "USER_SELECT:{name}",
    CommandKind.USER_SELECT_OPTIONAL: "USER_SELECT_OPTIONAL:{name}",
    CommandKind.USER_SELECT_MULTIPLE: "USER_SELECT_MULTIPLE:{name}",
    CommandKind.USER_SELECT_MULTIPLE_OPTIONAL: "USER_SELECT_MULTIPLE_OPTIONAL:{name}",
}


def option_key(kind: CommandKind, name: str) -> str:
    """String key under which an option map is exposed downstream."""
    return OPTION_KEY_FORMATS.get(kind, f"{kind.value}_OPTIONS_{{name}}").format(name=name)


_Undo = Callable[[], None]


class SymbolTable:
    """
    Bindings and registry for one script's analysis.

    Provides:
    - declare / lookup / overwrite of named bindings with a redeclaration
      counter and a snapshot of each name's first declared value
    - an enum-keyed registry for option maps, tracking lists, singletons
      and records
    - transactional writes: changes made inside transaction() are undone
      if the block raises
    - the built-in function registry
    """

    def __init__(self):
        self._bindings: Dict[str, Value] = {}
        self._baseline: Dict[str, Value] = {}

        self._options: Dict[Tuple[CommandKind, str], Value] = {}
        self._lists: Dict[TrackedList, Value] = {}
        self._singletons: Dict[Singleton, Value] = {}
        self._records: Dict[RecordKind, Dict[int, Value]] = {kind: {} for kind in RecordKind}

        # Undo logs of the open transactions, innermost last
        self._journals: List[List[_Undo]] = []

        self._builtins: Dict[str, FunctionSignature] = {}
        self._init_builtins()

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator["SymbolTable"]:
        """
        Apply every write in the block or none of them.

        Each transaction is its own unit: committing a nested transaction
        does not make its writes part of the enclosing one.
        """
        journal: List[_Undo] = []
        self._journals.append(journal)
        try:
            yield self
        except BaseException:
            for undo in reversed(journal):
                undo()
            raise
        finally:
            self._journals.pop()

    def _log(self, undo: _Undo) -> None:
        if self._journals:
            self._journals[-1].append(undo)

    def _restore(self, store: dict, key, previous: Optional[Value]) -> _Undo:
        def undo() -> None:
            if previous is None:
                store.pop(key, None)
            else:
                store[key] = previous
        return undo

    # =========================================================================
    # Named bindings
    # =========================================================================

    def declare(self, name: str, value: Value) -> DeclareResult:
        """
        Bind `name` to `value` unless it is already bound.

        An existing binding is kept as is and its declaration_count is
        incremented; the caller decides whether that matters.
        """
        existing = self._bindings.get(name)
        if existing is not None:
            existing.declaration_count += 1

            def undo() -> None:
                existing.declaration_count -= 1
            self._log(undo)
            return DeclareResult(existing, redeclared=True)

        value.declaration_count = 1
        self._bindings[name] = value
        self._baseline[name] = value.snapshot()
        self._log(self._restore(self._bindings, name, None))
        self._log(self._restore(self._baseline, name, None))
        return DeclareResult(value, redeclared=False)

    def lookup(self, name: str) -> Optional[Value]:
        """Borrow the value bound to `name`, or None."""
        return self._bindings.get(name)

    def overwrite(self, name: str, value: Value) -> None:
        """Replace (or create) a binding without touching the counter."""
        previous = self._bindings.get(name)
        if previous is not None:
            value.declaration_count = previous.declaration_count
        self._bindings[name] = value
        self._log(self._restore(self._bindings, name, previous))

    def baseline(self, name: str) -> Optional[Value]:
        """The value `name` had when it was first declared."""
        return self._baseline.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def names(self) -> List[str]:
        return list(self._bindings)

    # =========================================================================
    # Registry
    # =========================================================================

    def options(self, kind: CommandKind, name: str) -> Optional[Value]:
        """Option map stored by a command of `kind` for parameter `name`."""
        return self._options.get((kind, name))

    def set_options(self, kind: CommandKind, name: str, value: Value) -> None:
        key = (kind, name)
        self._log(self._restore(self._options, key, self._options.get(key)))
        self._options[key] = value

    def tracked(self, which: TrackedList) -> Optional[Value]:
        """Shared tracking array, or None if nothing was appended yet."""
        return self._lists.get(which)

    def tracked_items(self, which: TrackedList) -> List:
        """Plain Python contents of a tracking array."""
        value = self._lists.get(which)
        return value.to_python() if value is not None else []

    def append_tracked(self, which: TrackedList, item: Value) -> None:
        """Append to a tracking array, creating it on first use."""
        array = self._lists.get(which)
        if array is None:
            array = array_val()
            self._lists[which] = array
            self._log(self._restore(self._lists, which, None))
        array.data.append(item)

        def undo() -> None:
            array.data.pop()
        self._log(undo)

    def singleton(self, which: Singleton) -> Optional[Value]:
        return self._singletons.get(which)

    def set_singleton(self, which: Singleton, value: Value) -> None:
        self._log(self._restore(self._singletons, which, self._singletons.get(which)))
        self._singletons[which] = value

    def record(self, kind: RecordKind, node_id: int) -> Optional[Value]:
        return self._records[kind].get(node_id)

    def records(self, kind: RecordKind) -> Dict[int, Value]:
        return dict(self._records[kind])

    def set_record(self, kind: RecordKind, node_id: int, value: Value) -> None:
        store = self._records[kind]
        self._log(self._restore(store, node_id, store.get(node_id)))
        store[node_id] = value

    def update_record(self, kind: RecordKind, node_id: int, **fields: Value) -> bool:
        """Add or replace fields of an existing record map."""
        entry = self._records[kind].get(node_id)
        if entry is None:
            return False
        members = entry.as_map()
        for key, value in fields.items():
            self._log(self._restore(members, key, members.get(key)))
            members[key] = value
        return True

    def flatten(self) -> Dict[str, Value]:
        """
        Every binding and registry entry under its string key.

        This is the view handed to the execution engine: option maps appear
        under their per-kind keys, tracking lists and singletons under their
        names, and records as maps keyed "IF_0001" / "ASSIGN_0001".
        """
        flat: Dict[str, Value] = dict(self._bindings)
        for (kind, name), value in self._options.items():
            flat[option_key(kind, name)] = value
        for which, value in self._lists.items():
            flat[which.value] = value
        for which, value in self._singletons.items():
            flat[which.value] = value
        for kind, entries in self._records.items():
            if entries:
                flat[kind.value] = map_val({kind.key(i): v for i, v in entries.items()})
        return flat

    # =========================================================================
    # Built-in functions
    # =========================================================================

    def _init_builtins(self) -> None:
        """Initialize built-in function signatures."""
        D, I, S, B = ValueType.DOUBLE, ValueType.INTEGER, ValueType.STRING, ValueType.BOOL

        # Math: double -> double
        for name in ("SIN", "ASIN", "COS", "ACOS", "TAN", "ATAN",
                     "SINH", "COSH", "TANH", "LOG", "LN", "EXP",
                     "CEIL", "FLOOR", "ABS", "SQRT", "SQR"):
            self._register_builtin(name, [("x", D)], D)

        self._register_builtin("POW", [("base", D), ("exponent", D)], D)
        self._register_builtin("MOD", [("x", D), ("y", D)], D)
        self._register_builtin("ROUND", [("x", D), ("digits", I)], D)

        # String search and comparison
        for name in ("STRFIND", "STRFINDCS", "STRCMP", "STRCMPCS"):
            self._register_builtin(name, [("a", S), ("b", S)], I)
        self._register_builtin("STRLEN", [("s", S)], I)
        self._register_builtin("ASC", [("s", S)], I)

        # Conversion
        self._register_builtin("STOF", [("s", S)], D)
        self._register_builtin("STOI", [("s", S)], I)
        self._register_builtin("STOB", [("s", S)], B)
        for name in ("ISNUMBER", "ISINTEGER", "ISDOUBLE"):
            self._register_builtin(name, [("s", S)], B)

        # Tolerance comparisons: (a, b, decimal places)
        for name in ("EQUAL", "LESS", "LESSOREQUAL", "GREATER", "GREATEROREQUAL"):
            self._register_builtin(name, [("a", D), ("b", D), ("places", I)], B)

    def _register_builtin(self, name: str, params: List[Tuple[str, ValueType]],
                          return_type: ValueType) -> None:
        """Register a built-in function signature."""
        self._builtins[name] = FunctionSignature(name=name, params=params, return_type=return_type)

    def lookup_builtin(self, name: str) -> Optional[FunctionSignature]:
        """Look up a built-in function (names are case-insensitive)."""
        return self._builtins.get(name.upper())

    def is_builtin(self, name: str) -> bool:
        return name.upper() in self._builtins

    def get_all_builtins(self) -> Dict[str, FunctionSignature]:
        return dict(self._builtins)
