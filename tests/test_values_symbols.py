"""
Unit tests for paramscript values and the symbol table.

Tests cover:
- Value accessors and copy semantics
- Declaration, redeclaration and baselines
- Transactions (rollback, nested commits)
- Registry entries and their flattened keys
"""

import pytest

from paramscript.ast import CommandKind
from paramscript.symbols import SymbolTable, TrackedList, Singleton, RecordKind, option_key
from paramscript.types import ValueType, VariableKind, ParamSubtype, resolve_variable_type
from paramscript.values import (
    Value, ValueAccessError,
    int_val, double_val, string_val, bool_val, reference_val,
    array_val, map_val, structure_val, default_value, format_scalar,
)


# =============================================================================
# Value Tests
# =============================================================================

class TestValue:
    """Test typed values."""

    def test_typed_accessors(self):
        """Accessors return the payload of the matching type."""
        assert int_val(3).as_int() == 3
        assert double_val(2.5).as_double() == 2.5
        assert string_val("abc").as_string() == "abc"
        assert bool_val(True).as_bool() is True

    def test_wrong_accessor_raises(self):
        """Reading through a mismatched accessor is an error."""
        with pytest.raises(ValueAccessError):
            string_val("3").as_int()
        with pytest.raises(ValueAccessError):
            int_val(3).as_double()

    def test_bool_reads_as_int(self):
        """Booleans read as 0/1 integers."""
        assert bool_val(True).as_int() == 1
        assert bool_val(False).as_int() == 0

    def test_truthiness(self):
        """Numeric zero and empty strings are false."""
        assert int_val(2).is_truthy()
        assert not int_val(0).is_truthy()
        assert not double_val(0.0).is_truthy()
        assert string_val("x").is_truthy()
        assert not string_val("").is_truthy()
        assert not reference_val().is_truthy()

    def test_copy_shares_containers(self):
        """A shallow copy of an array shares its elements."""
        original = array_val([int_val(1)])
        copied = original.copy()
        copied.as_array().append(int_val(2))
        assert len(original.as_array()) == 2

    def test_copy_of_scalar_is_independent(self):
        """Scalar copies do not affect the original."""
        original = int_val(1)
        copied = original.copy()
        copied.data = 5
        assert original.data == 1

    def test_snapshot_is_deep(self):
        """A snapshot does not share nested containers."""
        original = map_val({"a": array_val([int_val(1)])})
        snap = original.snapshot()
        original.as_map()["a"].as_array().append(int_val(2))
        assert len(snap.as_map()["a"].as_array()) == 1

    def test_to_python(self):
        """Nested values unwrap to plain data, keeping null entries."""
        value = map_val({
            "xs": array_val([int_val(1), double_val(2.0)]),
            "s": structure_val({"name": string_val("n")}),
            "empty": None,
        })
        assert value.to_python() == {"xs": [1, 2.0], "s": {"name": "n"}, "empty": None}

    def test_default_values(self):
        """Fresh bindings start at zero or empty."""
        assert default_value(ValueType.INTEGER).data == 0
        assert default_value(ValueType.STRING).data == ""
        assert default_value(ValueType.BOOL).data is False
        assert default_value(ValueType.REFERENCE).data is None
        assert default_value(ValueType.ARRAY).data == []
        assert default_value(ValueType.STRUCTURE).type == ValueType.STRUCTURE

    def test_format_scalar(self):
        """Scalars render as script text; containers do not."""
        assert format_scalar(int_val(-4)) == "-4"
        assert format_scalar(double_val(0.1)) == "0.1"
        assert format_scalar(double_val(1.0)) == "1"
        assert format_scalar(bool_val(True)) == "1"
        assert format_scalar(array_val()) is None


class TestVariableTypes:
    """Test declared kind to value type resolution."""

    def test_parameter_subtypes(self):
        """PARAMETER resolves through its subtype."""
        assert resolve_variable_type(VariableKind.PARAMETER, ParamSubtype.INT) == ValueType.INTEGER
        assert resolve_variable_type(VariableKind.PARAMETER, ParamSubtype.DOUBLE) == ValueType.DOUBLE

    def test_parameter_without_subtype(self):
        """PARAMETER without subtype has no type."""
        assert resolve_variable_type(VariableKind.PARAMETER) is None

    def test_general_has_no_type(self):
        """GENERAL declarations are not resolvable."""
        assert resolve_variable_type(VariableKind.GENERAL) is None

    def test_container_kinds(self):
        """Container kinds map directly."""
        assert resolve_variable_type(VariableKind.ARRAY) == ValueType.ARRAY
        assert resolve_variable_type(VariableKind.MAP) == ValueType.MAP
        assert resolve_variable_type(VariableKind.REFERENCE) == ValueType.REFERENCE


# =============================================================================
# Symbol Table Tests
# =============================================================================

class TestDeclare:
    """Test named bindings."""

    def test_declare_and_lookup(self):
        """A declared name can be looked up."""
        table = SymbolTable()
        result = table.declare("X", int_val(5))
        assert not result.redeclared
        assert result.count == 1
        assert table.lookup("X").data == 5
        assert "X" in table

    def test_redeclare_keeps_value(self):
        """Redeclaration bumps the counter and keeps the stored value."""
        table = SymbolTable()
        table.declare("X", int_val(5))
        result = table.declare("X", int_val(9))
        assert result.redeclared
        assert result.count == 2
        assert table.lookup("X").data == 5

    def test_counter_counts_every_declaration(self):
        """The counter equals the number of declarations."""
        table = SymbolTable()
        for _ in range(4):
            table.declare("X", int_val(0))
        assert table.lookup("X").declaration_count == 4

    def test_baseline_survives_mutation(self):
        """The baseline keeps the first declared value."""
        table = SymbolTable()
        table.declare("XS", array_val([int_val(1)]))
        table.lookup("XS").as_array().append(int_val(2))
        assert len(table.lookup("XS").as_array()) == 2
        assert len(table.baseline("XS").as_array()) == 1

    def test_overwrite_keeps_counter(self):
        """Overwriting replaces the value but not the counter."""
        table = SymbolTable()
        table.declare("T", map_val())
        table.declare("T", map_val())
        table.overwrite("T", map_val({"a": int_val(1)}))
        assert table.lookup("T").as_map()["a"].data == 1
        assert table.lookup("T").declaration_count == 2

    def test_lookup_missing(self):
        """Unknown names look up as None."""
        assert SymbolTable().lookup("NOPE") is None


class TestTransactions:
    """Test transactional writes."""

    def test_rollback_on_error(self):
        """Writes in a failed transaction are undone."""
        table = SymbolTable()
        table.declare("KEEP", int_val(1))
        with pytest.raises(RuntimeError):
            with table.transaction():
                table.declare("GONE", int_val(2))
                table.declare("KEEP", int_val(1))
                table.append_tracked(TrackedList.REQUIRED_RADIOS, string_val("R"))
                table.set_singleton(Singleton.GLOBAL_PICTURE, string_val("a.gif"))
                raise RuntimeError("fail")
        assert "GONE" not in table
        assert table.baseline("GONE") is None
        assert table.lookup("KEEP").declaration_count == 1
        assert table.tracked(TrackedList.REQUIRED_RADIOS) is None
        assert table.singleton(Singleton.GLOBAL_PICTURE) is None

    def test_rollback_of_existing_tracked_list(self):
        """Appending to an existing list is undone item by item."""
        table = SymbolTable()
        table.append_tracked(TrackedList.REQUIRED_SELECTS, string_val("A"))
        with pytest.raises(RuntimeError):
            with table.transaction():
                table.append_tracked(TrackedList.REQUIRED_SELECTS, string_val("B"))
                raise RuntimeError("fail")
        assert table.tracked_items(TrackedList.REQUIRED_SELECTS) == ["A"]

    def test_commit(self):
        """Writes in a successful transaction persist."""
        table = SymbolTable()
        with table.transaction():
            table.declare("X", int_val(1))
        assert "X" in table

    def test_committed_nested_transaction_survives_parent(self):
        """A committed inner transaction is not undone by the outer one."""
        table = SymbolTable()
        with pytest.raises(RuntimeError):
            with table.transaction():
                table.declare("OUTER", int_val(1))
                with table.transaction():
                    table.declare("INNER", int_val(2))
                raise RuntimeError("fail")
        assert "OUTER" not in table
        assert "INNER" in table

    def test_record_update_rollback(self):
        """Record field updates are undone on failure."""
        table = SymbolTable()
        table.set_record(RecordKind.ASSIGNMENTS, 1, map_val({"lhs_text": string_val("X")}))
        with pytest.raises(RuntimeError):
            with table.transaction():
                assert table.update_record(RecordKind.ASSIGNMENTS, 1, if_id=int_val(3))
                raise RuntimeError("fail")
        assert "if_id" not in table.record(RecordKind.ASSIGNMENTS, 1).as_map()

    def test_update_missing_record(self):
        """Updating an unknown record reports False."""
        assert not SymbolTable().update_record(RecordKind.IFS, 7, has_assignments=bool_val(True))


class TestRegistry:
    """Test registry entries and flattened keys."""

    def test_option_keys(self):
        """Each command kind has its downstream key format."""
        assert option_key(CommandKind.SHOW_PARAM, "L") == "SHOW_PARAM_OPTIONS_L"
        assert option_key(CommandKind.CHECKBOX_PARAM, "C") == "CHECKBOX_PARAM_OPTIONS_C"
        assert option_key(CommandKind.USER_INPUT_PARAM, "U") == "USER_INPUT:U"
        assert option_key(CommandKind.RADIOBUTTON_PARAM, "R") == "RADIOBUTTON:R"
        assert option_key(CommandKind.USER_SELECT, "S") == "USER_SELECT:S"

    def test_record_keys(self):
        """Record ids are zero-padded to four digits."""
        assert RecordKind.IFS.key(1) == "IF_0001"
        assert RecordKind.ASSIGNMENTS.key(42) == "ASSIGN_0042"

    def test_flatten(self):
        """Flattening exposes every entry under its string key."""
        table = SymbolTable()
        table.declare("L", double_val(1.0))
        table.set_options(CommandKind.SHOW_PARAM, "L", map_val({"tooltip": string_val("t")}))
        table.append_tracked(TrackedList.INVALIDATED_PARAMS, string_val("L"))
        table.set_singleton(Singleton.GLOBAL_PICTURE, string_val("main.gif"))
        table.set_record(RecordKind.IFS, 2, map_val({"if_id": int_val(2)}))

        flat = table.flatten()
        assert flat["L"].data == 1.0
        assert flat["SHOW_PARAM_OPTIONS_L"].as_map()["tooltip"].data == "t"
        assert flat["INVALIDATED_PARAMS"].to_python() == ["L"]
        assert flat["GLOBAL_PICTURE"].data == "main.gif"
        assert "IF_0002" in flat["IFS"].as_map()
        assert "ASSIGNMENTS" not in flat

    def test_tracked_items_empty(self):
        """An untouched tracking list reads as empty."""
        assert SymbolTable().tracked_items(TrackedList.SUB_PICTURES) == []


class TestBuiltinSignatures:
    """Test the built-in signature table."""

    def test_case_insensitive_lookup(self):
        """Built-in names are case-insensitive."""
        table = SymbolTable()
        assert table.lookup_builtin("sin") is table.lookup_builtin("SIN")
        assert table.is_builtin("StrLen")

    def test_signatures(self):
        """Signatures carry parameter and return types."""
        table = SymbolTable()
        sig = table.lookup_builtin("ROUND")
        assert sig.arity == 2
        assert sig.params[1][1] == ValueType.INTEGER
        assert sig.return_type == ValueType.DOUBLE
        assert table.lookup_builtin("EQUAL").return_type == ValueType.BOOL

    def test_unknown_builtin(self):
        """Unknown names are not built-ins."""
        assert SymbolTable().lookup_builtin("NOPE") is None
