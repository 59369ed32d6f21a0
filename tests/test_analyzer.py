"""
Integration tests for the paramscript analysis driver.

Tests cover:
- Block ordering and continuation after failures
- The watcher index built from conditional assignments
- Skipped and aborted analyses
"""

from unittest.mock import patch

from paramscript import analyze, load_script, Analyzer, build_watcher_index
from paramscript.ast import CommandKind
from paramscript.symbols import SymbolTable, Singleton, TrackedList, RecordKind
from paramscript.values import string_val


def ref(name):
    return {"node": "VariableRef", "name": name}


def declare(name, subtype="INTEGER", default=None):
    node = {"node": "DeclareVariable", "name": name, "var_kind": "PARAMETER", "subtype": subtype}
    if default is not None:
        node["default"] = default
    return node


def assign(name, rhs):
    return {"node": "Assignment", "lhs": ref(name), "rhs": rhs}


DIALOG = {
    "blocks": [
        {"kind": "TAB", "commands": [
            assign("LENGTH", {"node": "BinaryOp", "left": ref("LENGTH"), "operator": "*",
                              "right": 2}),
        ]},
        {"kind": "GUI", "commands": [
            {"node": "ConfigElem", "auto_close": True},
            {"node": "GlobalPicture", "picture": "bracket.gif"},
            {"node": "SubPicture", "picture": "hole.gif", "pos_x": 40, "pos_y": 12},
            {"node": "UserInputParam", "name": "LENGTH", "subtype": "DOUBLE", "default": 120.0,
             "min_value": 10, "max_value": 500, "tooltip": "Overall length"},
            {"node": "CheckboxParam", "name": "CHAMFER", "subtype": "BOOL", "required": True},
            {"node": "RadioButtonParam", "name": "SIDE", "subtype": "INT",
             "options": ["Left", "Right"]},
            {"node": "UserSelect", "reference": "FACE", "types": ["SURFACE"]},
        ]},
        {"kind": "ASM", "commands": [
            {"node": "DeclareVariable", "name": "GIF_DIR", "var_kind": "PARAMETER",
             "subtype": "STRING", "default": "/srv/pictures/"},
        ]},
    ],
}


# =============================================================================
# Driver Tests
# =============================================================================

class TestAnalyze:
    """Test whole-script analysis."""

    def test_dialog_script(self):
        """A well-formed dialog analyzes without errors."""
        result = analyze(load_script(DIALOG))
        assert result.success
        assert not result.has_invalid_commands
        assert not result.has_errors

        symbols = result.symbols
        assert symbols.lookup("LENGTH").data == 120.0
        assert symbols.singleton(Singleton.GLOBAL_PICTURE).data == "/srv/pictures/bracket.gif"
        assert symbols.tracked_items(TrackedList.SUB_PICTURES)[0]["path"] == "/srv/pictures/hole.gif"
        assert symbols.tracked_items(TrackedList.REQUIRED_CHECKBOXES) == ["CHAMFER"]
        assert symbols.tracked_items(TrackedList.REQUIRED_SELECTS) == ["FACE"]
        assert symbols.options(CommandKind.USER_INPUT_PARAM, "LENGTH").to_python()["max_value"] == 500.0

    def test_block_order(self):
        """ASM runs before GUI, and GUI before TAB, whatever the listing order."""
        result = analyze(load_script(DIALOG))
        record = result.symbols.record(RecordKind.ASSIGNMENTS, 1).to_python()
        assert record["lhs_type"] == "DOUBLE"
        assert record["rhs_type"] == "DOUBLE"

    def test_flattened_view(self):
        """The flattened view uses the downstream key names."""
        flat = analyze(load_script(DIALOG)).symbols.flatten()
        assert flat["USER_INPUT:LENGTH"].to_python()["tooltip"] == "Overall length"
        assert flat["CHECKBOX_PARAM_OPTIONS_CHAMFER"].to_python()["required"] is True
        assert flat["RADIOBUTTON:SIDE"].to_python()["options"] == ["Left", "Right"]
        assert "ASSIGN_0001" in flat["ASSIGNMENTS"].as_map()
        assert flat["WATCHER_INDEX"].to_python() == {}

    def test_continues_after_failure(self):
        """Later commands are analyzed after an invalid one."""
        script = load_script({"blocks": [{"kind": "GUI", "commands": [
            {"node": "CheckboxParam", "name": "BAD", "subtype": "STRING"},
            {"node": "GlobalPicture", "picture": "a.gif"},
            {"node": "GlobalPicture", "picture": "b.gif"},
            {"node": "ShowParam", "name": "OK", "subtype": "INTEGER"},
        ]}]})
        result = analyze(script)
        assert result.success
        assert result.has_invalid_commands
        assert len(result.invalid_commands) == 2
        assert [d.code for d in result.diagnostics if d.severity.value == "error"] == ["E203", "E402"]
        assert "OK" in result.symbols
        assert script.blocks[0].commands[3].semantic_valid

    def test_skipped_loop(self):
        """Loops are skipped with a warning and do not fail the script."""
        script = load_script({"blocks": [{"kind": "ASM", "commands": [
            {"node": "ForCommand", "loop_var": "I", "option": "RANGE", "args": [0, 3]},
        ]}]})
        result = analyze(script)
        assert result.success
        assert result.has_warnings
        assert [d.code for d in result.diagnostics] == ["W001"]

    def test_prepopulated_symbols(self):
        """A caller-supplied table is used and filled in."""
        symbols = SymbolTable()
        symbols.declare("GIF_DIR", string_val("C:/dialogs/"))
        script = load_script({"blocks": [{"kind": "GUI", "commands": [
            {"node": "GlobalPicture", "picture": "main.gif"},
        ]}]})
        result = analyze(script, symbols=symbols)
        assert result.symbols is symbols
        assert symbols.singleton(Singleton.GLOBAL_PICTURE).data == "C:/dialogs/main.gif"

    def test_allocation_failure_aborts(self):
        """An allocation failure stops the pass."""
        def exhausted(node, ctx):
            raise MemoryError()

        script = load_script({"blocks": [{"kind": "GUI", "commands": [
            {"node": "ShowParam", "name": "A", "subtype": "INTEGER"},
            {"node": "ExpressionCommand", "expression": 1},
            {"node": "ShowParam", "name": "B", "subtype": "INTEGER"},
        ]}]})
        with patch.dict("paramscript.validators.VALIDATORS", {CommandKind.EXPRESSION: exhausted}):
            result = analyze(script)
        assert result.aborted
        assert not result.success
        assert "A" in result.symbols
        assert "B" not in result.symbols
        assert result.symbols.singleton(Singleton.WATCHER_INDEX) is None


# =============================================================================
# Conditional Tests
# =============================================================================

CONDITIONAL = {
    "blocks": [{"kind": "ASM", "commands": [
        declare("MODE", default=1),
        declare("WIDTH", "DOUBLE"),
        declare("HEIGHT", "DOUBLE"),
        {"node": "IfCommand", "branches": [
            {"node": "IfBranch",
             "condition": {"node": "BinaryOp", "left": ref("MODE"), "operator": "==", "right": 1},
             "commands": [assign("WIDTH", 10), assign("HEIGHT", 20.5)]},
            {"node": "IfBranch",
             "condition": {"node": "BinaryOp", "left": ref("MODE"), "operator": "==", "right": 2},
             "commands": [assign("WIDTH", 30)]},
        ], "else_commands": [assign("WIDTH", 0)]},
        assign("MODE", 3),
    ]}],
}


class TestConditionals:
    """Test conditional records and the watcher index."""

    def test_ids_in_document_order(self):
        """Assignments are numbered in document order."""
        script = load_script(CONDITIONAL)
        if_command = script.blocks[0].commands[3]
        assert if_command.if_id == 1
        assert [c.assign_id for c in if_command.branches[0].commands] == [1, 2]
        assert script.blocks[0].commands[4].assign_id == 5

    def test_if_record(self):
        """The conditional record lists each branch's assignments."""
        result = analyze(load_script(CONDITIONAL))
        assert result.success
        record = result.symbols.record(RecordKind.IFS, 1).to_python()
        assert record["branch_count"] == 2
        assert record["branch_assignments"] == [[1, 2], [3], [4]]
        assert record["if_condition"] == "(MODE == 1)"

    def test_watcher_index(self):
        """The watcher index maps each variable to the branches that write it."""
        result = analyze(load_script(CONDITIONAL))
        index = result.symbols.singleton(Singleton.WATCHER_INDEX).to_python()
        assert index["WIDTH"] == [
            {"if_id": 1, "branch_index": 0, "assign_id": 1},
            {"if_id": 1, "branch_index": 1, "assign_id": 3},
            {"if_id": 1, "branch_index": -1, "assign_id": 4},
        ]
        assert index["HEIGHT"] == [{"if_id": 1, "branch_index": 0, "assign_id": 2}]
        assert "MODE" not in index

    def test_invalid_branch(self):
        """An invalid nested command invalidates the conditional only."""
        data = {"blocks": [{"kind": "ASM", "commands": [
            declare("MODE", default=1),
            {"node": "IfCommand", "branches": [
                {"node": "IfBranch", "condition": ref("MODE"),
                 "commands": [assign("MODE", "text")]},
            ]},
            assign("MODE", 2),
        ]}]}
        script = load_script(data)
        result = analyze(script)
        codes = [d.code for d in result.diagnostics if d.severity.value == "error"]
        assert codes == ["E201", "E306"]
        assert result.invalid_commands == [script.blocks[0].commands[1]]
        assert script.blocks[0].commands[2].semantic_valid

    def test_rebuild_index(self):
        """The watcher index can be rebuilt from the records alone."""
        analyzer = Analyzer()
        analyzer.analyze(load_script(CONDITIONAL))
        rebuilt = build_watcher_index(analyzer.symbols).to_python()
        assert sorted(rebuilt) == ["HEIGHT", "WIDTH"]
