"""
Tests for host data loading, the tree loader and the command-line interface.
"""

import json
import sys

import pytest
import yaml

from paramscript.__main__ import main
from paramscript.ast import (
    BoolLiteral, IntLiteral, DoubleLiteral, StringLiteral, BinaryOp, ShowParam,
    BeginTable, IfCommand, BlockKind,
)
from paramscript.config import (
    PARAMSCRIPT_HOST_DATA, clear_cache, default_host_config, host_config_from_dict,
    load_host_config,
)
from paramscript.loader import LoadError, load_node, load_script, load_script_file
from paramscript.tokens import TokenType
from paramscript.types import ParamSubtype, ValueType


SITE_DATA = {
    "schema_version": "1.2",
    "reference_types": {"face": 100, "Edge": 200},
    "screen_locations": ["center"],
    "image_extensions": [".PNG"],
    "table_column_types": {"string": "string"},
    "base_directory_symbol": "PICTURE_DIR",
    "double_epsilon": 1e-6,
}


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    monkeypatch.delenv(PARAMSCRIPT_HOST_DATA, raising=False)
    clear_cache()
    yield
    clear_cache()


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# =============================================================================
# Host Data Tests
# =============================================================================

class TestHostConfig:
    """Test host data loading."""

    def test_bundled_defaults(self):
        """The bundled file provides the standard tables."""
        config = default_host_config()
        assert config.reference_code("surface") == 5
        assert config.reference_code("WIDGET") == config.unknown_reference_type == -1
        assert "TOP_LEFT" in config.screen_locations
        assert config.is_supported_image("Main.GIF")
        assert not config.is_supported_image("main.tif")
        assert config.table_column_types["SUBCOMP"] == ValueType.REFERENCE
        assert config.base_directory_symbol == "GIF_DIR"

    def test_cached(self):
        """Repeated loads return the cached tables."""
        assert load_host_config() is load_host_config()

    def test_from_dict_normalizes(self):
        """Names are upper-cased and extensions lower-cased."""
        config = host_config_from_dict(SITE_DATA)
        assert config.reference_types == {"FACE": 100, "EDGE": 200}
        assert config.screen_locations == ("CENTER",)
        assert config.image_extensions == (".png",)
        assert config.table_column_types == {"STRING": ValueType.STRING}
        assert config.double_epsilon == 1e-6

    def test_environment_override(self, tmp_path, monkeypatch):
        """PARAMSCRIPT_HOST_DATA replaces the bundled file."""
        path = write_yaml(tmp_path / "site.yaml", SITE_DATA)
        monkeypatch.setenv(PARAMSCRIPT_HOST_DATA, str(path))
        clear_cache()
        config = default_host_config()
        assert config.reference_code("face") == 100
        assert config.base_directory_symbol == "PICTURE_DIR"
        assert config.source_path == str(path.resolve())

    def test_explicit_path(self, tmp_path):
        """An explicit path wins over everything else."""
        path = write_yaml(tmp_path / "site.yaml", SITE_DATA)
        assert load_host_config(path).reference_code("EDGE") == 200

    def test_missing_file(self, tmp_path):
        """A missing file is reported."""
        with pytest.raises(FileNotFoundError):
            load_host_config(tmp_path / "absent.yaml")

    def test_missing_section(self, tmp_path):
        """Required sections must be present."""
        data = dict(SITE_DATA)
        del data["screen_locations"]
        with pytest.raises(ValueError, match="screen_locations"):
            load_host_config(write_yaml(tmp_path / "bad.yaml", data))

    def test_schema_version(self, tmp_path):
        """Only schema 1.x is understood."""
        data = dict(SITE_DATA, schema_version="2.0")
        with pytest.raises(ValueError, match="schema version"):
            load_host_config(write_yaml(tmp_path / "v2.yaml", data))

    def test_unknown_column_type(self):
        """Column types must name a value type."""
        data = dict(SITE_DATA, table_column_types={"WIDE": "WIDGET"})
        with pytest.raises(ValueError, match="WIDGET"):
            host_config_from_dict(data)


# =============================================================================
# Loader Tests
# =============================================================================

class TestLoader:
    """Test building syntax trees from data."""

    def test_scalar_shorthand(self):
        """Bare scalars in expression positions become literals."""
        node = load_node({"node": "BinaryOp", "left": 1, "operator": "+", "right": 2.5})
        assert node == BinaryOp(IntLiteral(1), TokenType.PLUS, DoubleLiteral(2.5))

    def test_bool_before_int(self):
        """Booleans load as BoolLiteral, not IntLiteral."""
        node = load_node({"node": "ExpressionCommand", "expression": True})
        assert isinstance(node.expression, BoolLiteral)

    def test_operator_spellings(self):
        """Operators load from their symbol or their name."""
        node = load_node({"node": "BinaryOp", "left": 1, "operator": "<>", "right": 2})
        assert node.operator == TokenType.NE
        node = load_node({"node": "BinaryOp", "left": 1, "operator": "and", "right": 2})
        assert node.operator == TokenType.AND

    def test_subtype_spellings(self):
        """Subtypes accept INT and INTEGER."""
        node = load_node({"node": "ShowParam", "name": "X", "subtype": "int"})
        assert node == ShowParam("X", ParamSubtype.INT)
        node = load_node({"node": "ShowParam", "name": "X", "subtype": "INTEGER"})
        assert node.subtype == ParamSubtype.INT

    def test_line_span(self):
        """A line key becomes the node span."""
        node = load_node({"node": "ShowParam", "name": "X", "subtype": "DOUBLE", "line": 12},
                         filename="dialog.yaml")
        assert node.span.start.line == 12
        assert str(node.span.start) == "dialog.yaml:12:1"

    def test_table_cells(self):
        """Table rows may hold null cells."""
        node = load_node({
            "node": "BeginTable", "identifier": "T",
            "sel_strings": ["SEL_STRING", "A"], "data_types": ["STRING", "INTEGER"],
            "rows": [["x", None]],
        })
        assert isinstance(node, BeginTable)
        assert node.rows == [[StringLiteral("x"), None]]

    def test_explicit_ids(self):
        """Explicit ids are kept and later ones continue after them."""
        script = load_script({"blocks": [{"kind": "ASM", "commands": [
            {"node": "IfCommand", "if_id": 5, "branches": []},
            {"node": "IfCommand", "branches": []},
        ]}]})
        first, second = script.blocks[0].commands
        assert isinstance(first, IfCommand)
        assert (first.if_id, second.if_id) == (5, 6)

    def test_unknown_node(self):
        """Unknown node names are rejected."""
        with pytest.raises(LoadError, match="unknown node"):
            load_node({"node": "Teleport"})

    def test_unknown_field(self):
        """Unknown fields are rejected."""
        with pytest.raises(LoadError, match="no field"):
            load_node({"node": "ShowParam", "name": "X", "subtype": "INT", "colour": "red"})

    def test_wrong_position(self):
        """Commands cannot stand in for expressions."""
        with pytest.raises(LoadError):
            load_node({"node": "ExpressionCommand",
                       "expression": {"node": "ShowParam", "name": "X", "subtype": "INT"}})

    def test_bad_enum(self):
        """Enum fields must name a member."""
        with pytest.raises(LoadError, match="ParamSubtype"):
            load_node({"node": "ShowParam", "name": "X", "subtype": "COMPLEX"})

    def test_missing_required_field(self):
        """Missing required fields are reported."""
        with pytest.raises(LoadError, match="ShowParam"):
            load_node({"node": "ShowParam", "name": "X"})

    def test_bad_script(self):
        """Scripts need a blocks list of kinded blocks."""
        with pytest.raises(LoadError):
            load_script({"commands": []})
        with pytest.raises(LoadError):
            load_script({"blocks": [{"commands": []}]})

    def test_load_file(self, tmp_path):
        """YAML files load into scripts carrying their file name."""
        path = write_yaml(tmp_path / "dialog.yaml", {"blocks": [
            {"kind": "gui", "commands": [{"node": "ShowParam", "name": "X", "subtype": "BOOL"}]},
        ]})
        script = load_script_file(path)
        assert script.filename == str(path)
        assert script.find_block(BlockKind.GUI).commands[0].name == "X"

    def test_load_file_errors(self, tmp_path):
        """Unparseable and empty files raise LoadError."""
        broken = tmp_path / "broken.yaml"
        broken.write_text("blocks: [unclosed\n", encoding="utf-8")
        with pytest.raises(LoadError, match="YAML parse error"):
            load_script_file(broken)
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(LoadError, match="empty"):
            load_script_file(empty)


# =============================================================================
# CLI Tests
# =============================================================================

GOOD_SCRIPT = {"blocks": [{"kind": "GUI", "commands": [
    {"node": "GlobalPicture", "picture": "main.gif"},
    {"node": "ShowParam", "name": "LENGTH", "subtype": "DOUBLE", "line": 3},
]}]}

BAD_SCRIPT = {"blocks": [{"kind": "GUI", "commands": [
    {"node": "CheckboxParam", "name": "FLAG", "subtype": "STRING", "line": 7},
]}]}


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["paramscript", *argv])
    return main()


class TestCli:
    """Test the command-line interface."""

    def test_check_ok(self, tmp_path, monkeypatch, capsys):
        """A clean script exits 0."""
        path = write_yaml(tmp_path / "good.yaml", GOOD_SCRIPT)
        assert run_cli(monkeypatch, "check", str(path)) == 0
        assert "OK: good.yaml - 2 command(s)" in capsys.readouterr().out

    def test_check_failure(self, tmp_path, monkeypatch, capsys):
        """Invalid commands are reported and exit 1."""
        path = write_yaml(tmp_path / "bad.yaml", BAD_SCRIPT)
        assert run_cli(monkeypatch, "check", str(path)) == 1
        out = capsys.readouterr().out
        assert "error[E203]" in out
        assert "1 of 1 command(s) invalid" in out

    def test_check_json(self, tmp_path, monkeypatch, capsys):
        """JSON output carries diagnostics and, on request, symbols."""
        path = write_yaml(tmp_path / "good.yaml", GOOD_SCRIPT)
        assert run_cli(monkeypatch, "check", str(path), "--json", "--symbols",
                       "--gif-dir", "/pics/") == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["symbols"]["GLOBAL_PICTURE"] == "/pics/main.gif"
        assert payload["symbols"]["LENGTH"] == 0.0

    def test_check_json_invalid_commands(self, tmp_path, monkeypatch, capsys):
        """A completed pass with invalid commands reports success and exits 1."""
        path = write_yaml(tmp_path / "bad.yaml", BAD_SCRIPT)
        assert run_cli(monkeypatch, "check", str(path), "--json") == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["invalid_commands"] == 1

    def test_gif_dir_uses_configured_symbol(self, tmp_path, monkeypatch, capsys):
        """--gif-dir binds the base directory symbol named by the host data."""
        script = write_yaml(tmp_path / "good.yaml", GOOD_SCRIPT)
        host = write_yaml(tmp_path / "site.yaml", SITE_DATA)
        assert run_cli(monkeypatch, "check", str(script), "--json", "--symbols",
                       "--host-data", str(host), "--gif-dir", "/pics/") == 0
        symbols = json.loads(capsys.readouterr().out)["symbols"]
        assert symbols["PICTURE_DIR"] == "/pics/"
        assert "GIF_DIR" not in symbols
        assert symbols["GLOBAL_PICTURE"] == "/pics/main.gif"

    def test_check_missing_file(self, tmp_path, monkeypatch, capsys):
        """Missing files exit 1."""
        assert run_cli(monkeypatch, "check", str(tmp_path / "absent.yaml")) == 1
        assert "File not found" in capsys.readouterr().err

    def test_check_malformed_tree(self, tmp_path, monkeypatch, capsys):
        """Malformed trees exit 1 with the loader's message."""
        path = write_yaml(tmp_path / "broken.yaml", {"blocks": [{"kind": "GUI", "commands": [
            {"node": "Teleport"},
        ]}]})
        assert run_cli(monkeypatch, "check", str(path)) == 1
        assert "unknown node" in capsys.readouterr().err

    def test_list(self, tmp_path, monkeypatch, capsys):
        """Commands are listed per block."""
        path = write_yaml(tmp_path / "good.yaml", GOOD_SCRIPT)
        assert run_cli(monkeypatch, "list", str(path)) == 0
        out = capsys.readouterr().out
        assert "GUI: 2 command(s)" in out
        assert "LENGTH  line 3" in out

    def test_builtins(self, monkeypatch, capsys):
        """Built-in signatures are listed."""
        assert run_cli(monkeypatch, "builtins") == 0
        out = capsys.readouterr().out
        assert "SIN(x: DOUBLE) -> DOUBLE" in out
        assert "ROUND(x: DOUBLE, digits: INTEGER) -> DOUBLE" in out
