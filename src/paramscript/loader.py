"""
Build syntax trees from plain data.

The parser lives outside this package; a serialized tree is the hand-off
format used by tooling and tests. Every node is a mapping naming its class
under ``node`` plus its fields::

    blocks:
      - kind: GUI
        commands:
          - node: ShowParam
            name: LENGTH
            subtype: DOUBLE
            tooltip: {node: StringLiteral, value: "Overall length"}
            line: 12

Where a field holds an expression, a bare scalar is shorthand for the
matching literal (``5`` is an IntLiteral, ``"x"`` a StringLiteral). An
optional ``line`` key becomes the node's span. IF and assignment ids are
numbered in document order when the data leaves them out.
"""

import dataclasses
import typing
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from . import ast as ast_nodes
from .ast import (
    AstNode, Expression, Command, Assignment, IfCommand, Block, BlockKind, Script,
    IntLiteral, DoubleLiteral, StringLiteral, BoolLiteral,
)
from .tokens import SourceSpan, TokenType, operator_from_symbol
from .types import ParamSubtype, resolve_subtype_name


class LoadError(ValueError):
    """Serialized tree does not describe valid nodes."""


NODE_CLASSES: Dict[str, type] = {
    name: obj for name, obj in vars(ast_nodes).items()
    if isinstance(obj, type) and issubclass(obj, AstNode) and obj not in (AstNode, Expression, Command)
}

_RESERVED_KEYS = ("node", "line", "filename")


class _Loader:
    def __init__(self, filename: Optional[str] = None):
        self.filename = filename
        self._next_if_id = 1
        self._next_assign_id = 1

    # =========================================================================
    # Nodes
    # =========================================================================

    def node(self, data: Any, expected: type = AstNode) -> AstNode:
        if issubclass(expected, Expression) and not isinstance(data, dict):
            return self.literal(data)
        if not isinstance(data, dict) or "node" not in data:
            raise LoadError(f"expected a {expected.__name__} mapping with a 'node' key, got {data!r}")

        cls = NODE_CLASSES.get(data["node"])
        if cls is None:
            raise LoadError(f"unknown node type '{data['node']}'")
        if not issubclass(cls, expected):
            raise LoadError(f"{cls.__name__} cannot appear where a {expected.__name__} is expected")

        kwargs = {}
        # Numbered before the children so ids follow document order
        self._number(cls, data, kwargs)
        known = {f.name: f for f in dataclasses.fields(cls) if f.init}
        for key, raw in data.items():
            if key in _RESERVED_KEYS:
                continue
            if key not in known:
                raise LoadError(f"{cls.__name__} has no field '{key}'")
            kwargs[key] = self.convert(raw, known[key].type, f"{cls.__name__}.{key}")

        if "line" in data:
            kwargs["span"] = SourceSpan.at_line(int(data["line"]), self.filename)

        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise LoadError(f"cannot build {cls.__name__}: {exc}") from None

    def _number(self, cls: type, data: Dict[str, Any], kwargs: Dict[str, Any]) -> None:
        if issubclass(cls, IfCommand):
            field_name, counter = "if_id", "_next_if_id"
        elif issubclass(cls, Assignment):
            field_name, counter = "assign_id", "_next_assign_id"
        else:
            return
        node_id = data.get(field_name)
        if node_id is None:
            node_id = getattr(self, counter)
            kwargs[field_name] = node_id
        elif not isinstance(node_id, int) or isinstance(node_id, bool):
            raise LoadError(f"{cls.__name__}.{field_name}: expected int, got {node_id!r}")
        setattr(self, counter, max(getattr(self, counter), node_id) + 1)

    def literal(self, data: Any) -> Expression:
        # bool before int: bool is an int subclass
        if isinstance(data, bool):
            return BoolLiteral(data)
        if isinstance(data, int):
            return IntLiteral(data)
        if isinstance(data, float):
            return DoubleLiteral(data)
        if isinstance(data, str):
            return StringLiteral(data)
        raise LoadError(f"cannot use {data!r} as an expression")

    # =========================================================================
    # Fields
    # =========================================================================

    def convert(self, raw: Any, hint: Any, where: str) -> Any:
        origin = typing.get_origin(hint)
        args = typing.get_args(hint)

        if origin is Union:
            if raw is None:
                return None
            inner = [a for a in args if a is not type(None)]
            return self.convert(raw, inner[0], where)

        if origin in (list, List):
            if raw is None:
                return []
            if not isinstance(raw, list):
                raise LoadError(f"{where}: expected a list, got {raw!r}")
            return [self.convert(item, args[0], where) for item in raw]

        if isinstance(hint, type):
            if issubclass(hint, AstNode):
                return self.node(raw, hint)
            if issubclass(hint, Enum):
                return self.enum(raw, hint, where)
            if hint is float and isinstance(raw, int) and not isinstance(raw, bool):
                return float(raw)
            if hint in (int, str, bool, float) and not isinstance(raw, hint):
                raise LoadError(f"{where}: expected {hint.__name__}, got {raw!r}")
        return raw

    def enum(self, raw: Any, enum_type: type, where: str) -> Enum:
        if isinstance(raw, enum_type):
            return raw
        text = str(raw).strip()
        if enum_type is TokenType:
            found = operator_from_symbol(text)
            if found is not None:
                return found
        if enum_type is ParamSubtype:
            found = resolve_subtype_name(text)
            if found is not None:
                return found
        for member in enum_type:
            if member.name == text.upper() or str(member.value).upper() == text.upper():
                return member
        raise LoadError(f"{where}: '{raw}' is not a valid {enum_type.__name__}")

    # =========================================================================
    # Script
    # =========================================================================

    def script(self, data: Any) -> Script:
        if not isinstance(data, dict) or "blocks" not in data:
            raise LoadError("script data must be a mapping with a 'blocks' list")
        blocks = []
        for raw in data["blocks"] or []:
            if not isinstance(raw, dict) or "kind" not in raw:
                raise LoadError(f"block must be a mapping with a 'kind', got {raw!r}")
            kind = self.enum(raw["kind"], BlockKind, "block.kind")
            commands = [self.node(c, Command) for c in raw.get("commands") or []]
            blocks.append(Block(kind, commands))
        return Script(blocks=blocks, filename=data.get("filename", self.filename))


def load_script(data: Dict[str, Any], filename: Optional[str] = None) -> Script:
    """Build a Script from already-parsed data."""
    return _Loader(filename).script(data)


def load_node(data: Any, filename: Optional[str] = None) -> AstNode:
    """Build a single node (expression or command) from data."""
    return _Loader(filename).node(data)


def load_script_file(path: Union[str, Path]) -> Script:
    """Read a YAML-serialized tree from `path`."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise LoadError(f"YAML parse error in {path}: {e}") from None
    if data is None:
        raise LoadError(f"empty YAML file: {path}")
    return load_script(data, filename=str(path))
