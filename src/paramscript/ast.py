"""
Syntax tree node definitions for paramscript.

The tree is produced by the parser (outside this package) and consumed by
the analyzer. Expression nodes are never mutated; command nodes carry a
`semantic_valid` flag that the analyzer clears when validation fails.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional
from .tokens import SourceSpan, TokenType, OPERATOR_SYMBOLS
from .types import ParamSubtype, VariableKind


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode:
    """Base class for all syntax tree nodes."""
    span: Optional[SourceSpan] = field(default=None, kw_only=True)


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class IntLiteral(Expression):
    value: int


@dataclass
class DoubleLiteral(Expression):
    value: float


@dataclass
class StringLiteral(Expression):
    value: str


@dataclass
class BoolLiteral(Expression):
    value: bool


@dataclass
class Constant(Expression):
    """A named fixed double such as PI."""
    name: str
    value: float


@dataclass
class VariableRef(Expression):
    name: str


@dataclass
class UnaryOp(Expression):
    """Unary negation: -operand."""
    operator: TokenType
    operand: Expression


@dataclass
class BinaryOp(Expression):
    """Binary operation: left op right."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class FunctionCall(Expression):
    """Call of a built-in function: SIN(x), STRLEN(s), ..."""
    name: str
    args: List[Expression] = field(default_factory=list)


@dataclass
class ArrayIndex(Expression):
    """Array element access: base[index]."""
    base: Expression
    index: Expression


@dataclass
class MapLookup(Expression):
    """Map entry access: map.key"""
    map: Expression
    key: str


@dataclass
class StructAccess(Expression):
    """Structure member access: structure.member"""
    structure: Expression
    member: str


# Left-hand sides accepted by assignment
ASSIGNABLE_EXPRESSIONS = (VariableRef, ArrayIndex, MapLookup, StructAccess)


def render_expression(expr: Optional[Expression]) -> str:
    """Render an expression back to script text."""
    if expr is None:
        return ""
    if isinstance(expr, IntLiteral):
        return str(expr.value)
    if isinstance(expr, DoubleLiteral):
        return "%.15g" % expr.value
    if isinstance(expr, StringLiteral):
        return f'"{expr.value}"'
    if isinstance(expr, BoolLiteral):
        return "TRUE" if expr.value else "FALSE"
    if isinstance(expr, Constant):
        return expr.name
    if isinstance(expr, VariableRef):
        return expr.name
    if isinstance(expr, UnaryOp):
        return f"-{render_expression(expr.operand)}"
    if isinstance(expr, BinaryOp):
        op = OPERATOR_SYMBOLS[expr.operator]
        return f"({render_expression(expr.left)} {op} {render_expression(expr.right)})"
    if isinstance(expr, FunctionCall):
        args = ", ".join(render_expression(a) for a in expr.args)
        return f"{expr.name}({args})"
    if isinstance(expr, ArrayIndex):
        return f"{render_expression(expr.base)}[{render_expression(expr.index)}]"
    if isinstance(expr, MapLookup):
        return f"{render_expression(expr.map)}.{expr.key}"
    if isinstance(expr, StructAccess):
        return f"{render_expression(expr.structure)}.{expr.member}"
    return f"<{type(expr).__name__}>"


# =============================================================================
# Command Nodes
# =============================================================================

class CommandKind(Enum):
    """Every command kind the parser can produce."""
    DECLARE_VARIABLE = "DECLARE_VARIABLE"
    CONFIG_ELEM = "CONFIG_ELEM"
    SHOW_PARAM = "SHOW_PARAM"
    GLOBAL_PICTURE = "GLOBAL_PICTURE"
    SUB_PICTURE = "SUB_PICTURE"
    USER_INPUT_PARAM = "USER_INPUT_PARAM"
    CHECKBOX_PARAM = "CHECKBOX_PARAM"
    USER_SELECT = "USER_SELECT"
    USER_SELECT_OPTIONAL = "USER_SELECT_OPTIONAL"
    USER_SELECT_MULTIPLE = "USER_SELECT_MULTIPLE"
    USER_SELECT_MULTIPLE_OPTIONAL = "USER_SELECT_MULTIPLE_OPTIONAL"
    RADIOBUTTON_PARAM = "RADIOBUTTON_PARAM"
    BEGIN_TABLE = "BEGIN_TABLE"
    INVALIDATE_PARAM = "INVALIDATE_PARAM"
    IF = "IF"
    FOR = "FOR"
    WHILE = "WHILE"
    ASSIGNMENT = "ASSIGNMENT"
    EXPRESSION = "EXPRESSION"

    def __str__(self) -> str:
        return self.value


@dataclass
class Command(AstNode):
    """Base class for all commands."""
    kind: ClassVar[CommandKind]
    semantic_valid: bool = field(default=True, kw_only=True)


@dataclass
class DeclareVariable(Command):
    """DECLARE_VARIABLE name kind [subtype] [= default]"""
    kind: ClassVar[CommandKind] = CommandKind.DECLARE_VARIABLE
    name: str
    var_kind: VariableKind
    subtype: Optional[ParamSubtype] = None
    default: Optional[Expression] = None


@dataclass
class ConfigElem(Command):
    """CONFIG_ELEM with dialog flags and optional size/location."""
    kind: ClassVar[CommandKind] = CommandKind.CONFIG_ELEM
    no_tables: bool = False
    no_gui: bool = False
    auto_commit: bool = False
    auto_close: bool = False
    show_gui_for_existing: bool = False
    no_auto_update: bool = False
    continue_on_cancel: bool = False
    has_screen_location: bool = False
    location: Optional[Expression] = None
    width: Optional[Expression] = None
    height: Optional[Expression] = None


@dataclass
class GlobalPicture(Command):
    kind: ClassVar[CommandKind] = CommandKind.GLOBAL_PICTURE
    picture: Optional[Expression] = None


@dataclass
class SubPicture(Command):
    kind: ClassVar[CommandKind] = CommandKind.SUB_PICTURE
    picture: Optional[Expression] = None
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None


@dataclass
class ShowParam(Command):
    kind: ClassVar[CommandKind] = CommandKind.SHOW_PARAM
    name: str
    subtype: ParamSubtype
    tooltip: Optional[Expression] = None
    image: Optional[Expression] = None
    on_picture: bool = False
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None


@dataclass
class CheckboxParam(Command):
    kind: ClassVar[CommandKind] = CommandKind.CHECKBOX_PARAM
    name: str
    subtype: ParamSubtype
    required: bool = False
    display_order: Optional[Expression] = None
    tooltip: Optional[Expression] = None
    image: Optional[Expression] = None
    on_picture: bool = False
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None
    tag: Optional[Expression] = None


@dataclass
class UserInputParam(Command):
    kind: ClassVar[CommandKind] = CommandKind.USER_INPUT_PARAM
    name: str
    subtype: ParamSubtype
    default: Optional[Expression] = None
    default_for: List[str] = field(default_factory=list)
    width: Optional[Expression] = None
    decimal_places: Optional[Expression] = None
    model: Optional[Expression] = None
    required: bool = False
    no_update: bool = False
    display_order: Optional[Expression] = None
    min_value: Optional[Expression] = None
    max_value: Optional[Expression] = None
    tooltip: Optional[Expression] = None
    image: Optional[Expression] = None
    on_picture: bool = False
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None


@dataclass
class RadioButtonParam(Command):
    kind: ClassVar[CommandKind] = CommandKind.RADIOBUTTON_PARAM
    name: str
    subtype: ParamSubtype
    options: List[Expression] = field(default_factory=list)
    required: bool = False
    display_order: Optional[Expression] = None
    tooltip: Optional[Expression] = None
    image: Optional[Expression] = None
    on_picture: bool = False
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None


@dataclass
class SelectCommand(Command):
    """Fields shared by all USER_SELECT variants."""
    types: List[Expression] = field(default_factory=list)
    display_order: Optional[Expression] = None
    allow_reselect: bool = False
    filter_mdl: Optional[Expression] = None
    filter_feat: Optional[Expression] = None
    filter_geom: Optional[Expression] = None
    filter_ref: Optional[Expression] = None
    filter_identifier: Optional[Expression] = None
    select_by_box: bool = False
    select_by_menu: bool = False
    include_multi_cad: Optional[Expression] = None
    tooltip: Optional[Expression] = None
    image: Optional[Expression] = None
    on_picture: bool = False
    pos_x: Optional[Expression] = None
    pos_y: Optional[Expression] = None
    tag: Optional[Expression] = None

    # Whether the selection must be made before the dialog can be accepted
    required: ClassVar[bool] = True

    @property
    def target(self) -> str:
        raise NotImplementedError


@dataclass
class UserSelect(SelectCommand):
    """USER_SELECT reference TYPES ... : one required reference."""
    kind: ClassVar[CommandKind] = CommandKind.USER_SELECT
    reference: str = ""

    @property
    def target(self) -> str:
        return self.reference


@dataclass
class UserSelectOptional(UserSelect):
    kind: ClassVar[CommandKind] = CommandKind.USER_SELECT_OPTIONAL
    required: ClassVar[bool] = False


@dataclass
class UserSelectMultiple(SelectCommand):
    """USER_SELECT_MULTIPLE array TYPES ... MAX_SEL n: several references."""
    kind: ClassVar[CommandKind] = CommandKind.USER_SELECT_MULTIPLE
    array: str = ""
    max_sel: Optional[Expression] = None

    @property
    def target(self) -> str:
        return self.array


@dataclass
class UserSelectMultipleOptional(UserSelectMultiple):
    kind: ClassVar[CommandKind] = CommandKind.USER_SELECT_MULTIPLE_OPTIONAL
    required: ClassVar[bool] = False


@dataclass
class BeginTable(Command):
    """BEGIN_TABLE ... END_TABLE selection table."""
    kind: ClassVar[CommandKind] = CommandKind.BEGIN_TABLE
    identifier: str
    name: Optional[Expression] = None
    options: List[Expression] = field(default_factory=list)
    sel_strings: List[Expression] = field(default_factory=list)
    data_types: List[Expression] = field(default_factory=list)
    rows: List[List[Optional[Expression]]] = field(default_factory=list)
    no_autosel: bool = False
    no_filter: bool = False
    depend_on_input: bool = False
    invalidate_on_unselect: bool = False
    show_autosel: bool = False
    filter_rigid: bool = False
    array: bool = False
    filter_only_column: int = -1
    filter_column: int = -1
    table_height: int = 12

    @property
    def column_count(self) -> int:
        return len(self.sel_strings)


@dataclass
class InvalidateParam(Command):
    kind: ClassVar[CommandKind] = CommandKind.INVALIDATE_PARAM
    name: str


@dataclass
class Assignment(Command):
    """lhs = rhs"""
    kind: ClassVar[CommandKind] = CommandKind.ASSIGNMENT
    lhs: Expression
    rhs: Expression
    assign_id: int = 0


@dataclass
class IfBranch(AstNode):
    """One IF or ELSE_IF branch."""
    condition: Expression
    commands: List[Command] = field(default_factory=list)


@dataclass
class IfCommand(Command):
    """IF ... ELSE_IF ... ELSE ... END_IF"""
    kind: ClassVar[CommandKind] = CommandKind.IF
    branches: List[IfBranch] = field(default_factory=list)
    else_commands: List[Command] = field(default_factory=list)
    if_id: int = 0


@dataclass
class ForCommand(Command):
    """FOR loop_var option args ... END_FOR"""
    kind: ClassVar[CommandKind] = CommandKind.FOR
    loop_var: str
    option: str
    args: List[Expression] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)


@dataclass
class WhileCommand(Command):
    kind: ClassVar[CommandKind] = CommandKind.WHILE
    condition: Expression
    commands: List[Command] = field(default_factory=list)


@dataclass
class ExpressionCommand(Command):
    """A bare expression evaluated for its side effects."""
    kind: ClassVar[CommandKind] = CommandKind.EXPRESSION
    expression: Expression


def nested_commands(command: Command) -> List[Command]:
    """Commands directly contained in a compound command."""
    if isinstance(command, IfCommand):
        nested = [c for branch in command.branches for c in branch.commands]
        return nested + list(command.else_commands)
    if isinstance(command, (ForCommand, WhileCommand)):
        return list(command.commands)
    return []


# =============================================================================
# Script Structure
# =============================================================================

class BlockKind(Enum):
    """Structural blocks of a script, listed in analysis priority order."""
    ASM = "ASM"
    GUI = "GUI"
    TAB = "TAB"


ANALYSIS_ORDER = (BlockKind.ASM, BlockKind.GUI, BlockKind.TAB)


@dataclass
class Block(AstNode):
    kind: BlockKind
    commands: List[Command] = field(default_factory=list)


@dataclass
class Script(AstNode):
    """A complete parsed script."""
    blocks: List[Block] = field(default_factory=list)
    filename: Optional[str] = None

    def find_block(self, kind: BlockKind) -> Optional[Block]:
        for block in self.blocks:
            if block.kind == kind:
                return block
        return None
