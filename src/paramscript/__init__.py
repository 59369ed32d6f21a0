"""
paramscript semantic analysis and expression evaluation.

This package provides:
- Syntax tree node definitions for the dialog scripting language
- Symbol table and registry of derived dialog configuration
- Expression evaluator: static typing, coerced and full evaluation
- Command validators and the analysis driver
- A loader for serialized trees and a small CLI

Usage:
    from paramscript import analyze, load_script

    script = load_script({
        "blocks": [
            {"kind": "GUI", "commands": [
                {"node": "DeclareVariable", "name": "X", "var_kind": "PARAMETER",
                 "subtype": "INTEGER", "default": 5},
                {"node": "Assignment",
                 "lhs": {"node": "VariableRef", "name": "X"},
                 "rhs": {"node": "BinaryOp", "left": {"node": "VariableRef", "name": "X"},
                         "operator": "+", "right": 1}},
            ]},
        ],
    })
    result = analyze(script)
    if result.has_invalid_commands:
        for diag in result.diagnostics:
            print(diag.format())
"""

from .tokens import (
    TokenType,
    SourceLocation,
    SourceSpan,
)

from .types import (
    ValueType,
    VariableKind,
    ParamSubtype,
    is_valid_identifier,
)

from .values import (
    Value,
    ValueAccessError,
    int_val,
    double_val,
    string_val,
    bool_val,
    reference_val,
    array_val,
    map_val,
    structure_val,
)

from .ast import (
    # Expressions
    Expression,
    IntLiteral,
    DoubleLiteral,
    StringLiteral,
    BoolLiteral,
    Constant,
    VariableRef,
    UnaryOp,
    BinaryOp,
    FunctionCall,
    ArrayIndex,
    MapLookup,
    StructAccess,
    # Commands
    Command,
    CommandKind,
    DeclareVariable,
    ConfigElem,
    GlobalPicture,
    SubPicture,
    ShowParam,
    CheckboxParam,
    UserInputParam,
    RadioButtonParam,
    UserSelect,
    UserSelectOptional,
    UserSelectMultiple,
    UserSelectMultipleOptional,
    BeginTable,
    InvalidateParam,
    Assignment,
    IfBranch,
    IfCommand,
    ForCommand,
    WhileCommand,
    ExpressionCommand,
    # Script structure
    Block,
    BlockKind,
    Script,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    ErrorKind,
    AnalysisError,
    MalformedNodeError,
    TypeError,
    ConstraintError,
    DuplicateError,
    UnresolvedError,
    AllocationError,
)

from .symbols import (
    SymbolTable,
    DeclareResult,
    FunctionSignature,
    TrackedList,
    Singleton,
    RecordKind,
)

from .config import (
    HostConfig,
    load_host_config,
    default_host_config,
)

from .runtime import (
    Evaluator,
    AnalysisContext,
)

from .analyzer import (
    Analyzer,
    AnalysisResult,
    analyze,
    build_watcher_index,
)

from .loader import (
    LoadError,
    load_script,
    load_script_file,
)

__all__ = [
    # Tokens
    "TokenType", "SourceLocation", "SourceSpan",
    # Types and values
    "ValueType", "VariableKind", "ParamSubtype", "is_valid_identifier",
    "Value", "ValueAccessError", "int_val", "double_val", "string_val", "bool_val",
    "reference_val", "array_val", "map_val", "structure_val",
    # Expressions
    "Expression", "IntLiteral", "DoubleLiteral", "StringLiteral", "BoolLiteral",
    "Constant", "VariableRef", "UnaryOp", "BinaryOp", "FunctionCall",
    "ArrayIndex", "MapLookup", "StructAccess",
    # Commands
    "Command", "CommandKind", "DeclareVariable", "ConfigElem", "GlobalPicture",
    "SubPicture", "ShowParam", "CheckboxParam", "UserInputParam", "RadioButtonParam",
    "UserSelect", "UserSelectOptional", "UserSelectMultiple", "UserSelectMultipleOptional",
    "BeginTable", "InvalidateParam", "Assignment", "IfBranch", "IfCommand",
    "ForCommand", "WhileCommand", "ExpressionCommand",
    "Block", "BlockKind", "Script",
    # Errors
    "Diagnostic", "DiagnosticCollector", "ErrorSeverity", "ErrorKind",
    "AnalysisError", "MalformedNodeError", "TypeError", "ConstraintError",
    "DuplicateError", "UnresolvedError", "AllocationError",
    # Symbols
    "SymbolTable", "DeclareResult", "FunctionSignature",
    "TrackedList", "Singleton", "RecordKind",
    # Configuration
    "HostConfig", "load_host_config", "default_host_config",
    # Analysis
    "Evaluator", "AnalysisContext", "Analyzer", "AnalysisResult",
    "analyze", "build_watcher_index",
    # Loading
    "LoadError", "load_script", "load_script_file",
]

__version__ = "0.1.0"
