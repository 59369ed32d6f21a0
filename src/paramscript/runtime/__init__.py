"""
paramscript runtime: expression evaluation and analysis context.
"""

from .builtins import BuiltinError, BuiltinRegistry, get_builtin_registry, call_builtin
from .evaluator import Evaluator, looks_like_path, static_type, evaluate
from .context import AnalysisContext

__all__ = [
    "BuiltinError",
    "BuiltinRegistry",
    "get_builtin_registry",
    "call_builtin",
    "Evaluator",
    "looks_like_path",
    "static_type",
    "evaluate",
    "AnalysisContext",
]
