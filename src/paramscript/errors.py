"""
Analysis exceptions and diagnostics.

Error code ranges:
- E1xx: Malformed node (missing or invalid syntax-tree field)
- E2xx: Type errors
- E3xx: Constraint violations
- E4xx: Duplicate declarations
- E5xx: Unresolved references
- E900: Allocation failure
- Wxxx: Warnings (never change the outcome of a command)
- Nxxx: Notes
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Sequence
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


class ErrorKind(Enum):
    """Classes of fatal analysis failures."""
    MALFORMED = "malformed node"
    TYPE = "type error"
    CONSTRAINT = "constraint violation"
    DUPLICATE = "duplicate declaration"
    UNRESOLVED = "unresolved reference"
    ALLOCATION = "allocation failure"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, note)."""
    code: str                       # E201, W102, N001, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    command: Optional[str] = None   # Command kind being analyzed, e.g. "SHOW_PARAM"
    hints: List[str] = field(default_factory=list)

    def format(self) -> str:
        """Format the diagnostic for display."""
        loc = f"{self.span.start}" if self.span is not None else "<script>"
        where = f" {self.command}" if self.command else ""
        parts = [f"{loc}:{where} {self.severity.value}[{self.code}]: {self.message}"]
        for hint in self.hints:
            parts.append(f"    = hint: {hint}")
        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "command": self.command,
            "hints": self.hints,
        }
        if self.span is not None:
            result["range"] = {
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return result


class AnalysisError(Exception):
    """Base exception for fatal analysis failures."""

    kind: ErrorKind = ErrorKind.MALFORMED

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class MalformedNodeError(AnalysisError):
    """A required syntax-tree field is missing or invalid (E1xx)."""
    kind = ErrorKind.MALFORMED


class TypeError(AnalysisError):
    """Operand, operator or subtype mismatch (E2xx)."""
    kind = ErrorKind.TYPE


class ConstraintError(AnalysisError):
    """A field value is out of range or a dependent option is missing (E3xx)."""
    kind = ErrorKind.CONSTRAINT


class DuplicateError(AnalysisError):
    """A singleton command or binding was declared twice (E4xx)."""
    kind = ErrorKind.DUPLICATE


class UnresolvedError(AnalysisError):
    """Undeclared identifier, unknown function or unknown reference type (E5xx)."""
    kind = ErrorKind.UNRESOLVED


class AllocationError(AnalysisError):
    """Resource exhaustion while building values (E900)."""
    kind = ErrorKind.ALLOCATION


def _error(code: str, message: str, span: Optional[SourceSpan] = None,
           command: Optional[str] = None, hints: Sequence[str] = ()) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        command=command,
        hints=list(hints),
    )


# --- Malformed node codes ---

def error_missing_field(command: str, field_name: str,
                        span: Optional[SourceSpan] = None) -> MalformedNodeError:
    """E101: Required field absent."""
    return MalformedNodeError(_error(
        "E101", f"missing required {field_name} in {command}", span, command))


def error_invalid_identifier(command: str, name: str,
                             span: Optional[SourceSpan] = None) -> MalformedNodeError:
    """E102: Name is not a valid identifier."""
    return MalformedNodeError(_error(
        "E102", f"invalid identifier '{name}' in {command}", span, command,
        hints=["identifiers start with a letter or '_' and contain only letters, digits and '_'"]))


def error_invalid_node(message: str, span: Optional[SourceSpan] = None,
                       command: Optional[str] = None) -> MalformedNodeError:
    """E103: Node shape not supported here."""
    return MalformedNodeError(_error("E103", message, span, command))


# --- Type error codes ---

def error_type_mismatch(expected: str, found: str, span: Optional[SourceSpan] = None,
                        command: Optional[str] = None, what: str = "value") -> TypeError:
    """E201: Type mismatch."""
    return TypeError(_error(
        "E201", f"type mismatch for {what}: expected '{expected}', found '{found}'",
        span, command))


def error_invalid_operands(operator: str, left: str, right: Optional[str] = None,
                           span: Optional[SourceSpan] = None) -> TypeError:
    """E202: Operator not applicable to operand types."""
    if right is None:
        message = f"operator '{operator}' not applicable to '{left}'"
    else:
        message = f"operator '{operator}' not applicable to '{left}' and '{right}'"
    return TypeError(_error("E202", message, span))


def error_invalid_subtype(command: str, name: str, subtype: str, allowed: Sequence[str],
                          span: Optional[SourceSpan] = None) -> TypeError:
    """E203: Parameter subtype not allowed for this command."""
    return TypeError(_error(
        "E203", f"invalid subtype '{subtype}' for '{name}' in {command}; "
                f"must be {' or '.join(allowed)}", span, command))


def error_redeclared_type(command: str, name: str, existing: str, declared: str,
                          span: Optional[SourceSpan] = None) -> TypeError:
    """E204: Existing binding has a different type."""
    return TypeError(_error(
        "E204", f"'{name}' already declared as '{existing}', cannot redeclare as '{declared}'",
        span, command))


def error_function_arity(name: str, expected: int, found: int,
                         span: Optional[SourceSpan] = None) -> TypeError:
    """E205: Wrong number of function arguments."""
    return TypeError(_error(
        "E205", f"function {name} expects {expected} argument(s), got {found}", span))


def error_argument_type(name: str, index: int, expected: str, found: str,
                        span: Optional[SourceSpan] = None) -> TypeError:
    """E206: Function argument has the wrong type."""
    return TypeError(_error(
        "E206", f"argument {index + 1} of {name}: expected '{expected}', found '{found}'", span))


def error_condition_type(found: str, span: Optional[SourceSpan] = None) -> TypeError:
    """E207: Condition is not boolean or coercible."""
    return TypeError(_error(
        "E207", f"condition must be BOOL, INTEGER or DOUBLE, found '{found}'", span, "IF"))


def error_not_evaluable(what: str, target: str, span: Optional[SourceSpan] = None) -> TypeError:
    """E208: Expression cannot be coerced to the requested representation."""
    return TypeError(_error("E208", f"cannot evaluate {what} as {target}", span))


# --- Constraint codes ---

def error_constraint(command: Optional[str], message: str,
                     span: Optional[SourceSpan] = None) -> ConstraintError:
    """E301: Generic constraint violation."""
    return ConstraintError(_error("E301", message, span, command))


def error_image_requires_tooltip(command: str, name: str,
                                 span: Optional[SourceSpan] = None) -> ConstraintError:
    """E302: IMAGE given without TOOLTIP."""
    return ConstraintError(_error(
        "E302", f"IMAGE requires TOOLTIP for '{name}' in {command}", span, command))


def error_on_picture_position(command: str, name: str, detail: str,
                              span: Optional[SourceSpan] = None) -> ConstraintError:
    """E303: ON_PICTURE position missing or invalid."""
    return ConstraintError(_error(
        "E303", f"ON_PICTURE for '{name}' in {command}: {detail}", span, command,
        hints=["ON_PICTURE requires POS_X and POS_Y as non-negative integers"]))


def error_division_by_zero(span: Optional[SourceSpan] = None) -> ConstraintError:
    """E304: Division by zero."""
    return ConstraintError(_error("E304", "division by zero", span))


def error_empty_value(command: str, what: str,
                      span: Optional[SourceSpan] = None) -> ConstraintError:
    """E305: Value evaluated to an empty string."""
    return ConstraintError(_error("E305", f"{what} in {command} must not be empty", span, command))


def error_branch_failures(count: int, span: Optional[SourceSpan] = None) -> ConstraintError:
    """E306: A conditional contains invalid commands."""
    return ConstraintError(_error(
        "E306", f"conditional contains {count} invalid command(s)", span, "IF"))


# --- Duplicate codes ---

def error_duplicate(command: str, name: str,
                    span: Optional[SourceSpan] = None) -> DuplicateError:
    """E401: Name already bound."""
    return DuplicateError(_error("E401", f"'{name}' is already declared", span, command))


def error_duplicate_singleton(command: str,
                              span: Optional[SourceSpan] = None) -> DuplicateError:
    """E402: Single-instance command repeated."""
    return DuplicateError(_error(
        "E402", f"{command} may appear only once per script", span, command))


# --- Unresolved reference codes ---

def error_undefined_identifier(name: str,
                               span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E501: Undeclared identifier."""
    return UnresolvedError(_error("E501", f"undefined identifier '{name}'", span))


def error_unknown_function(name: str, span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E502: Function not in the built-in table."""
    return UnresolvedError(_error("E502", f"unknown function '{name}'", span))


def error_unknown_reference_type(command: str, name: str,
                                 span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E503: Reference type name not in the host table."""
    return UnresolvedError(_error(
        "E503", f"unknown reference type '{name}' in {command}", span, command))


def error_missing_member(container: str, member: str,
                         span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E504: Structure member or map key not present."""
    return UnresolvedError(_error("E504", f"'{container}' has no member '{member}'", span))


def error_missing_prerequisite(command: str, prerequisite: str,
                               span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E505: Command depends on one that has not succeeded."""
    return UnresolvedError(_error(
        "E505", f"{command} requires a preceding {prerequisite}", span, command))


def error_index_out_of_range(name: str, index: int,
                             span: Optional[SourceSpan] = None) -> UnresolvedError:
    """E506: Array index outside the stored elements."""
    return UnresolvedError(_error("E506", f"index {index} out of range for '{name}'", span))


# --- Allocation ---

def error_allocation(command: str, span: Optional[SourceSpan] = None) -> AllocationError:
    """E900: Out of memory while building values."""
    return AllocationError(_error(
        "E900", f"allocation failure while analyzing {command}", span, command))


# --- Warnings and notes ---

def warning(code: str, message: str, span: Optional[SourceSpan] = None,
            command: Optional[str] = None) -> Diagnostic:
    """Build a warning diagnostic (Wxxx)."""
    return Diagnostic(code=code, message=message, severity=ErrorSeverity.WARNING,
                      span=span, command=command)


def note(code: str, message: str, span: Optional[SourceSpan] = None,
         command: Optional[str] = None) -> Diagnostic:
    """Build an informational diagnostic (Nxxx)."""
    return Diagnostic(code=code, message=message, severity=ErrorSeverity.INFO,
                      span=span, command=command)


class DiagnosticCollector:
    """Collects diagnostics during analysis."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: AnalysisError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    def with_code(self, code: str) -> List[Diagnostic]:
        """All diagnostics carrying the given code."""
        return [d for d in self.diagnostics if d.code == code]

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.WARNING]

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def format_all(self, include_notes: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [
            d.format() for d in self.diagnostics
            if include_notes or d.severity != ErrorSeverity.INFO
        ]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
