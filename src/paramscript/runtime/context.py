"""
Analysis context shared by the driver and the command validators.

Bundles the symbol table, the diagnostic sink, host data and an evaluator
bound to both, and tracks which command and conditional are being analyzed
so that diagnostics can be attributed without threading extra arguments
through every validator.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..ast import Command
from ..config import HostConfig, default_host_config
from ..errors import DiagnosticCollector, Diagnostic, note, warning
from ..symbols import SymbolTable
from .evaluator import Evaluator


@dataclass
class AnalysisContext:
    """Per-analysis state. One context per script; not shared across threads."""
    symbols: SymbolTable = field(default_factory=SymbolTable)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    config: HostConfig = field(default_factory=default_host_config)

    current_command: Optional[Command] = None
    current_if_id: Optional[int] = None
    current_branch: Optional[int] = None

    def __post_init__(self):
        self.evaluator = Evaluator(self.symbols, self.diagnostics, self.config.double_epsilon)
        self._command_stack: List[Command] = []

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @property
    def command_name(self) -> Optional[str]:
        if self.current_command is None:
            return None
        return self.current_command.kind.value

    def _attribute(self, diagnostic: Diagnostic) -> Diagnostic:
        if diagnostic.command is None:
            diagnostic.command = self.command_name
        if diagnostic.span is None and self.current_command is not None:
            diagnostic.span = self.current_command.span
        return diagnostic

    def report(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic, filling in the current command and span."""
        self.diagnostics.add(self._attribute(diagnostic))

    def note(self, code: str, message: str) -> None:
        self.report(note(code, message))

    def warn(self, code: str, message: str) -> None:
        self.report(warning(code, message))

    # =========================================================================
    # Scopes
    # =========================================================================

    @contextmanager
    def command_scope(self, command: Command) -> Iterator[Command]:
        """
        Analyze `command` inside its own symbol-table transaction.

        Writes made in the block are rolled back if it raises.
        """
        self._command_stack.append(command)
        self.current_command = command
        try:
            with self.symbols.transaction():
                yield command
        finally:
            self._command_stack.pop()
            self.current_command = self._command_stack[-1] if self._command_stack else None

    @contextmanager
    def if_scope(self, if_id: int) -> Iterator[None]:
        """Mark commands analyzed in the block as nested in conditional `if_id`."""
        saved = (self.current_if_id, self.current_branch)
        self.current_if_id = if_id
        try:
            yield
        finally:
            self.current_if_id, self.current_branch = saved
