"""
Semantic analysis driver for paramscript.

Walks a parsed script block by block (ASM, then GUI, then TAB) and command
by command in source order, validating each command against the symbol
table it populates. A failing command is marked invalid and reported; the
pass always continues to the end unless memory runs out.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .ast import ANALYSIS_ORDER, Command, Script
from .config import HostConfig, default_host_config
from .errors import AllocationError, Diagnostic, DiagnosticCollector
from .runtime.context import AnalysisContext
from .symbols import RecordKind, Singleton, SymbolTable
from .validators import run_command
from .values import Value, array_val, int_val, map_val


@dataclass
class AnalysisResult:
    """Result of analyzing a script."""
    diagnostics: List[Diagnostic]
    has_errors: bool
    has_warnings: bool
    symbols: SymbolTable
    invalid_commands: List[Command] = field(default_factory=list)
    aborted: bool = False  # Stopped early on an allocation failure

    @property
    def success(self) -> bool:
        """The pass ran to completion; invalid commands are listed, not fatal."""
        return not self.aborted

    @property
    def has_invalid_commands(self) -> bool:
        return bool(self.invalid_commands)


class Analyzer:
    """
    Semantic analyzer for paramscript syntax trees.

    Validates:
    - declarations, redeclarations and parameter types
    - dialog configuration and pictures
    - dialog parameters, their option maps and required lists
    - geometry selections and selection tables
    - assignments and conditionals (type-checked only)
    """

    def __init__(self, symbols: Optional[SymbolTable] = None,
                 config: Optional[HostConfig] = None):
        self.ctx = AnalysisContext(
            symbols=symbols if symbols is not None else SymbolTable(),
            diagnostics=DiagnosticCollector(),
            config=config if config is not None else default_host_config(),
        )
        self._invalid: List[Command] = []

    @property
    def symbols(self) -> SymbolTable:
        return self.ctx.symbols

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self.ctx.diagnostics

    def analyze(self, script: Script) -> AnalysisResult:
        """Analyze a complete script."""
        aborted = False
        try:
            for kind in ANALYSIS_ORDER:
                for block in script.blocks:
                    if block.kind == kind:
                        self._analyze_block(block.commands)
        except AllocationError:
            aborted = True

        if not aborted:
            build_watcher_index(self.symbols)

        return AnalysisResult(
            diagnostics=self.diagnostics.diagnostics,
            has_errors=self.diagnostics.has_errors,
            has_warnings=self.diagnostics.has_warnings,
            symbols=self.symbols,
            invalid_commands=self._invalid,
            aborted=aborted,
        )

    def analyze_command(self, command: Command) -> bool:
        """Validate a single top-level command; False if it failed."""
        ok = run_command(command, self.ctx)
        if not ok:
            self._invalid.append(command)
        return ok

    def _analyze_block(self, commands: List[Command]) -> None:
        for command in commands:
            try:
                self.analyze_command(command)
            except AllocationError:
                self._invalid.append(command)
                raise


# =============================================================================
# Watcher index
# =============================================================================

def build_watcher_index(symbols: SymbolTable) -> Value:
    """
    Index the conditional assignments by the variable they write.

    Produces {name: [{if_id, branch_index, assign_id}, ...]} from the
    assignment records and stores it as the WATCHER_INDEX singleton.
    """
    index: Dict[str, List[Value]] = {}
    for assign_id, record in sorted(symbols.records(RecordKind.ASSIGNMENTS).items()):
        fields = record.as_map()
        if not all(k in fields for k in ("lhs_name", "if_id", "branch_index")):
            continue
        entry = map_val({
            "if_id": int_val(fields["if_id"].data),
            "branch_index": int_val(fields["branch_index"].data),
            "assign_id": int_val(assign_id),
        })
        index.setdefault(fields["lhs_name"].data, []).append(entry)

    value = map_val({name: array_val(entries) for name, entries in index.items()})
    symbols.set_singleton(Singleton.WATCHER_INDEX, value)
    return value


def analyze(script: Script, symbols: Optional[SymbolTable] = None,
            config: Optional[HostConfig] = None) -> AnalysisResult:
    """
    Convenience function to analyze a script.

    Args:
        script: The parsed script
        symbols: Optional pre-populated symbol table (e.g. holding GIF_DIR)
        config: Optional host data (defaults to the bundled tables)

    Returns:
        AnalysisResult with diagnostics and the populated symbol table
    """
    return Analyzer(symbols=symbols, config=config).analyze(script)
