#!/usr/bin/env python3
"""
CLI for paramscript semantic analysis.

Scripts are read as serialized syntax trees (YAML, see paramscript.loader).

Usage:
    python -m paramscript check FILE.yaml [--json] [--symbols] [--gif-dir DIR]
    python -m paramscript list FILE.yaml
    python -m paramscript builtins

Examples:
    # Analyze a script and print diagnostics
    python -m paramscript check dialog.yaml

    # Machine-readable diagnostics for editor integration
    python -m paramscript check dialog.yaml --json

    # Also dump the populated symbol table
    python -m paramscript check dialog.yaml --symbols --gif-dir /srv/pictures/
"""

import argparse
import json
import sys
from pathlib import Path


def _load(path_str: str):
    from .loader import load_script_file

    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return load_script_file(source_path)


def cmd_check(args):
    """Analyze a serialized script and report diagnostics."""
    from .analyzer import analyze
    from .config import default_host_config, load_host_config
    from .loader import LoadError
    from .symbols import SymbolTable
    from .values import string_val

    try:
        script = _load(args.file)
        if script is None:
            return 1
        config = load_host_config(Path(args.host_data)) if args.host_data else default_host_config()

        symbols = SymbolTable()
        if args.gif_dir:
            symbols.declare(config.base_directory_symbol, string_val(args.gif_dir))
        result = analyze(script, symbols=symbols, config=config)
    except (LoadError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    exit_code = 1 if result.has_invalid_commands or not result.success else 0

    if args.json:
        payload = {
            "success": result.success,
            "invalid_commands": len(result.invalid_commands),
            "diagnostics": [d.to_json() for d in result.diagnostics],
        }
        if args.symbols:
            payload["symbols"] = {k: v.to_python() for k, v in sorted(result.symbols.flatten().items())}
        print(json.dumps(payload, indent=2, default=str))
        return exit_code

    for diag in result.diagnostics:
        if args.verbose or diag.severity.value != "info":
            print(diag.format())

    total = sum(len(b.commands) for b in script.blocks)
    if not result.success:
        print(f"Analysis aborted: {len(result.invalid_commands)} of {total} command(s) invalid")
    elif result.has_invalid_commands:
        print(f"Analysis failed: {len(result.invalid_commands)} of {total} command(s) invalid")
    else:
        print(f"OK: {Path(args.file).name} - {total} command(s), no errors")
    warnings = sum(1 for d in result.diagnostics if d.severity.value == "warning")
    if warnings:
        print(f"  {warnings} warning(s)")

    if args.symbols:
        print("\nSymbols:")
        for key, value in sorted(result.symbols.flatten().items()):
            print(f"  {key}: {value.type} = {value.to_python()!r}")

    return exit_code


def _command_label(command) -> str:
    from .ast import BeginTable, SelectCommand

    if isinstance(command, SelectCommand):
        return command.target
    if isinstance(command, BeginTable):
        return command.identifier
    name = getattr(command, "name", None)
    return name if isinstance(name, str) else ""


def cmd_list(args):
    """List the commands of a serialized script, block by block."""
    from .ast import ANALYSIS_ORDER
    from .loader import LoadError

    try:
        script = _load(args.file)
    except (LoadError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if script is None:
        return 1

    for kind in ANALYSIS_ORDER:
        for block in script.blocks:
            if block.kind != kind:
                continue
            print(f"{kind.value}: {len(block.commands)} command(s)")
            for command in block.commands:
                target = _command_label(command)
                line = f"  line {command.span.start.line}" if command.span else ""
                print(f"  {command.kind.value:<32} {target}{line}")
    return 0


def cmd_builtins(args):
    """List the built-in functions and their signatures."""
    from .symbols import SymbolTable

    for name, sig in sorted(SymbolTable().get_all_builtins().items()):
        params = ", ".join(f"{p}: {t}" for p, t in sig.params)
        print(f"{name}({params}) -> {sig.return_type}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog='paramscript',
        description='paramscript semantic analyzer',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Analyze a serialized script')
    check_parser.add_argument('file', help='YAML syntax tree')
    check_parser.add_argument('--json', action='store_true', help='Emit diagnostics as JSON')
    check_parser.add_argument('--symbols', action='store_true',
                              help='Print the populated symbol table')
    check_parser.add_argument('--gif-dir', metavar='DIR',
                              help='Base directory prepended to relative picture names')
    check_parser.add_argument('--host-data', metavar='FILE',
                              help='Host data YAML (overrides PARAMSCRIPT_HOST_DATA)')
    check_parser.add_argument('-v', '--verbose', action='store_true', help='Include notes')

    # list command
    list_parser = subparsers.add_parser('list', help='List commands in a serialized script')
    list_parser.add_argument('file', help='YAML syntax tree')

    # builtins command
    subparsers.add_parser('builtins', help='List built-in functions')

    args = parser.parse_args()

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'list':
        return cmd_list(args)
    elif args.action == 'builtins':
        return cmd_builtins(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
