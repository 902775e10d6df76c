"""CLI entry point for the nx toolchain.

Usage:
    python -m nxlang [-v|-vv|-vvv] [--interpret] [--disassemble] <program_file>
    python -m nxlang [-v...] --emit-ast <program_file>
    python -m nxlang [-v...] --ast <ast_json_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --interpret   Run on the tree-walking reference interpreter instead of the VM
  --disassemble Print the compiled bytecode instead of running it
  --emit-ast    Parse and check the given .nx file and emit an AST JSON file
  --ast         Execute a previously emitted AST JSON file

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. Errors are reported on stderr and make the
process exit with status 1; nothing is executed after a failed stage.
"""

import argparse
import json
import sys
from pathlib import Path

from .ast_json import ast_to_obj, program_from_obj
from .bytecode import disassemble
from .compiler import BytecodeCompiler
from .debug import DebugLog
from .errors import NxError
from .pipeline import check_program, execute_program
from .semantic import SemanticAnalyzer


def read_source(path: Path) -> str:
    if not path.is_file():
        print(f"Error: file {path} not found", file=sys.stderr)
        sys.exit(1)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog='nx', description="nx language compiler and virtual machine")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--interpret', action='store_true', help='run on the reference AST interpreter')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='NX_FILE', help='emit AST JSON for the given .nx file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='execute AST from a JSON file')
    group.add_argument('--disassemble', action='store_true', help='print bytecode instead of running')
    parser.add_argument('program', nargs='?', help='nx program file (.nx) to execute')
    args = parser.parse_args(argv)

    if not (args.emit_ast or args.ast or args.program):
        parser.error('missing program file; or use --emit-ast/--ast')

    with DebugLog(args.v) as debug:
        try:
            # Emit AST mode
            if args.emit_ast:
                program_file = Path(args.emit_ast)
                ast_program = check_program(read_source(program_file), debug)
                out_path = program_file.with_name(program_file.name + '.ast.json')
                with open(out_path, 'w', encoding='utf-8') as out:
                    json.dump(ast_to_obj(ast_program), out, ensure_ascii=False, indent=2)
                print(str(out_path))
                return

            # Execute from AST JSON
            if args.ast:
                ast_path = Path(args.ast)
                try:
                    data = json.loads(read_source(ast_path))
                    ast_program = program_from_obj(data)
                except (ValueError, TypeError, KeyError) as e:
                    print(f"Error: invalid AST file {ast_path}: {e}", file=sys.stderr)
                    sys.exit(1)
                SemanticAnalyzer(debug).analyze(ast_program)
                execute_program(ast_program, interpret=args.interpret, debug=debug)
                return

            ast_program = check_program(read_source(Path(args.program)), debug)
            if args.disassemble:
                print(disassemble(BytecodeCompiler(debug).compile_program(ast_program)))
                return
            execute_program(ast_program, interpret=args.interpret, debug=debug)
        except NxError as e:
            sys.stdout.flush()
            print(f"{e.kind} error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
