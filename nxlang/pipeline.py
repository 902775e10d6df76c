"""Convenience entry points chaining the pipeline stages.

scan → parse → analyze → compile → execute, strictly in order. Each stage
raises its own ``NxError`` subclass on the first problem, so nothing runs
unless every earlier stage succeeded.
"""

from __future__ import annotations

from typing import Any, Optional, TextIO

from .ast import Program
from .bytecode import CompiledProgram
from .compiler import compile_program
from .debug import DebugLog, NULL_LOG
from .interpreter import Interpreter
from .parser import Parser
from .scanner import Scanner
from .semantic import SemanticAnalyzer
from .vm import VM, DEFAULT_MAX_CALL_DEPTH


def check_program(source: str, debug: DebugLog = NULL_LOG) -> Program:
    """Parse and validate ``source``, returning the AST."""
    scanner = Scanner(source)
    program = Parser(scanner).parse_program()
    debug.debug(1, f"parser: {scanner.count} tokens, {len(program.functions)} functions")
    SemanticAnalyzer(debug).analyze(program)
    return program


def compile_source(source: str, debug: DebugLog = NULL_LOG) -> CompiledProgram:
    return compile_program(check_program(source, debug), debug)


def execute_program(program: Program, interpret: bool = False, out: Optional[TextIO] = None,
                    debug: DebugLog = NULL_LOG, max_call_depth: int = DEFAULT_MAX_CALL_DEPTH) -> Any:
    """Run an already validated AST on the VM, or on the reference interpreter."""
    if interpret:
        return Interpreter(out=out, debug=debug).run(program)
    compiled = compile_program(program, debug)
    return VM(compiled, out=out, debug=debug, max_call_depth=max_call_depth).run()


def run_program(source: str, debug_level: int = 0, debug_file: Optional[str] = 'debug.txt',
                interpret: bool = False, out: Optional[TextIO] = None) -> Any:
    """Compile and run a program from a source string, returning main's result."""
    with DebugLog(debug_level, debug_file) as debug:
        program = check_program(source, debug)
        return execute_program(program, interpret=interpret, out=out, debug=debug)


def run_file(file_path: str, debug_level: int = 0, interpret: bool = False) -> Any:
    with open(file_path, 'r', encoding='utf-8') as f:
        source = f.read()
    return run_program(source, debug_level=debug_level, interpret=interpret)
