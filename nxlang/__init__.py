# nx language package
# This package provides a bytecode compiler, virtual machine and reference
# interpreter for the nx language.
from .errors import NxError, LexError, ParseError, SemanticError, CompileError, RuntimeFault
from .parser import parse_program
from .pipeline import check_program, compile_source, run_program, run_file
from .vm import VM
from .interpreter import Interpreter

__all__ = [
    'NxError',
    'LexError',
    'ParseError',
    'SemanticError',
    'CompileError',
    'RuntimeFault',
    'parse_program',
    'check_program',
    'compile_source',
    'run_program',
    'run_file',
    'VM',
    'Interpreter',
]
