"""Instruction set and compiled program container for the nx VM."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Tuple

from .errors import CompileError

# Target written into a jump before its destination is known.
UNPATCHED = -1


class Op(str, Enum):
    PUSH_INT = 'push_int'
    PUSH_STRING = 'push_string'
    PUSH_VOID = 'push_void'
    LOAD_VAR = 'load_var'
    STORE_VAR = 'store_var'
    SCOPE_ENTER = 'scope_enter'
    SCOPE_EXIT = 'scope_exit'
    ADD = 'add'
    SUB = 'sub'
    MUL = 'mul'
    DIV = 'div'
    LESS = 'less'
    GREATER = 'greater'
    EQUAL = 'equal'
    JUMP = 'jump'
    JUMP_IF_FALSE = 'jump_if_false'
    CALL = 'call'
    RETURN = 'return'
    PRINT = 'print'
    POP = 'pop'
    HALT = 'halt'


JUMP_OPS = (Op.JUMP, Op.JUMP_IF_FALSE)

# Binary instructions and the operator each one applies.
BINARY_INSTRUCTIONS = {
    Op.ADD: '+',
    Op.SUB: '-',
    Op.MUL: '*',
    Op.DIV: '/',
    Op.LESS: '<',
    Op.GREATER: '>',
    Op.EQUAL: '==',
}
OP_FOR_OPERATOR = {symbol: op for op, symbol in BINARY_INSTRUCTIONS.items()}


class Instruction(NamedTuple):
    op: Op
    arg: Any = None  # int, str, jump target or (name, argc) for CALL

    def __repr__(self) -> str:
        if self.arg is None:
            return self.op.value
        if self.op is Op.CALL:
            name, argc = self.arg
            return f"{self.op.value} {name} {argc}"
        if self.op is Op.PUSH_STRING:
            return f'{self.op.value} "{self.arg}"'
        return f"{self.op.value} {self.arg}"


class FunctionInfo(NamedTuple):
    entry: int
    arity: int


@dataclass
class CompiledProgram:
    code: Tuple[Instruction, ...]
    functions: Dict[str, FunctionInfo] = field(default_factory=dict)
    entry: int = 0

    def verify(self) -> None:
        """Check that every jump lands inside the instruction sequence."""
        size = len(self.code)
        for index, instr in enumerate(self.code):
            if instr.op in JUMP_OPS and not 0 <= instr.arg < size:
                raise CompileError(f"unresolved jump target {instr.arg} at {index:04d}")
        if not 0 <= self.entry < size:
            raise CompileError(f"entry point {self.entry} out of range")


def disassemble(program: CompiledProgram) -> str:
    """Render a listing with function labels, one instruction per line."""
    labels: Dict[int, List[str]] = {}
    for name, info in program.functions.items():
        labels.setdefault(info.entry, []).append(f"{name}/{info.arity}")
    labels.setdefault(program.entry, []).append('<entry>')
    lines: List[str] = []
    for index, instr in enumerate(program.code):
        for label in labels.get(index, ()):
            lines.append(f"{label}:")
        lines.append(f"  {index:04d}  {instr!r}")
    return '\n'.join(lines)
