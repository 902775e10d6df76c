"""Bytecode compiler - lowers a validated AST into one flat instruction list.

Functions are compiled in program order and concatenated; each function's
first index is its entry. Forward jumps are emitted with the ``UNPATCHED``
target and overwritten once the destination is known. A stack of loop
contexts collects the ``break`` jumps of each ``while`` until its end is
known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .ast import (
    Program, FunctionDecl, Block, Stmt, Expr,
    Let, Assign, ExprStmt, Return, If, While, Break, Continue,
    Call, Binary, IntLiteral, StringLiteral, VarRef,
)
from .bytecode import (
    Op, Instruction, FunctionInfo, CompiledProgram, UNPATCHED, JUMP_OPS, OP_FOR_OPERATOR,
)
from .debug import DebugLog, NULL_LOG
from .errors import CompileError
from .semantic import PRINT_BUILTIN, ENTRY_FUNCTION


@dataclass
class LoopContext:
    """Context for loops (for break/continue)."""
    start: int
    scope_depth: int
    break_jumps: List[int] = field(default_factory=list)


class BytecodeCompiler:
    def __init__(self, debug: DebugLog = NULL_LOG):
        self.code: List[Instruction] = []
        self.functions: Dict[str, FunctionInfo] = {}
        self.loop_stack: List[LoopContext] = []
        self.scope_depth = 0
        self.log = debug

    def compile_program(self, program: Program) -> CompiledProgram:
        for func in program.functions:
            self.compile_function(func)
        entry = self.emit(Op.CALL, (ENTRY_FUNCTION, 0))
        self.emit(Op.HALT)
        self.check_patched()
        compiled = CompiledProgram(tuple(self.code), dict(self.functions), entry)
        compiled.verify()
        self.log.debug(1, f"compiler: {len(compiled.code)} instructions, entry {entry:04d}")
        return compiled

    def compile_function(self, func: FunctionDecl) -> None:
        entry = len(self.code)
        self.functions[func.name] = FunctionInfo(entry, len(func.params))
        self.log.debug(1, f"compiler: function {func.name}/{len(func.params)} at {entry:04d}")
        # Arguments arrive pushed left to right, so the last one is on top.
        for param in reversed(func.params):
            self.emit(Op.STORE_VAR, param)
        self.compile_block(func.body)
        self.emit(Op.PUSH_VOID)
        self.emit(Op.RETURN)

    def compile_block(self, block: Block) -> None:
        self.emit(Op.SCOPE_ENTER)
        self.scope_depth += 1
        for stmt in block.statements:
            self.compile_stmt(stmt)
        self.scope_depth -= 1
        self.emit(Op.SCOPE_EXIT)

    def compile_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, (Let, Assign)):
            self.compile_expr(stmt.value)
            self.emit(Op.STORE_VAR, stmt.name)
        elif isinstance(stmt, ExprStmt):
            self.compile_expr(stmt.expr)
            self.emit(Op.POP)
        elif isinstance(stmt, Return):
            self.compile_expr(stmt.value)
            self.emit(Op.RETURN)
        elif isinstance(stmt, If):
            self.compile_if(stmt)
        elif isinstance(stmt, While):
            self.compile_while(stmt)
        elif isinstance(stmt, Break):
            loop = self.current_loop('break')
            self.exit_scopes_to(loop)
            loop.break_jumps.append(self.emit(Op.JUMP, UNPATCHED))
        elif isinstance(stmt, Continue):
            loop = self.current_loop('continue')
            self.exit_scopes_to(loop)
            self.emit(Op.JUMP, loop.start)
        else:
            raise CompileError(f"unexpected statement {type(stmt).__name__}")

    def compile_if(self, stmt: If) -> None:
        self.compile_expr(stmt.condition)
        jump_false = self.emit(Op.JUMP_IF_FALSE, UNPATCHED)
        self.compile_block(stmt.then_block)
        jump_end = self.emit(Op.JUMP, UNPATCHED)
        else_start = len(self.code)
        if stmt.else_block is not None:
            self.compile_block(stmt.else_block)
        end = len(self.code)
        self.patch(jump_false, else_start)
        self.patch(jump_end, end)

    def compile_while(self, stmt: While) -> None:
        loop_start = len(self.code)
        self.compile_expr(stmt.condition)
        jump_false = self.emit(Op.JUMP_IF_FALSE, UNPATCHED)
        loop = LoopContext(loop_start, self.scope_depth)
        self.loop_stack.append(loop)
        self.compile_block(stmt.body)
        self.emit(Op.JUMP, loop_start)
        loop_end = len(self.code)
        self.patch(jump_false, loop_end)
        self.loop_stack.pop()
        for pos in loop.break_jumps:
            self.patch(pos, loop_end)

    def current_loop(self, keyword: str) -> LoopContext:
        if not self.loop_stack:
            raise CompileError(f"'{keyword}' outside of loop")
        return self.loop_stack[-1]

    def exit_scopes_to(self, loop: LoopContext) -> None:
        # Leaving blocks by a jump skips their scope_exit, so emit them here.
        for _ in range(self.scope_depth - loop.scope_depth):
            self.emit(Op.SCOPE_EXIT)

    def compile_expr(self, expr: Expr) -> None:
        if isinstance(expr, IntLiteral):
            self.emit(Op.PUSH_INT, expr.value)
        elif isinstance(expr, StringLiteral):
            self.emit(Op.PUSH_STRING, expr.value)
        elif isinstance(expr, VarRef):
            self.emit(Op.LOAD_VAR, expr.name)
        elif isinstance(expr, Binary):
            self.compile_expr(expr.left)
            self.compile_expr(expr.right)
            if expr.op not in OP_FOR_OPERATOR:
                raise CompileError(f"unknown operator {expr.op}")
            self.emit(OP_FOR_OPERATOR[expr.op])
        elif isinstance(expr, Call):
            for arg in expr.args:
                self.compile_expr(arg)
            if expr.name == PRINT_BUILTIN:
                self.emit(Op.PRINT)
            else:
                self.emit(Op.CALL, (expr.name, len(expr.args)))
        else:
            raise CompileError(f"unexpected expression {type(expr).__name__}")

    def emit(self, op: Op, arg=None) -> int:
        """Append an instruction and return its index (useful for jumps)."""
        self.code.append(Instruction(op, arg))
        return len(self.code) - 1

    def patch(self, index: int, target: int) -> None:
        instr = self.code[index]
        if instr.op not in JUMP_OPS or instr.arg != UNPATCHED:
            raise CompileError(f"instruction {index:04d} is not a pending jump")
        self.code[index] = Instruction(instr.op, target)
        self.log.debug(2, f"compiler: patch {index:04d} {instr.op.value} -> {target:04d}")

    def check_patched(self) -> None:
        for index, instr in enumerate(self.code):
            if instr.op in JUMP_OPS and instr.arg == UNPATCHED:
                raise CompileError(f"unpatched jump at {index:04d}")


def compile_program(program: Program, debug: DebugLog = NULL_LOG) -> CompiledProgram:
    return BytecodeCompiler(debug).compile_program(program)
