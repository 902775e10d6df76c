"""Static checks run between parsing and compilation.

The analyzer never changes the tree. Pass one builds the function table,
pass two walks every function body with a stack of name sets that mirrors
the block scopes the VM creates at runtime. The first violation raises
``SemanticError``.
"""

from __future__ import annotations

from typing import Dict, List, Set

from .ast import (
    Program, FunctionDecl, Block, Stmt, Expr,
    Let, Assign, ExprStmt, Return, If, While, Break, Continue,
    Call, Binary, IntLiteral, StringLiteral, VarRef,
)
from .debug import DebugLog, NULL_LOG
from .errors import SemanticError

PRINT_BUILTIN = 'print'
ENTRY_FUNCTION = 'main'


class SemanticAnalyzer:
    def __init__(self, debug: DebugLog = NULL_LOG):
        self.functions: Dict[str, int] = {}
        self.scopes: List[Set[str]] = []
        self.in_loop = False
        self.current_function = ''
        self.log = debug

    def analyze(self, program: Program) -> None:
        self.collect_functions(program)
        for func in program.functions:
            self.check_function(func)
        self.log.debug(1, f"semantic: {len(self.functions)} functions ok")

    def collect_functions(self, program: Program) -> None:
        for func in program.functions:
            if func.name == PRINT_BUILTIN:
                raise SemanticError(f"cannot redefine builtin '{PRINT_BUILTIN}'")
            if func.name in self.functions:
                raise SemanticError(f"duplicate function '{func.name}'")
            self.functions[func.name] = len(func.params)
        if ENTRY_FUNCTION not in self.functions:
            raise SemanticError(f"missing function '{ENTRY_FUNCTION}'")
        if self.functions[ENTRY_FUNCTION] != 0:
            raise SemanticError(f"function '{ENTRY_FUNCTION}' must take no parameters")

    def check_function(self, func: FunctionDecl) -> None:
        self.current_function = func.name
        self.in_loop = False
        self.scopes = [set(func.params)]
        self.check_block(func.body)
        self.scopes.pop()

    def check_block(self, block: Block) -> None:
        self.scopes.append(set())
        try:
            for stmt in block.statements:
                self.check_stmt(stmt)
        finally:
            self.scopes.pop()

    def check_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Let):
            self.check_expr(stmt.value)
            self.scopes[-1].add(stmt.name)
        elif isinstance(stmt, Assign):
            if not self.is_visible(stmt.name):
                self.error(f"assignment to undefined variable '{stmt.name}'")
            self.check_expr(stmt.value)
        elif isinstance(stmt, ExprStmt):
            self.check_expr(stmt.expr)
        elif isinstance(stmt, Return):
            self.check_expr(stmt.value)
        elif isinstance(stmt, If):
            self.check_expr(stmt.condition)
            self.check_block(stmt.then_block)
            if stmt.else_block is not None:
                self.check_block(stmt.else_block)
        elif isinstance(stmt, While):
            self.check_expr(stmt.condition)
            saved = self.in_loop
            self.in_loop = True
            try:
                self.check_block(stmt.body)
            finally:
                self.in_loop = saved
        elif isinstance(stmt, Break):
            if not self.in_loop:
                self.error('break used outside loop')
        elif isinstance(stmt, Continue):
            if not self.in_loop:
                self.error('continue used outside loop')
        else:
            raise SemanticError(f"unexpected statement {type(stmt).__name__}")

    def check_expr(self, expr: Expr) -> None:
        if isinstance(expr, (IntLiteral, StringLiteral)):
            return
        if isinstance(expr, VarRef):
            if not self.is_visible(expr.name):
                self.error(f"undefined variable '{expr.name}'")
            return
        if isinstance(expr, Binary):
            self.check_expr(expr.left)
            self.check_expr(expr.right)
            return
        if isinstance(expr, Call):
            if expr.name == PRINT_BUILTIN:
                if len(expr.args) != 1:
                    self.error(f"'{PRINT_BUILTIN}' expects 1 argument, got {len(expr.args)}")
            elif expr.name not in self.functions:
                self.error(f"undefined function '{expr.name}'")
            elif len(expr.args) != self.functions[expr.name]:
                self.error(
                    f"function '{expr.name}' expects {self.functions[expr.name]} "
                    f"arguments, got {len(expr.args)}"
                )
            for arg in expr.args:
                self.check_expr(arg)
            return
        raise SemanticError(f"unexpected expression {type(expr).__name__}")

    def is_visible(self, name: str) -> bool:
        return any(name in scope for scope in reversed(self.scopes))

    def error(self, msg: str):
        raise SemanticError(f"{msg} in function '{self.current_function}'")


def analyze(program: Program, debug: DebugLog = NULL_LOG) -> Program:
    """Validate ``program`` and return it unchanged."""
    SemanticAnalyzer(debug).analyze(program)
    return program
