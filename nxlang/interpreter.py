"""Tree-walking reference interpreter for nx.

Executes a validated ``Program`` straight from the AST. It shares the value
helpers in ``nxlang.types`` with the virtual machine and follows the same
binding rules (a block gets a child ``Environment``, a call gets a fresh
environment with no parent, ``let`` and assignment both rebind an existing
name before creating a new one), so a program prints the same lines under
either engine. The test suite uses it as an oracle for the VM.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TextIO

from .ast import (
    Program, FunctionDecl, Block, Stmt, Expr,
    Let, Assign, ExprStmt, Return, If, While, Break, Continue,
    Call, Binary, IntLiteral, StringLiteral, VarRef,
)
from .debug import DebugLog, NULL_LOG
from .environment import Environment
from .errors import RuntimeFault, ReturnSignal, BreakSignal, ContinueSignal
from .semantic import PRINT_BUILTIN, ENTRY_FUNCTION
from .types import VOID, apply_binary_op, is_truthy, to_string


class Interpreter:
    """Core interpreter that executes nx ASTs."""
    def __init__(self, out: Optional[TextIO] = None, debug: DebugLog = NULL_LOG):
        self.functions: Dict[str, FunctionDecl] = {}
        self.out = out
        self.log = debug
        self.call_depth = 0

    # Public API
    def run(self, program: Program) -> Any:
        self.functions = {func.name: func for func in program.functions}
        if ENTRY_FUNCTION not in self.functions:
            raise RuntimeFault(f"no '{ENTRY_FUNCTION}' function")
        try:
            return self.call_function(ENTRY_FUNCTION, [])
        except RecursionError:
            raise RuntimeFault('call stack overflow') from None

    def call_function(self, name: str, args: List[Any]) -> Any:
        func = self.functions.get(name)
        if func is None:
            raise RuntimeFault(f"undefined function '{name}'")
        if len(args) != len(func.params):
            raise RuntimeFault(f"function '{name}' expects {len(func.params)} arguments, got {len(args)}")
        call_env = Environment()
        for param, arg in zip(func.params, args):
            call_env.declare(param, arg)
        self.call_depth += 1
        self.log.debug(2, f"call {name}/{len(args)} depth={self.call_depth}")
        try:
            self.execute_block(func.body, call_env)
            result = VOID
        except ReturnSignal as r:
            result = r.value
        finally:
            self.call_depth -= 1
        self.log.debug(2, f"return {name} -> {result!r}")
        return result

    def execute_block(self, block: Block, env: Environment):
        block_env = Environment(parent=env)
        for stmt in block.statements:
            self.execute(stmt, block_env)

    def execute(self, node: Stmt, env: Environment):
        if isinstance(node, (Let, Assign)):
            value = self.evaluate(node.value, env)
            env.set(node.name, value)
            if self.log.enabled(2):
                self.log.debug(2, f"bind {node.name} = {value!r}")
            return
        if isinstance(node, ExprStmt):
            self.evaluate(node.expr, env)
            return
        if isinstance(node, Return):
            raise ReturnSignal(self.evaluate(node.value, env))
        if isinstance(node, If):
            cond = self.evaluate(node.condition, env)
            if is_truthy(cond):
                self.execute_block(node.then_block, env)
            elif node.else_block is not None:
                self.execute_block(node.else_block, env)
            return
        if isinstance(node, While):
            while is_truthy(self.evaluate(node.condition, env)):
                try:
                    self.execute_block(node.body, env)
                except BreakSignal:
                    break
                except ContinueSignal:
                    continue
            return
        if isinstance(node, Break):
            raise BreakSignal()
        if isinstance(node, Continue):
            raise ContinueSignal()
        raise NotImplementedError(f"execute: unexpected node type {type(node)}")

    def evaluate(self, node: Expr, env: Environment) -> Any:
        if isinstance(node, (IntLiteral, StringLiteral)):
            return node.value
        if isinstance(node, VarRef):
            return env.get(node.name)
        if isinstance(node, Binary):
            left = self.evaluate(node.left, env)
            right = self.evaluate(node.right, env)
            return apply_binary_op(node.op, left, right)
        if isinstance(node, Call):
            args = [self.evaluate(arg, env) for arg in node.args]
            if node.name == PRINT_BUILTIN:
                print(to_string(args[0]), file=self.out)
                return VOID
            return self.call_function(node.name, args)
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")
