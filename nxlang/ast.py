"""Abstract Syntax Tree (AST) definitions for the nx language.

The parser builds these nodes, the semantic analyzer validates them without
modification, and both the bytecode compiler and the reference interpreter
consume them. Children are owned exclusively by their parent, so the tree
never shares or cycles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Node:
    """Base class for all AST nodes."""
    pass


class Stmt(Node):
    pass


class Expr(Node):
    pass


BINARY_OPS = ('+', '-', '*', '/', '>', '<', '==')


@dataclass
class Program(Node):
    functions: List['FunctionDecl']


@dataclass
class FunctionDecl(Node):
    name: str
    params: List[str]
    body: 'Block'


@dataclass
class Block(Node):
    statements: List[Stmt]


@dataclass
class Let(Stmt):
    name: str
    value: Expr


@dataclass
class Assign(Stmt):
    name: str
    value: Expr


@dataclass
class ExprStmt(Stmt):
    expr: Expr


@dataclass
class Return(Stmt):
    value: Expr


@dataclass
class If(Stmt):
    condition: Expr
    then_block: Block
    else_block: Optional[Block]


@dataclass
class While(Stmt):
    condition: Expr
    body: Block


@dataclass
class Break(Stmt):
    pass


@dataclass
class Continue(Stmt):
    pass


@dataclass
class Call(Expr):
    name: str
    args: List[Expr]


@dataclass
class Binary(Expr):
    left: Expr
    op: str  # one of BINARY_OPS
    right: Expr


@dataclass
class IntLiteral(Expr):
    value: int


@dataclass
class StringLiteral(Expr):
    value: str


@dataclass
class VarRef(Expr):
    name: str
