"""Recursive-descent parser for the nx language.

The parser pulls tokens from a ``Scanner`` as it needs them, keeping a small
lookahead buffer (an assignment is told apart from an expression statement
by the token after the identifier). Expressions use one method per
precedence level:

    comparison  ('>' | '<' | '==')   lowest, left-associative
    additive    ('+' | '-')
    multiplicative ('*' | '/')
    primary     literal, '(' expr ')', variable, call

The first structural mismatch raises ``ParseError``; there is no recovery.
"""

from __future__ import annotations

from typing import List, Optional, Union

from .ast import (
    Program, FunctionDecl, Block, Stmt, Expr,
    Let, Assign, ExprStmt, Return, If, While, Break, Continue,
    Call, Binary, IntLiteral, StringLiteral, VarRef,
)
from .errors import ParseError
from .scanner import Scanner, Token, describe_type

COMPARISON_OPS = {'GREATER': '>', 'LESS': '<', 'EQEQ': '=='}
ADDITIVE_OPS = {'PLUS': '+', 'MINUS': '-'}
MULTIPLICATIVE_OPS = {'STAR': '*', 'SLASH': '/'}


class Parser:
    def __init__(self, scanner: Scanner):
        self.scanner = scanner
        self.buffer: List[Token] = []

    def peek(self, offset: int = 0) -> Token:
        while len(self.buffer) <= offset:
            self.buffer.append(self.scanner.next())
        return self.buffer[offset]

    def advance(self) -> Token:
        token = self.peek()
        self.buffer.pop(0)
        return token

    def match(self, expected: Union[str, List[str]], offset: int = 0) -> bool:
        token = self.peek(offset)
        if isinstance(expected, list):
            return token.type in expected
        return token.type == expected

    def consume(self, expected: str) -> Token:
        token = self.peek()
        if token.type != expected:
            raise ParseError(
                f"expected {describe_type(expected)}, got {token.describe()} "
                f"at {token.line}:{token.column}"
            )
        return self.advance()

    def parse_program(self) -> Program:
        functions: List[FunctionDecl] = []
        while not self.match('EOF'):
            functions.append(self.parse_function())
        return Program(functions)

    def parse_function(self) -> FunctionDecl:
        self.consume('FN')
        name = self.consume('IDENT').value
        self.consume('LPAR')
        params: List[str] = []
        if not self.match('RPAR'):
            params.append(self.consume('IDENT').value)
            while self.match('COMMA'):
                self.consume('COMMA')
                params.append(self.consume('IDENT').value)
        self.consume('RPAR')
        body = self.parse_block()
        return FunctionDecl(name, params, body)

    def parse_block(self) -> Block:
        self.consume('LBRACE')
        statements: List[Stmt] = []
        while not self.match('RBRACE'):
            if self.match('EOF'):
                # reports "expected '}', got end of input"
                self.consume('RBRACE')
            statements.append(self.parse_statement())
        self.consume('RBRACE')
        return Block(statements)

    def parse_statement(self) -> Stmt:
        token = self.peek()
        if token.type == 'LET':
            return self.parse_let()
        if token.type == 'IF':
            return self.parse_if()
        if token.type == 'WHILE':
            return self.parse_while()
        if token.type == 'RETURN':
            self.consume('RETURN')
            value = self.parse_expression()
            self.consume('SEMICOLON')
            return Return(value)
        if token.type == 'BREAK':
            self.consume('BREAK')
            self.consume('SEMICOLON')
            return Break()
        if token.type == 'CONTINUE':
            self.consume('CONTINUE')
            self.consume('SEMICOLON')
            return Continue()
        if token.type == 'IDENT' and self.match('EQUAL', offset=1):
            name = self.consume('IDENT').value
            self.consume('EQUAL')
            value = self.parse_expression()
            self.consume('SEMICOLON')
            return Assign(name, value)
        expr = self.parse_expression()
        self.consume('SEMICOLON')
        return ExprStmt(expr)

    def parse_let(self) -> Let:
        self.consume('LET')
        name = self.consume('IDENT').value
        self.consume('EQUAL')
        value = self.parse_expression()
        self.consume('SEMICOLON')
        return Let(name, value)

    def parse_if(self) -> If:
        self.consume('IF')
        condition = self.parse_expression()
        then_block = self.parse_block()
        else_block: Optional[Block] = None
        if self.match('ELSE'):
            self.consume('ELSE')
            else_block = self.parse_block()
        return If(condition, then_block, else_block)

    def parse_while(self) -> While:
        self.consume('WHILE')
        condition = self.parse_expression()
        body = self.parse_block()
        return While(condition, body)

    # Expressions, lowest precedence first

    def parse_expression(self) -> Expr:
        return self.parse_comparison()

    def parse_comparison(self) -> Expr:
        node = self.parse_additive()
        while self.match(list(COMPARISON_OPS)):
            op = COMPARISON_OPS[self.advance().type]
            right = self.parse_additive()
            node = Binary(node, op, right)
        return node

    def parse_additive(self) -> Expr:
        node = self.parse_multiplicative()
        while self.match(list(ADDITIVE_OPS)):
            op = ADDITIVE_OPS[self.advance().type]
            right = self.parse_multiplicative()
            node = Binary(node, op, right)
        return node

    def parse_multiplicative(self) -> Expr:
        node = self.parse_primary()
        while self.match(list(MULTIPLICATIVE_OPS)):
            op = MULTIPLICATIVE_OPS[self.advance().type]
            right = self.parse_primary()
            node = Binary(node, op, right)
        return node

    def parse_primary(self) -> Expr:
        token = self.peek()
        if token.type == 'INT':
            self.advance()
            return IntLiteral(token.value)
        if token.type == 'STRING':
            self.advance()
            return StringLiteral(token.value)
        if token.type == 'LPAR':
            self.consume('LPAR')
            expr = self.parse_expression()
            self.consume('RPAR')
            return expr
        if token.type == 'IDENT':
            self.advance()
            if self.match('LPAR'):
                return Call(token.value, self.parse_arguments())
            return VarRef(token.value)
        raise ParseError(
            f"unexpected token {token.describe()} in primary position "
            f"at {token.line}:{token.column}"
        )

    def parse_arguments(self) -> List[Expr]:
        self.consume('LPAR')
        args: List[Expr] = []
        while not self.match('RPAR'):
            args.append(self.parse_expression())
            if not self.match('COMMA'):
                break
            self.consume('COMMA')
        self.consume('RPAR')
        return args


def parse_program(source: str) -> Program:
    """Parse nx source code into a Program AST."""
    return Parser(Scanner(source)).parse_program()
