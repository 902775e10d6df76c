import re

import pytest

from nxlang.ast import (
    Program, FunctionDecl, Block, Let, Assign, ExprStmt, Return, If, While,
    Break, Continue, Call, Binary, IntLiteral, StringLiteral, VarRef,
)
from nxlang.errors import LexError, ParseError
from nxlang.parser import parse_program


def body_of(source):
    program = parse_program('fn main() { ' + source + ' }')
    return program.functions[0].body.statements


def expr_of(source):
    (stmt,) = body_of(source + ';')
    assert isinstance(stmt, ExprStmt)
    return stmt.expr


def test_function_with_params():
    program = parse_program('fn add(a, b) { return a + b; } fn main() { }')
    assert program == Program([
        FunctionDecl('add', ['a', 'b'], Block([Return(Binary(VarRef('a'), '+', VarRef('b')))])),
        FunctionDecl('main', [], Block([])),
    ])


def test_multiplicative_binds_tighter():
    assert expr_of('1 + 2 * 3') == Binary(IntLiteral(1), '+', Binary(IntLiteral(2), '*', IntLiteral(3)))


def test_additive_is_left_associative():
    assert expr_of('1 - 2 - 3') == Binary(Binary(IntLiteral(1), '-', IntLiteral(2)), '-', IntLiteral(3))


def test_comparisons_do_not_chain():
    assert expr_of('a < b < c') == Binary(Binary(VarRef('a'), '<', VarRef('b')), '<', VarRef('c'))


def test_comparison_is_lowest():
    assert expr_of('a + 1 == b * 2') == Binary(
        Binary(VarRef('a'), '+', IntLiteral(1)), '==', Binary(VarRef('b'), '*', IntLiteral(2)))


def test_parentheses_override_precedence():
    assert expr_of('(1 + 2) * 3') == Binary(Binary(IntLiteral(1), '+', IntLiteral(2)), '*', IntLiteral(3))


def test_call_arguments_allow_trailing_comma():
    assert expr_of('f(1, "s", g(),)') == Call('f', [IntLiteral(1), StringLiteral('s'), Call('g', [])])


def test_assignment_versus_expression_statement():
    assign, compare = body_of('x = 1; x == 1;')
    assert assign == Assign('x', IntLiteral(1))
    assert compare == ExprStmt(Binary(VarRef('x'), '==', IntLiteral(1)))


def test_statements():
    stmts = body_of('let x = 1; while (x < 3) { break; continue; } if x { } else { x = 2; }')
    assert stmts == [
        Let('x', IntLiteral(1)),
        While(Binary(VarRef('x'), '<', IntLiteral(3)), Block([Break(), Continue()])),
        If(VarRef('x'), Block([]), Block([Assign('x', IntLiteral(2))])),
    ]


def test_if_without_else():
    (stmt,) = body_of('if (1) { print(1); }')
    assert stmt.else_block is None


@pytest.mark.parametrize('source, message', [
    ('let x = 1;', "expected 'fn', got 'let' at 1:1"),
    ('fn main() { let = 1; }', "expected identifier, got '=' at 1:17"),
    ('fn main() { print(; }', "unexpected token ';' in primary position at 1:19"),
    ('fn main() { print(1) }', "expected ';', got '}' at 1:22"),
    ('fn main() {', "expected '}', got end of input"),
    ('fn main() { f(1 2); }', "expected ')', got integer 2"),
    ('fn main() { if (1) { } else if (2) { } }', "expected '{', got 'if'"),
])
def test_parse_errors(source, message):
    with pytest.raises(ParseError, match=re.escape(message)):
        parse_program(source)


def test_first_error_aborts_without_partial_result():
    with pytest.raises(ParseError):
        parse_program('fn ok() { } fn broken( { }')


def test_lex_errors_surface_through_the_parser():
    with pytest.raises(LexError):
        parse_program('fn main() { } #')
