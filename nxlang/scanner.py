"""Scanner for nx source text.

Tokens are produced on demand: ``Scanner.next()`` pulls one token at a time
from a lark basic lexer, so the whole token stream is never built unless
``tokenize`` is asked for it. The lexer grammar below only declares
terminals; the ``start`` rule exists because lark keeps just the terminals a
rule refers to.

Keywords are literal terminals that also match ``IDENT``. lark resolves that
collision the usual way: the identifier pattern wins the match and the token
is retyped when its text equals a keyword, so ``fn`` is ``FN`` while ``fnord``
stays an identifier. ``==`` beats ``=`` by longest match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from .errors import LexError

I64_MAX = 2 ** 63 - 1

NX_LEXER_GRAMMAR = r"""
    start: token*
    ?token: FN | LET | IF | ELSE | WHILE | RETURN | BREAK | CONTINUE
          | IDENT | INT | STRING
          | LPAR | RPAR | LBRACE | RBRACE | COMMA | SEMICOLON
          | EQEQ | EQUAL | GREATER | LESS | PLUS | MINUS | STAR | SLASH

    FN: "fn"
    LET: "let"
    IF: "if"
    ELSE: "else"
    WHILE: "while"
    RETURN: "return"
    BREAK: "break"
    CONTINUE: "continue"

    IDENT: /[^\W\d]\w*/
    INT: /[0-9]+/
    STRING: /"[^"]*"/

    LPAR: "("
    RPAR: ")"
    LBRACE: "{"
    RBRACE: "}"
    COMMA: ","
    SEMICOLON: ";"
    EQEQ: "=="
    EQUAL: "="
    GREATER: ">"
    LESS: "<"
    PLUS: "+"
    MINUS: "-"
    STAR: "*"
    SLASH: "/"

    WS: /\s+/
    %ignore WS
"""

NX_LEXER = Lark(NX_LEXER_GRAMMAR, parser='lalr', lexer='basic')

KEYWORDS = {
    'fn': 'FN',
    'let': 'LET',
    'if': 'IF',
    'else': 'ELSE',
    'while': 'WHILE',
    'return': 'RETURN',
    'break': 'BREAK',
    'continue': 'CONTINUE',
}

# Display text used in parser diagnostics.
TOKEN_TEXT = {
    'LPAR': '(', 'RPAR': ')', 'LBRACE': '{', 'RBRACE': '}',
    'COMMA': ',', 'SEMICOLON': ';', 'EQUAL': '=', 'EQEQ': '==',
    'GREATER': '>', 'LESS': '<', 'PLUS': '+', 'MINUS': '-',
    'STAR': '*', 'SLASH': '/',
}
TOKEN_TEXT.update({kind: word for word, kind in KEYWORDS.items()})


@dataclass(frozen=True)
class Token:
    type: str
    value: Any
    line: int
    column: int

    def describe(self) -> str:
        if self.type == 'EOF':
            return 'end of input'
        if self.type == 'IDENT':
            return f"identifier '{self.value}'"
        if self.type == 'INT':
            return f"integer {self.value}"
        if self.type == 'STRING':
            return f'string "{self.value}"'
        return f"'{TOKEN_TEXT[self.type]}'"


def describe_type(kind: str) -> str:
    """Human-readable name of a token type, for 'expected X' messages."""
    if kind == 'IDENT':
        return 'identifier'
    if kind == 'EOF':
        return 'end of input'
    if kind in ('INT', 'STRING'):
        return kind.lower()
    return f"'{TOKEN_TEXT[kind]}'"


class Scanner:
    """Pull-based tokenizer: every ``next()`` call returns one more token."""

    def __init__(self, source: str):
        self.source = source
        self._stream: Iterator = NX_LEXER.lex(source)
        self._eof: Optional[Token] = None
        self.count = 0

    def next(self) -> Token:
        if self._eof is not None:
            return self._eof
        try:
            raw = next(self._stream)
        except StopIteration:
            self._eof = Token('EOF', None, *self._end_position())
            return self._eof
        except UnexpectedCharacters as e:
            raise self._lex_error(e) from None
        self.count += 1
        return self._convert(raw)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next()
            yield token
            if token.type == 'EOF':
                return

    def _convert(self, raw) -> Token:
        kind = raw.type
        text = str(raw)
        if kind == 'INT':
            value = int(text)
            if value > I64_MAX:
                raise LexError(f"integer literal out of range: {text} at {raw.line}:{raw.column}")
            return Token('INT', value, raw.line, raw.column)
        if kind == 'STRING':
            return Token('STRING', text[1:-1], raw.line, raw.column)
        if kind == 'IDENT':
            return Token('IDENT', text, raw.line, raw.column)
        return Token(kind, text, raw.line, raw.column)

    def _lex_error(self, e: UnexpectedCharacters) -> LexError:
        char = self.source[e.pos_in_stream]
        if char == '"':
            return LexError(f"unterminated string literal at {e.line}:{e.column}")
        return LexError(f"unexpected character {char!r} at {e.line}:{e.column}")

    def _end_position(self):
        line = self.source.count('\n') + 1
        column = len(self.source) - (self.source.rfind('\n') + 1) + 1
        return line, column


def tokenize(source: str) -> List[Token]:
    """Scan the whole source, returning every token including the final EOF."""
    return list(Scanner(source))
