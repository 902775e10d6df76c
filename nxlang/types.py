"""Runtime values for nx programs.

Values are plain Python objects: ``int`` for Int (kept inside the signed
64-bit range), ``str`` for String and the ``VOID`` marker for Void. The
helpers here are shared by the virtual machine and the reference
interpreter so both engines agree on arithmetic, truthiness and printing.
"""

from __future__ import annotations

from typing import Any

from .errors import RuntimeFault

I64_MIN = -2 ** 63
I64_MAX = 2 ** 63 - 1


class VoidVal:
    """Marker object for the nx Void value."""
    def __repr__(self) -> str:
        return 'Void'

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, VoidVal)

    def __hash__(self) -> int:
        return hash(VoidVal)


VOID = VoidVal()


def type_name(value: Any) -> str:
    if isinstance(value, VoidVal):
        return 'Void'
    if isinstance(value, str):
        return 'String'
    if isinstance(value, int):
        return 'Int'
    return type(value).__name__


def to_string(value: Any) -> str:
    """Render a value the way ``print`` writes it."""
    if isinstance(value, VoidVal):
        return ''
    if isinstance(value, str):
        return value
    return str(value)


def is_truthy(value: Any) -> bool:
    # Only non-zero Ints are true; String and Void never are.
    return isinstance(value, int) and not isinstance(value, bool) and value != 0


def expect_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise RuntimeFault(f'expected int, got {type_name(value)}')


def check_range(result: int) -> int:
    if result < I64_MIN or result > I64_MAX:
        raise RuntimeFault('integer overflow')
    return result


def int_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    if b == 0:
        raise RuntimeFault('division by zero')
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def apply_binary_op(op: str, a: Any, b: Any) -> int:
    a = expect_int(a)
    b = expect_int(b)
    if op == '+':
        return check_range(a + b)
    if op == '-':
        return check_range(a - b)
    if op == '*':
        return check_range(a * b)
    if op == '/':
        return check_range(int_div(a, b))
    if op == '<':
        return 1 if a < b else 0
    if op == '>':
        return 1 if a > b else 0
    if op == '==':
        return 1 if a == b else 0
    raise RuntimeFault(f'unknown operator {op}')
