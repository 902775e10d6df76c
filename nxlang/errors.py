from typing import Any, Optional


class NxError(Exception):
    """Base class for every error the nx toolchain reports to the user."""
    kind = 'Nx'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LexError(NxError):
    kind = 'Lex'


class ParseError(NxError):
    kind = 'Parse'


class SemanticError(NxError):
    kind = 'Semantic'


class CompileError(NxError):
    """Internal compiler invariant violation; analysis should have caught it."""
    kind = 'Compile'


class RuntimeFault(NxError):
    """Fatal fault raised while executing a program."""
    kind = 'Runtime'

    def __init__(self, message: str, pc: Optional[int] = None, function: Optional[str] = None):
        super().__init__(message)
        self.pc = pc
        self.function = function

    def __str__(self) -> str:
        if self.pc is None:
            return self.message
        where = f"pc={self.pc:04d}"
        if self.function:
            where += f" in '{self.function}'"
        return f"{self.message} ({where})"


class ReturnSignal(Exception):
    """Internal exception to handle return statements in functions."""
    def __init__(self, value: Any):
        super().__init__('return')
        self.value = value


class BreakSignal(Exception):
    pass


class ContinueSignal(Exception):
    pass
