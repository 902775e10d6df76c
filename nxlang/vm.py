"""Stack-based virtual machine for compiled nx programs.

The VM runs one flat instruction tuple with an explicit program counter.
Every instruction advances the PC by one except the control-flow ones
(``jump``, a taken ``jump_if_false``, ``call`` and ``return``), which set it
directly. Each call pushes a ``CallFrame`` holding the return PC, the
operand-stack depth to restore and a stack of lexical scopes; block
``scope_enter``/``scope_exit`` instructions grow and shrink that stack.

Any inconsistency raises ``RuntimeFault`` and ends the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

from .bytecode import Op, CompiledProgram, BINARY_INSTRUCTIONS
from .debug import DebugLog, NULL_LOG
from .errors import CompileError, RuntimeFault
from .semantic import ENTRY_FUNCTION
from .types import VOID, apply_binary_op, is_truthy, to_string

DEFAULT_MAX_CALL_DEPTH = 10000


@dataclass
class CallFrame:
    return_pc: int
    base: int
    function: str
    scopes: List[Dict[str, Any]] = field(default_factory=lambda: [{}])


class VM:
    def __init__(self, program: CompiledProgram, out: Optional[TextIO] = None,
                 debug: DebugLog = NULL_LOG, max_call_depth: int = DEFAULT_MAX_CALL_DEPTH):
        try:
            program.verify()
        except CompileError as e:
            raise RuntimeFault(e.message) from None
        main = program.functions.get(ENTRY_FUNCTION)
        if main is None:
            raise RuntimeFault(f"no '{ENTRY_FUNCTION}' function")
        if main.arity != 0:
            raise RuntimeFault(f"'{ENTRY_FUNCTION}' must take no parameters")
        self.code = program.code
        self.functions = program.functions
        self.pc = program.entry
        self.stack: List[Any] = []
        self.frames: List[CallFrame] = []
        self.globals: Dict[str, Any] = {}
        self.out = out
        self.log = debug
        self.max_call_depth = max_call_depth

    @property
    def frame(self) -> Optional[CallFrame]:
        return self.frames[-1] if self.frames else None

    def push(self, value: Any):
        self.stack.append(value)

    def pop(self) -> Any:
        if not self.stack:
            raise RuntimeFault('stack underflow')
        return self.stack.pop()

    def run(self) -> Any:
        """Execute from the entry prologue until ``halt``.

        Returns the value ``main`` returned (``VOID`` unless it returned
        something else).
        """
        try:
            self.execute()
        except RuntimeFault as fault:
            if fault.pc is None:
                fault.pc = self.pc
                fault.function = self.frame.function if self.frame else None
            raise
        return self.stack[-1] if self.stack else VOID

    def execute(self):
        code = self.code
        trace = self.log.enabled(3)
        while True:
            if not 0 <= self.pc < len(code):
                raise RuntimeFault(f'program counter out of range: {self.pc}')
            instr = code[self.pc]
            op = instr.op
            if trace:
                self.log.debug(3, f"{self.pc:04d}  {instr!r:<28} depth={len(self.stack)}")

            if op is Op.PUSH_INT or op is Op.PUSH_STRING:
                self.push(instr.arg)
            elif op is Op.PUSH_VOID:
                self.push(VOID)
            elif op is Op.LOAD_VAR:
                self.push(self.load_var(instr.arg))
            elif op is Op.STORE_VAR:
                self.store_var(instr.arg, self.pop())
            elif op is Op.SCOPE_ENTER:
                if self.frame:
                    self.frame.scopes.append({})
            elif op is Op.SCOPE_EXIT:
                if self.frame:
                    if len(self.frame.scopes) <= 1:
                        raise RuntimeFault('scope stack underflow')
                    self.frame.scopes.pop()
            elif op in BINARY_INSTRUCTIONS:
                b = self.pop()
                a = self.pop()
                self.push(apply_binary_op(BINARY_INSTRUCTIONS[op], a, b))
            elif op is Op.JUMP:
                self.pc = instr.arg
                continue
            elif op is Op.JUMP_IF_FALSE:
                if not is_truthy(self.pop()):
                    self.pc = instr.arg
                    continue
            elif op is Op.CALL:
                name, argc = instr.arg
                self.call(name, argc)
                continue
            elif op is Op.RETURN:
                self.do_return()
                continue
            elif op is Op.PRINT:
                print(to_string(self.pop()), file=self.out)
                self.push(VOID)
            elif op is Op.POP:
                self.pop()
            elif op is Op.HALT:
                return
            else:
                raise RuntimeFault(f'unknown instruction {instr!r}')
            self.pc += 1

    def load_var(self, name: str) -> Any:
        if self.frame:
            for scope in reversed(self.frame.scopes):
                if name in scope:
                    return scope[name]
        if name in self.globals:
            return self.globals[name]
        raise RuntimeFault(f"undefined variable '{name}'")

    def store_var(self, name: str, value: Any):
        frame = self.frame
        if frame is None:
            self.globals[name] = value
            return
        # Rebind an existing binding of this call, else bind in the innermost scope.
        for scope in reversed(frame.scopes):
            if name in scope:
                scope[name] = value
                return
        frame.scopes[-1][name] = value

    def call(self, name: str, argc: int):
        info = self.functions.get(name)
        if info is None:
            raise RuntimeFault(f"undefined function '{name}'")
        if argc != info.arity:
            raise RuntimeFault(f"function '{name}' expects {info.arity} arguments, got {argc}")
        if len(self.frames) >= self.max_call_depth:
            raise RuntimeFault('call stack overflow')
        if len(self.stack) < argc:
            raise RuntimeFault('stack underflow')
        self.frames.append(CallFrame(self.pc + 1, len(self.stack) - argc, name))
        self.log.debug(2, f"call {name}/{argc} from {self.pc:04d} depth={len(self.frames)}")
        self.pc = info.entry

    def do_return(self):
        result = self.stack.pop() if self.stack else VOID
        if not self.frames:
            raise RuntimeFault('return outside function')
        frame = self.frames.pop()
        del self.stack[frame.base:]
        self.push(result)
        self.log.debug(2, f"return {frame.function} -> {result!r} to {frame.return_pc:04d}")
        self.pc = frame.return_pc
