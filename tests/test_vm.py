import pytest

from nxlang.bytecode import Op, Instruction, FunctionInfo, CompiledProgram
from nxlang.errors import RuntimeFault
from nxlang.pipeline import compile_source, run_program
from nxlang.types import VOID
from nxlang.vm import VM

I = Instruction


def output_of(source, capsys):
    run_program(source)
    return capsys.readouterr().out


def test_counting_loop(capsys):
    source = 'fn main() { let x = 0; while (x < 3) { print(x); x = x + 1; } }'
    assert output_of(source, capsys) == '0\n1\n2\n'


def test_call_with_arguments(capsys):
    source = 'fn add(a, b) { return a + b; } fn main() { print(add(2, 3)); }'
    assert output_of(source, capsys) == '5\n'


def test_argument_order_is_preserved(capsys):
    source = 'fn sub(a, b) { return a - b; } fn main() { print(sub(10, 4)); }'
    assert output_of(source, capsys) == '6\n'


def test_print_string(capsys):
    assert output_of('fn main() { print("hi"); }', capsys) == 'hi\n'


def test_print_void_is_an_empty_line(capsys):
    source = 'fn nothing() { } fn main() { print(nothing()); print(print("x")); }'
    assert output_of(source, capsys) == '\nx\n\n'


def test_comparisons_produce_one_or_zero(capsys):
    assert output_of('fn main() { print(3 > 2); print(2 == 3); print(1 < 2); }', capsys) == '1\n0\n1\n'


def test_only_nonzero_ints_are_truthy(capsys):
    source = (
        'fn main() { '
        'if ("yes") { print(1); } else { print(0); } '
        'if (0 - 2) { print(1); } else { print(0); } '
        '}'
    )
    assert output_of(source, capsys) == '0\n1\n'


def test_division_truncates_toward_zero(capsys):
    assert output_of('fn main() { print((0 - 7) / 2); print(7 / 2); }', capsys) == '-3\n3\n'


def test_return_from_inside_loop_and_blocks():
    compiled = compile_source(
        'fn f() { while (1) { let y = 5; if (1) { return y; } } } '
        'fn main() { return f() + f(); }'
    )
    vm = VM(compiled)
    assert vm.run() == 10
    # the caller sees exactly one value per completed call
    assert vm.stack == [10]
    assert vm.frames == []


def test_stack_depth_after_call_is_depth_before_plus_one():
    compiled = compile_source('fn id(a, b, c) { let t = a; return t; } fn main() { return 1 + id(2, 3, 4); }')

    class RecordingVM(VM):
        depths = []

        def call(self, name, argc):
            self.depths.append(('call', len(self.stack) - argc))
            super().call(name, argc)

        def do_return(self):
            super().do_return()
            self.depths.append(('return', len(self.stack)))

    vm = RecordingVM(compiled)
    assert vm.run() == 3
    calls = [d for kind, d in vm.depths if kind == 'call']
    returns = [d for kind, d in vm.depths if kind == 'return']
    # innermost call returns first
    assert returns == [c + 1 for c in reversed(calls)]


def test_scope_stack_is_balanced_across_break_and_continue():
    compiled = compile_source(
        'fn loop() { let i = 0; while (i < 5) { i = i + 1; '
        'if (i == 2) { continue; } if (i == 4) { if (1) { break; } } } } '
        'fn main() { loop(); loop(); }'
    )

    class ScopeCheckingVM(VM):
        depths = []

        def do_return(self):
            self.depths.append(len(self.frame.scopes))
            super().do_return()

    vm = ScopeCheckingVM(compiled)
    vm.run()
    assert vm.depths == [1, 1, 1]


def test_let_in_loop_body_is_fresh_each_iteration(capsys):
    source = (
        'fn main() { let i = 0; while (i < 2) { let seen = i * 10; print(seen); i = i + 1; } }'
    )
    assert output_of(source, capsys) == '0\n10\n'


@pytest.mark.parametrize('body, message', [
    ('print(1 / 0);', 'division by zero'),
    ('print("a" + 1);', 'expected int, got String'),
    ('print(9223372036854775807 + 1);', 'integer overflow'),
    ('print(0 - 9223372036854775807 - 2);', 'integer overflow'),
    ('print("a" == "a");', 'expected int, got String'),
])
def test_runtime_faults(body, message):
    with pytest.raises(RuntimeFault, match=message):
        run_program('fn main() { ' + body + ' }')


def test_fault_aborts_after_earlier_output(capsys):
    with pytest.raises(RuntimeFault):
        run_program('fn main() { print(1); print(1 / 0); print(2); }')
    assert capsys.readouterr().out == '1\n'


def test_fault_reports_pc_and_function():
    compiled = compile_source('fn boom() { return 1 / 0; } fn main() { boom(); }')
    with pytest.raises(RuntimeFault) as excinfo:
        VM(compiled).run()
    fault = excinfo.value
    assert fault.function == 'boom'
    assert compiled.code[fault.pc].op is Op.DIV
    assert "in 'boom'" in str(fault)


def test_call_stack_overflow():
    compiled = compile_source('fn f(n) { return f(n + 1); } fn main() { f(0); }')
    with pytest.raises(RuntimeFault, match='call stack overflow'):
        VM(compiled, max_call_depth=50).run()


def test_runtime_arity_check():
    program = CompiledProgram(
        code=(
            I(Op.PUSH_INT, 1),
            I(Op.CALL, ('f', 1)),
            I(Op.RETURN),
            I(Op.PUSH_VOID),
            I(Op.RETURN),
            I(Op.CALL, ('main', 0)),
            I(Op.HALT),
        ),
        functions={'main': FunctionInfo(0, 0), 'f': FunctionInfo(3, 0)},
        entry=5,
    )
    with pytest.raises(RuntimeFault, match="function 'f' expects 0 arguments, got 1") as excinfo:
        VM(program).run()
    assert excinfo.value.pc == 1
    assert excinfo.value.function == 'main'


def test_stack_underflow():
    program = CompiledProgram(
        code=(I(Op.POP), I(Op.PUSH_VOID), I(Op.RETURN), I(Op.CALL, ('main', 0)), I(Op.HALT)),
        functions={'main': FunctionInfo(0, 0)},
        entry=3,
    )
    with pytest.raises(RuntimeFault, match='stack underflow'):
        VM(program).run()


def test_return_on_empty_stack_yields_void():
    program = CompiledProgram(
        code=(I(Op.RETURN), I(Op.CALL, ('main', 0)), I(Op.HALT)),
        functions={'main': FunctionInfo(0, 0)},
        entry=1,
    )
    assert VM(program).run() is VOID


def test_globals_used_outside_frames(capsys):
    program = CompiledProgram(
        code=(
            I(Op.SCOPE_ENTER),
            I(Op.PUSH_INT, 7),
            I(Op.STORE_VAR, 'g'),
            I(Op.CALL, ('main', 0)),
            I(Op.HALT),
            I(Op.LOAD_VAR, 'g'),
            I(Op.PRINT),
            I(Op.POP),
            I(Op.PUSH_VOID),
            I(Op.RETURN),
        ),
        functions={'main': FunctionInfo(5, 0)},
        entry=0,
    )
    vm = VM(program)
    vm.run()
    assert vm.globals == {'g': 7}
    assert capsys.readouterr().out == '7\n'


def test_unresolved_jump_is_rejected_before_running():
    program = CompiledProgram(
        code=(I(Op.JUMP, -1), I(Op.CALL, ('main', 0)), I(Op.HALT)),
        functions={'main': FunctionInfo(0, 0)},
        entry=1,
    )
    with pytest.raises(RuntimeFault, match='unresolved jump target'):
        VM(program)


def test_main_must_exist_with_zero_arity():
    with pytest.raises(RuntimeFault, match="no 'main' function"):
        VM(CompiledProgram(code=(I(Op.HALT),), functions={}, entry=0))
    with pytest.raises(RuntimeFault, match='must take no parameters'):
        VM(CompiledProgram(code=(I(Op.HALT),), functions={'main': FunctionInfo(0, 1)}, entry=0))
