import pytest

from bitasm.bigint import BigInt
from bitasm.evaluator import (
    AsmInfo,
    EvalContext,
    FunctionInfo,
    UnhandledLookup,
    VariableInfo,
    evaluate,
    evaluate_source,
)
from bitasm.exprparser import parse_expression
from bitasm.expression import BoolValue, FunctionValue, IntegerValue, VoidValue
from bitasm.parser import Parser
from bitasm.tokens import AsmError, tokenize


def _parse(src):
    return parse_expression(Parser(tokenize("test", src)))


def _check_int(src, value, size=None):
    result = evaluate_source(src, "test")
    assert isinstance(result, IntegerValue), result
    assert int(result.bigint) == value
    assert result.bigint.size == size


def _check_fail(src, fragment):
    with pytest.raises(AsmError) as info:
        evaluate_source(src, "test")
    assert fragment in info.value.message


@pytest.mark.parametrize("src,value,size", [
    ("0", 0, None), ("1", 1, None), ("10", 10, None),
    ("0b10", 2, 2), ("0o10", 8, 6), ("0x10", 16, 8),
    ("0b1_0", 2, 2), ("0x1_0", 16, 8),
])
def test_literals(src, value, size):
    _check_int(src, value, size)


@pytest.mark.parametrize("src", [
    "0x", "10a", "0b102", "0b10a", "0o80", "0o10a", "0x10g",
    "8'0x0", "0b8'0x00", "0x8'0x00",
])
def test_literal_errors(src):
    _check_fail(src, "invalid")


@pytest.mark.parametrize("src", [" a", ".a", "1 +  a + 1", "1 + .a + 1"])
def test_variables(src):
    _check_fail(src, "unknown")


@pytest.mark.parametrize("src,value", [
    ("-0", 0), ("-1", -1), ("-10", -10), ("--10", 10),
    ("2 + 2", 4), ("2 + 2 + 2 + 2", 8), ("2 - 2", 0), ("2 - 2 - 2 - 2", -4),
    ("2 + 2 - 2 + 2", 4), ("2 * 2", 4), ("2 * 2 * 2 * 2", 16), ("2 / 2", 1),
    ("2 / 2 / 2 / 2", 0), ("2 * 2 * 2 / 2", 4),
    ("0 % 2", 0), ("1 % 2", 1), ("2 % 2", 0), ("3 % 2", 1),
    (" 2 * -2", -4), ("-2 *  2", -4), ("-2 * -2", 4),
    (" 2 / -2", -1), ("-2 /  2", -1), ("-2 / -2", 1),
    ("1 << 0", 1), ("1 << 1", 2), ("1 << 2", 4), ("1 << 3", 8), ("1 << 4", 16),
    ("1 << 5", 32), ("1 << 6", 64), ("1 << 7", 128), ("1 << 8", 256), ("1 << 9", 512),
    ("-1 << 0", -1), ("-1 << 1", -2), ("-1 << 2", -4), ("-1 << 3", -8),
    ("-1 << 4", -16), ("-1 << 5", -32), ("-1 << 6", -64), ("-1 << 7", -128),
    ("-1 << 8", -256), ("-1 << 9", -512),
    ("4 >> 0", 4), ("4 >> 1", 2), ("4 >> 2", 1), ("4 >> 3", 0),
    ("-4 >> 0", -4), ("-4 >> 1", -2), ("-4 >> 2", -1), ("-4 >> 3", -1),
    ("123`0 + 2", 2),
])
def test_ops_arithmetic(src, value):
    _check_int(src, value)


@pytest.mark.parametrize("src,value", [
    ("! 0", -1), ("! 1", -2), ("!-1", 0),
    ("!7", -8), ("!8", -9), ("!9", -10), ("!16", -17), ("!32", -33),
    ("!64", -65), ("!128", -129), ("!256", -257),
    ("!-8", 7), ("!-9", 8), ("!-10", 9), ("!-17", 16), ("!-33", 32),
    ("!-65", 64), ("!-129", 128), ("!-257", 256),
    ("0b1100 & 0b1010", 0b1000), ("0b1100 | 0b1010", 0b1110),
    ("0b1100 ^ 0b1010", 0b0110),
    (" 1 &  2", 0), ("-1 &  2", 2), (" 1 & -2", 0), ("-1 & -2", -2),
    (" 1 |  2", 3), ("-1 |  2", -1), (" 1 | -2", -1), ("-1 | -2", -1),
    (" 1 ^  2", 3), ("-1 ^  2", -3), (" 1 ^ -2", -1), ("-1 ^ -2", 1),
    (" 0x0001 & 0xffff", 1), ("-0x0001 & 0xffff", 0xFFFF),
    (" 0x0001 | 0xffff", 0xFFFF), ("-0x0001 | 0xffff", -1),
    (" 0x0001 ^ 0xffff", 0xFFFE), ("-0x0001 ^ 0xffff", -0x10000),
    ("0xffff &  0x0001", 1), ("0xffff & -0x0001", 0xFFFF),
    ("0xffff |  0x0001", 0xFFFF), ("0xffff | -0x0001", -1),
    ("0xffff ^  0x0001", 0xFFFE), ("0xffff ^ -0x0001", -0x10000),
])
def test_ops_bitmanipulation(src, value):
    _check_int(src, value)


@pytest.mark.parametrize("src,value,size", [
    ("0x00`8", 0, 8), ("0x0f`8", 0xF, 8), ("0xff`8", 0xFF, 8), ("0x101`8", 1, 8),
    ("0`0", 0, 0), ("0x0`0", 0, 0), ("0x100`0", 0, 0), ("0xfff`0", 0, 0),
    ("0x00[0:0]", 0, 1), ("0x0f[0:0]", 1, 1), ("0xff[0:0]", 1, 1),
    ("0x00[7:0]", 0, 8), ("0x0f[7:0]", 0xF, 8), ("0xff[7:0]", 0xFF, 8),
    ("0x00[8:1]", 0, 8), ("0x0f[8:1]", 0x7, 8), ("0xff[8:1]", 0x7F, 8),
    ("0x12345678[ 3: 0]", 0x8, 4), ("0x12345678[ 7: 4]", 0x7, 4),
    ("0x12345678[11: 8]", 0x6, 4), ("0x12345678[15:12]", 0x5, 4),
    ("0x12345678[19:16]", 0x4, 4), ("0x12345678[23:20]", 0x3, 4),
    ("0x12345678[27:24]", 0x2, 4), ("0x12345678[31:28]", 0x1, 4),
    ("-0x01[7:0]", 0xFF, 8), ("-0x08[7:0]", 0xF8, 8), ("-0x7f[7:0]", 0x81, 8),
    ("-0x80[7:0]", 0x80, 8), ("-0x81[7:0]", 0x7F, 8),
    (" 0[1000:1000]", 0, 1), (" 1[1000:1000]", 0, 1), ("-1[1000:1000]", 1, 1),
])
def test_ops_slice(src, value, size):
    _check_int(src, value, size)


def test_ops_slice_errors():
    _check_fail("0x00[0:7]", "invalid")
    _check_fail("0x00[0x1_ffff_ffff_ffff_ffff:7]", "large")


@pytest.mark.parametrize("src,value,size", [
    ("0`8     @ 0`8", 0, 16),
    ("0x12`8  @ 0x34`8", 0x1234, 16),
    ("0x12`16 @ 0x34`16", 0x120034, 32),
    ("0`8     @ 0`0 @ 0`8", 0, 16),
    ("0x12`8  @ 0`0 @ 0x34`8", 0x1234, 16),
    ("0x12`16 @ 0`0 @ 0x34`16", 0x120034, 32),
    ("(6 + 6)[3:0] @ (5 + 5)[3:0]", 0xCA, 8),
    ("4`6 @ 0`5", 0b10000000, 11),
    ("0x8`4 @ 0x1`4", 0x81, 8),
    ("0x0`4 @ 0x0`4 @ 0x8`4 @ 0x9`4", 0x89, 16),
    ("0x1 @ (0x0`4 @ 0x0`4 @ 0x8`4 @ 0x9`4)", 0x10089, 20),
    ("0x0 @ 0x8000[19:0]", 0x8000, 24),
    ("0x1 @ 0x8000[19:0]", 0x108000, 24),
    ("0x1 @ 0x9000[19:0]", 0x109000, 24),
])
def test_ops_concat(src, value, size):
    _check_int(src, value, size)


@pytest.mark.parametrize("src", [
    "0   @ 0", "0`8 @ 0", "0   @ 0`8", "-0x1 @  0x1", " 0x1 @ -0x1",
])
def test_ops_concat_errors(src):
    _check_fail(src, "unspecified size")


@pytest.mark.parametrize("src,expected", [
    ("0 == 0", True), ("0 != 0", False), ("0 == 1", False), ("0 != 1", True),
    ("(0xff & 0xff) == 0xff", True), ("(0xff & 0xff) != 0xff", False),
    ("(0xff & 0xff) == 0xee", False), ("(0xff & 0xff) != 0xee", True),
    ("1 <  2", True), ("1 <= 2", True), ("2 <  1", False), ("2 <= 1", False),
    ("1 >  2", False), ("1 >= 2", False), ("2 >  1", True), ("2 >= 1", True),
    ("-1 == -1", True), ("-1 <  -2", False), ("-1 <= -2", False),
    ("-2 <  -1", True), ("-2 <= -1", True), ("-1 >  -2", True),
    ("-1 >= -2", True), ("-2 >  -1", False), ("-2 >= -1", False),
    ("2 <  2", False), ("2 <= 2", True), ("2 >  2", False), ("2 >= 2", True),
    (" !(1 == 1)", False), (" !(1 != 1)", True),
    ("!!(1 == 1)", True), ("!!(1 != 1)", False),
])
def test_ops_relational_int(src, expected):
    assert evaluate_source(src, "test") == BoolValue(expected)


@pytest.mark.parametrize("src,expected", [
    ("(1 == 1) & (1 == 1)", True), ("(1 == 1) & (1 == 0)", False),
    ("(1 == 0) & (1 == 1)", False), ("(1 == 0) & (1 == 0)", False),
    ("(1 == 1) | (1 == 1)", True), ("(1 == 1) | (1 == 0)", True),
    ("(1 == 0) | (1 == 1)", True), ("(1 == 0) | (1 == 0)", False),
    ("(1 == 1) ^ (1 == 1)", False), ("(1 == 1) ^ (1 == 0)", True),
    ("(1 == 0) ^ (1 == 1)", True), ("(1 == 0) ^ (1 == 0)", False),
    ("(1 == 1) == (1 == 1)", True), ("(1 == 1) == (1 == 0)", False),
    ("(1 == 0) == (1 == 1)", False), ("(1 == 0) == (1 == 0)", True),
    ("(1 == 1) != (1 == 1)", False), ("(1 == 1) != (1 == 0)", True),
    ("(1 == 0) != (1 == 1)", True), ("(1 == 0) != (1 == 0)", False),
])
def test_ops_relational_bool(src, expected):
    assert evaluate_source(src, "test") == BoolValue(expected)


@pytest.mark.parametrize("src,expected", [
    ("(1 == 1) && (1 == 1)", True), ("(1 == 1) && (1 == 0)", False),
    ("(1 == 0) && (1 == 1)", False), ("(1 == 0) && (1 == 0)", False),
    ("(1 == 1) || (1 == 1)", True), ("(1 == 1) || (1 == 0)", True),
    ("(1 == 0) || (1 == 1)", True), ("(1 == 0) || (1 == 0)", False),
    ("(1 == 0) && 123", False), ("(1 == 0) && (1 / 0)", False),
    ("(1 == 1) || 123", True), ("(1 == 1) || (1 / 0)", True),
])
def test_ops_lazy(src, expected):
    assert evaluate_source(src, "test") == BoolValue(expected)


@pytest.mark.parametrize("src,fragment", [
    ("(1 == 1) && 123", "type"),
    ("(1 == 1) && (1 / 0)", "zero"),
    ("(1 == 0) || 123", "type"),
    ("(1 == 0) || (1 / 0)", "zero"),
])
def test_ops_lazy_errors(src, fragment):
    _check_fail(src, fragment)


def test_ops_ternary():
    _check_int("(1 == 1) ? 123", 123)
    assert evaluate_source("(1 == 0) ? 123", "test") == VoidValue()
    _check_int("(1 == 1) ? 123 : 456", 123)
    _check_int("(1 == 0) ? 123 : 456", 456)
    _check_int("(1 == 1) ? 123 : (1 == 1)", 123)
    assert evaluate_source("(1 == 0) ? 123 : (1 == 1)", "test") == BoolValue(True)
    assert evaluate_source("(1 == 1) ? (1 == 1) : 123", "test") == BoolValue(True)
    _check_int("(1 == 0) ? (1 == 1) : 123", 123)
    _check_int("(1 == 1) ? 123 : (1 / 0)", 123)
    _check_fail("(1 == 0) ? 123 : (1 / 0)", "zero")
    _check_fail("(1 == 1) ? (1 / 0) : 123", "zero")
    _check_int("(1 == 0) ? (1 / 0) : 123", 123)
    _check_fail("123 ? 456 : 789", "type")


@pytest.mark.parametrize("src,fragment", [
    ("2 / 0", "division by zero"),
    ("2 / (1 - 1)", "division by zero"),
    ("2 % 0", "modulo by zero"),
    ("2 % (1 - 1)", "modulo by zero"),
    ("2 << (1 << 1000)", "invalid shift"),
    ("2 >> (1 << 1000)", "invalid shift"),
])
def test_ops_arith_errors(src, fragment):
    _check_fail(src, fragment)


@pytest.mark.parametrize("src", [
    "(1 == 1) + (1 == 1)", "-(1 == 1)", "(1 == 1) @ (1 == 1)",
])
def test_ops_type_errors(src):
    _check_fail(src, "argument")


def test_precedence():
    _check_int(" 2 +  2  * 2 ", 6)
    _check_int(" 2 + (2  * 2)", 6)
    _check_int("(2 +  2) * 2 ", 8)
    assert evaluate_source("1 + 2 == 2 + 1", "test") == BoolValue(True)
    assert evaluate_source("1 + 2 != 2 + 1", "test") == BoolValue(False)
    assert evaluate_source("1 + 2 >  2 + 1", "test") == BoolValue(False)
    assert evaluate_source("1 + 2 >= 2 + 1", "test") == BoolValue(True)
    assert evaluate_source("1 + 2 <  2 + 1", "test") == BoolValue(False)
    assert evaluate_source("1 + 2 <= 2 + 1", "test") == BoolValue(True)
    assert evaluate_source("0b110 == 0b110 && 0b11 == 0b11", "test") == BoolValue(True)
    _check_fail("0b110 == 0b110 &  0b11 == 0b11", "argument")
    assert evaluate_source("0b110 == 0b110 || 0b11 == 0b11", "test") == BoolValue(True)
    _check_fail("0b110 == 0b110 |  0b11 == 0b11", "argument")


def test_blocks():
    assert evaluate_source("{}", "test") == VoidValue()
    _check_int("{0}", 0)
    _check_int("{0,}", 0)
    _check_int("{0 \n }", 0)
    _check_int("{0,\n }", 0)
    _check_int("{0,   1}", 1)
    _check_int("{0 \n 1}", 1)
    _check_fail("{0 1}", "`,`")
    _check_int("{1 + 2, 3} + {4, 5 + 6}", 14)


def test_calls():
    _check_fail("0()", "callable")
    _check_fail("0(1, 2, 3)", "callable")


def test_assignment():
    assert evaluate_source("   x  = 123", "test") == VoidValue()
    _check_int("{  x  = 123, x }", 123)
    _check_int("{ (x) = 123, x }", 123)
    _check_int("{ x = 123, y = 321,            x + y }", 444)
    _check_int("{ x = 123, y = x * 2,          x + y }", 369)
    _check_int("{ x = 123, y = x * 2, x = 753, x + y }", 999)
    _check_int("{ x = 123, y = 456, x < y ? min = x : min = y, min }", 123)
    _check_int("{ x = 456, y = 123, x < y ? min = x : min = y, min }", 123)
    _check_int("{ x = 123, y = 456, x < y ? min = x,           min }", 123)
    _check_fail("{ x = 456, y = 123, x < y ? min = x,           min }", "unknown")
    _check_fail("0 = 1", "invalid")
    _check_fail("x + 1 = 2", "invalid")
    _check_fail("{x} = 1", "invalid")


def test_assignment_to_hierarchical_symbol_fails():
    _check_fail(".x = 1", "cannot be assigned")


def test_eval_context_locals_and_token_subs():
    ctx = EvalContext()
    ctx.set_local("a", IntegerValue(BigInt(7)))
    assert ctx.get_local("a") == IntegerValue(BigInt(7))
    with pytest.raises(KeyError):
        ctx.get_local("b")
    tokens = tokenize("t", "1 + 2")
    ctx.set_token_sub("sub", tokens)
    assert ctx.get_token_sub("sub") == tokens
    assert ctx.get_token_sub("missing") is None


def test_assignment_writes_into_context():
    ctx = EvalContext()
    result = evaluate(_parse("x = 5 + 1"), ctx)
    assert result == VoidValue()
    assert int(ctx.get_local("x").bigint) == 6


def test_variable_callback_and_local_precedence():
    seen = []

    def eval_var(info: VariableInfo):
        seen.append(info)
        if info.hierarchy == ("a", "b"):
            return IntegerValue(BigInt(40))
        raise UnhandledLookup()

    result = evaluate(_parse("a.b + 2"), EvalContext(), eval_var)
    assert int(result.bigint) == 42
    assert seen[0].hierarchy_level == 0

    ctx = EvalContext()
    ctx.set_local("a", IntegerValue(BigInt(1)))
    result = evaluate(_parse("a"), ctx, lambda info: IntegerValue(BigInt(99)))
    assert int(result.bigint) == 1

    with pytest.raises(AsmError, match="unknown variable"):
        evaluate(_parse("c"), EvalContext(), eval_var)


def test_variable_callback_error_propagates():
    def eval_var(info):
        raise AsmError("custom failure", info.span)

    with pytest.raises(AsmError, match="custom failure"):
        evaluate(_parse("z"), EvalContext(), eval_var)


def test_function_callback():
    def eval_var(info):
        return FunctionValue(info.hierarchy[0])

    calls = []

    def eval_fn(info: FunctionInfo):
        calls.append(info)
        return IntegerValue(BigInt(sum(int(arg.bigint) for arg in info.args)))

    result = evaluate(_parse("add(1, 2, 3 * 4)"), EvalContext(), eval_var, eval_fn)
    assert int(result.bigint) == 15
    assert calls[0].func == FunctionValue("add")
    assert len(calls[0].arg_spans) == 3

    with pytest.raises(AsmError, match="unknown function"):
        evaluate(_parse("f(1)"), EvalContext(), eval_var)


def test_asm_callback_sees_tokens_and_context():
    def eval_asm(info: AsmInfo):
        info.args.set_local("seen", BoolValue(True))
        names = [token.excerpt for token in info.tokens if token.excerpt]
        return IntegerValue(BigInt(len(names)))

    ctx = EvalContext()
    result = evaluate(_parse("asm { nop x }"), ctx, eval_asm=eval_asm)
    assert int(result.bigint) == 2
    assert ctx.get_local("seen") == BoolValue(True)


def test_asm_without_callback_fails():
    with pytest.raises(AsmError):
        evaluate(_parse("asm { nop }"))


def test_string_operands_convert_to_integers():
    _check_int('"a" + 1', 0x62)


def test_error_span_points_into_source():
    with pytest.raises(AsmError) as info:
        evaluate_source("1 + abc", "test")
    assert info.value.span.file == "test"
    assert info.value.span.location == (4, 7)