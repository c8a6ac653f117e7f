import re

import pytest

from cukefmt.messages import PickleDocString, PickleStepArgument, PickleTable
from cukefmt.stepdef import (
    CannotConvert,
    Context,
    Float32,
    Int8,
    Int16,
    Int32,
    Int64,
    StepDefinition,
    StepDefinitionError,
    UnmatchedStepArgumentNumber,
    UnsupportedParameterType,
)


def initial():
    return Context().with_value("original", 123)


def test_context_values():
    ctx = initial().with_value("updated", 321)
    assert ctx.value("original") == 123
    assert ctx.value("updated") == 321
    assert ctx.value("missing") is None


def test_void_handler_return():
    seen = []

    def fn(ctx: Context):
        seen.append(ctx.value("original"))

    start = initial()
    ctx, err = StepDefinition(handler=fn).run(start)
    assert seen == [123]
    assert ctx is start
    assert err is None


def test_none_context_return():
    def fn(ctx: Context) -> Context:
        return None

    start = initial()
    ctx, err = StepDefinition(handler=fn).run(start)
    assert ctx is start
    assert err is None


def test_context_return():
    def fn(ctx: Context) -> Context:
        return ctx.with_value("updated", 321)

    ctx, err = StepDefinition(handler=fn).run(initial())
    assert err is None
    assert ctx.value("original") == 123
    assert ctx.value("updated") == 321


def test_error_return():
    expected = RuntimeError("expected error")

    def fn(ctx: Context):
        return expected

    ctx, err = StepDefinition(handler=fn).run(initial())
    assert err is expected
    assert ctx.value("original") == 123


def test_context_and_error_return():
    expected = RuntimeError("expected error")

    def fn(ctx: Context):
        return ctx.with_value("updated", 321), expected

    ctx, err = StepDefinition(handler=fn).run(initial())
    assert err is expected
    assert ctx.value("original") == 123
    assert ctx.value("updated") == 321


def test_context_and_none_error_return():
    def fn(ctx: Context):
        return ctx.with_value("updated", 321), None

    ctx, err = StepDefinition(handler=fn).run(initial())
    assert err is None
    assert ctx.value("updated") == 321


def test_reject_none_context_when_multi_value_return():
    def fn(ctx: Context):
        return None, RuntimeError("expected error")

    definition = StepDefinition(handler=fn, expr=re.compile("some regex string"))
    with pytest.raises(TypeError) as excinfo:
        definition.run(initial())
    assert str(excinfo.value) == (
        "step definition 'some regex string' with return type (Context, error) "
        "must not return None for the Context value, "
        "step def also returned an error: expected error"
    )


def test_argument_count_checks():
    called = []

    def fn(a: int, b: int):
        called.append((a, b))

    definition = StepDefinition(handler=fn, args=["1"])
    with pytest.raises(UnmatchedStepArgumentNumber) as excinfo:
        definition.run(Context())
    assert called == []
    assert str(excinfo.value) == (
        "func expected more arguments than given: expected 2 arguments, matched 1 from step"
    )

    definition.args = ["1", "2", "IGNORED-EXTRA-ARG"]
    _, err = definition.run(Context())
    assert err is None
    assert called == [(1, 2)]


def test_argument_count_checks_with_context():
    def fn(ctx: Context, a: int, b: int):
        raise AssertionError("should not be called")

    with pytest.raises(StepDefinitionError) as excinfo:
        StepDefinition(handler=fn, args=["1"]).run(Context())
    assert isinstance(excinfo.value, UnmatchedStepArgumentNumber)
    assert str(excinfo.value) == (
        "func expected more arguments than given: expected 2 arguments, matched 1 from step"
    )


def test_int_types():
    got = []

    def fn(a: Int64, b: Int32, c: Int16, d: Int8):
        got.append((a, b, c, d))

    definition = StepDefinition(handler=fn, args=["1", "2", "3", "4"])
    _, err = definition.run(Context())
    assert err is None
    assert got == [(1, 2, 3, 4)]

    cases = [
        (["1", "2", "3", "128"],
         'cannot convert argument 3: "128" to int8: parsing "128": value out of range'),
        (["1", "2", "99999", "4"],
         'cannot convert argument 2: "99999" to int16: parsing "99999": value out of range'),
        (["1", "2" * 32, "3", "4"],
         'cannot convert argument 1: "22222222222222222222222222222222" to int32: '
         'parsing "22222222222222222222222222222222": value out of range'),
        (["1" * 32, "2", "3", "4"],
         'cannot convert argument 0: "11111111111111111111111111111111" to int64: '
         'parsing "11111111111111111111111111111111": value out of range'),
    ]
    for args, message in cases:
        definition.args = args
        with pytest.raises(CannotConvert) as excinfo:
            definition.run(Context())
        assert str(excinfo.value) == message


def test_float_types():
    got = []

    def fn(a: float, b: Float32):
        got.append((a, b))

    definition = StepDefinition(handler=fn, args=["1.1", "2.2"])
    _, err = definition.run(Context())
    assert err is None
    assert got[0][0] == 1.1
    assert got[0][1] == pytest.approx(2.2, rel=1e-6)

    big = "2" * 65 + ".22"
    definition.args = ["1.1", big]
    with pytest.raises(CannotConvert) as excinfo:
        definition.run(Context())
    assert str(excinfo.value) == (
        f'cannot convert argument 1: "{big}" to float32: parsing "{big}": value out of range'
    )


def test_gherkin_docstring():
    got = []

    def fn(a: PickleDocString):
        got.append(a)

    expected = PickleDocString(content="hello")
    _, err = StepDefinition(handler=fn, args=[expected]).run(Context())
    assert err is None
    assert got == [expected]


def test_gherkin_table():
    got = []

    def fn(a: PickleTable):
        got.append(a)

    expected = PickleTable()
    _, err = StepDefinition(handler=fn, args=[expected]).run(Context())
    assert err is None
    assert got[0] is expected


def test_step_argument_unwraps_table_and_docstring():
    got = []

    def fn(a: PickleTable, b: PickleDocString):
        got.append((a, b))

    table = PickleTable()
    doc = PickleDocString(content="x")
    StepDefinition(
        handler=fn,
        args=[PickleStepArgument(data_table=table), PickleStepArgument(doc_string=doc)],
    ).run(Context())
    assert got[0][0] is table
    assert got[0][1] is doc


def test_only_bytes_sequence_supported():
    got = []

    def fn1(a: bytes):
        got.append(a)

    def fn2(a: list[str]):
        raise AssertionError("fn2 should not be called")

    _, err = StepDefinition(handler=fn1, args=["str"]).run(Context())
    assert err is None
    assert got == [b"str"]

    with pytest.raises(UnsupportedParameterType) as excinfo:
        StepDefinition(handler=fn2, args=[[]]).run(Context())
    assert str(excinfo.value) == (
        "func has unsupported parameter type: the parameter 0 type list[str] is not supported"
    )


TO_STRING_ERROR = 'cannot convert argument 0: "12" of type "int" to string'


@pytest.mark.parametrize(
    "annotation, message",
    [
        (int, TO_STRING_ERROR),
        (Int64, TO_STRING_ERROR),
        (Int32, TO_STRING_ERROR),
        (Int16, TO_STRING_ERROR),
        (Int8, TO_STRING_ERROR),
        (str, TO_STRING_ERROR),
        (float, TO_STRING_ERROR),
        (Float32, TO_STRING_ERROR),
        (bytes, TO_STRING_ERROR),
        (PickleTable, 'cannot convert argument 0: "12" of type "int" to PickleTable'),
        (PickleDocString, 'cannot convert argument 0: "12" of type "int" to PickleDocString'),
    ],
)
def test_step_args_should_be_string(annotation, message):
    def fn(a):
        raise AssertionError("should not be called")

    fn.__annotations__ = {"a": annotation}
    with pytest.raises(CannotConvert) as excinfo:
        StepDefinition(handler=fn, args=[12]).run(Context())
    assert str(excinfo.value) == message


class SomeStruct:
    pass


@pytest.mark.parametrize(
    "annotation, name",
    [
        (bool, "bool"),
        (dict[str, int], "dict[str, int]"),
        (list[int], "list[int]"),
        (list[bool], "list[bool]"),
        (SomeStruct, "SomeStruct"),
    ],
)
def test_invalid_handler_param_conversion(annotation, name):
    def fn(a):
        raise AssertionError("should not be called")

    fn.__annotations__ = {"a": annotation}
    with pytest.raises(UnsupportedParameterType) as excinfo:
        StepDefinition(handler=fn, args=[12]).run(Context())
    assert str(excinfo.value) == (
        f"func has unsupported parameter type: the parameter 0 type {name} is not supported"
    )


@pytest.mark.parametrize(
    "annotation, arg, message",
    [
        (int, "a", 'cannot convert argument 0: "a" to int: parsing "a": invalid syntax'),
        (Int64, "a", 'cannot convert argument 0: "a" to int64: parsing "a": invalid syntax'),
        (Int32, "a", 'cannot convert argument 0: "a" to int32: parsing "a": invalid syntax'),
        (Int16, "a", 'cannot convert argument 0: "a" to int16: parsing "a": invalid syntax'),
        (Int8, "a", 'cannot convert argument 0: "a" to int8: parsing "a": invalid syntax'),
        (Float32, "a", 'cannot convert argument 0: "a" to float32: parsing "a": invalid syntax'),
        (float, "a", 'cannot convert argument 0: "a" to float: parsing "a": invalid syntax'),
        (PickleTable, "194", 'cannot convert argument 0: "194" of type "str" to PickleTable'),
        (PickleDocString, "194",
         'cannot convert argument 0: "194" of type "str" to PickleDocString'),
    ],
)
def test_string_conversion_to_function_type(annotation, arg, message):
    def fn(a):
        raise AssertionError("should not be called")

    fn.__annotations__ = {"a": annotation}
    with pytest.raises(CannotConvert) as excinfo:
        StepDefinition(handler=fn, args=[arg]).run(Context())
    assert str(excinfo.value) == message


def test_docstring_to_string_conversion():
    got = []

    def fn(a: str):
        got.append(a)

    _, err = StepDefinition(
        handler=fn, args=[PickleDocString(content="hello")]
    ).run(Context())
    assert err is None
    assert got == ["hello"]


def test_step_argument_without_docstring_cannot_be_string():
    def fn(a: str):
        raise AssertionError("should not be called")

    with pytest.raises(CannotConvert, match="DocString is not set"):
        StepDefinition(handler=fn, args=[PickleStepArgument()]).run(Context())