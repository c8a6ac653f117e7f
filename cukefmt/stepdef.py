"""Step definitions and the conversion of matched arguments."""

from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, NewType

from .messages import PickleDocString, PickleStepArgument, PickleTable

Int64 = NewType("Int64", int)
Int32 = NewType("Int32", int)
Int16 = NewType("Int16", int)
Int8 = NewType("Int8", int)
Float32 = NewType("Float32", float)

_INT_TYPES = {
    int: (64, "int"),
    Int64: (64, "int64"),
    Int32: (32, "int32"),
    Int16: (16, "int16"),
    Int8: (8, "int8"),
}
_FLOAT_TYPES = {
    float: (64, "float"),
    Float32: (32, "float32"),
}

_INT_SYNTAX = re.compile(r"[+-]?[0-9]+")
_INF_SYNTAX = re.compile(r"[+-]?(inf|infinity)", re.IGNORECASE)

_NO_KEY = object()
_EMPTY = object()


class Context:
    """An immutable chain of key/value pairs passed between steps."""

    __slots__ = ("_parent", "_key", "_value")

    def __init__(self) -> None:
        self._parent: Context | None = None
        self._key: Any = _NO_KEY
        self._value: Any = None

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context carrying *key* bound to *value*."""
        child = Context()
        child._parent = self
        child._key = key
        child._value = value
        return child

    def value(self, key: Any) -> Any:
        """Return the value bound to *key*, or None."""
        node: Context | None = self
        while node is not None:
            if node._key is not _NO_KEY and node._key == key:
                return node._value
            node = node._parent
        return None


class StepDefinitionError(Exception):
    """Raised when a step handler cannot be called with its arguments."""


class UnmatchedStepArgumentNumber(StepDefinitionError):
    """The handler expects more arguments than the step supplied."""


class CannotConvert(StepDefinitionError):
    """An argument could not be converted to the parameter's type."""


class UnsupportedParameterType(StepDefinitionError):
    """The handler declares a parameter type that is not supported."""


_ANNOTATION_NAMES: dict[str, Any] = {
    "str": str,
    "bytes": bytes,
    "int": int,
    "float": float,
    "bool": bool,
    "Int64": Int64,
    "Int32": Int32,
    "Int16": Int16,
    "Int8": Int8,
    "Float32": Float32,
    "Context": Context,
    "PickleDocString": PickleDocString,
    "PickleTable": PickleTable,
}


def _resolve(annotation: Any) -> Any:
    if isinstance(annotation, str):
        return _ANNOTATION_NAMES.get(annotation.rsplit(".", 1)[-1], annotation)
    return annotation


def _parameter_annotations(handler: Callable[..., Any]) -> list[Any]:
    """Return the annotations of the handler's positional parameters."""
    func: Any = handler
    skip = 0
    if hasattr(func, "__func__"):
        func = func.__func__
        skip = 1
    elif not hasattr(func, "__code__"):
        func = type(func).__call__
        skip = 1
    code = func.__code__
    names = code.co_varnames[skip : code.co_argcount]
    hints = getattr(func, "__annotations__", None) or {}
    return [_resolve(hints.get(name, _EMPTY)) for name in names]


def _type_name(tp: Any) -> str:
    if isinstance(tp, type) and not hasattr(tp, "__origin__"):
        return tp.__name__
    return str(tp)


def _out_of_range(index: int, text: str, label: str) -> CannotConvert:
    return CannotConvert(
        f'cannot convert argument {index}: "{text}" to {label}: '
        f'parsing "{text}": value out of range'
    )


def _invalid_syntax(index: int, text: str, label: str) -> CannotConvert:
    return CannotConvert(
        f'cannot convert argument {index}: "{text}" to {label}: '
        f'parsing "{text}": invalid syntax'
    )


def _parse_int(index: int, text: str, bits: int, label: str) -> int:
    if not _INT_SYNTAX.fullmatch(text):
        raise _invalid_syntax(index, text, label)
    value = int(text)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise _out_of_range(index, text, label)
    return value


def _parse_float(index: int, text: str, bits: int, label: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise _invalid_syntax(index, text, label)
    try:
        value = float(text)
    except ValueError:
        raise _invalid_syntax(index, text, label) from None
    if math.isinf(value) and not _INF_SYNTAX.fullmatch(text):
        raise _out_of_range(index, text, label)
    if bits == 32:
        try:
            value = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError:
            raise _out_of_range(index, text, label) from None
    return value


@dataclass
class StepDefinition:
    """A step handler with the arguments matched from a step's text."""

    handler: Callable[..., Any]
    expr: re.Pattern[str] | None = None
    args: list[Any] = field(default_factory=list)
    nested: bool = False
    undefined: list[str] = field(default_factory=list)

    def run(self, ctx: Context) -> tuple[Context, Any]:
        """Call the handler and return the resulting context and outcome.

        The outcome is None, an exception returned by the handler, or any
        other value the handler returned (such as a list of nested steps).
        """
        params = _parameter_annotations(self.handler)
        values: list[Any] = []
        if params and _is_context(params[0]):
            values.append(ctx)
            params = params[1:]

        if len(self.args) < len(params):
            raise UnmatchedStepArgumentNumber(
                "func expected more arguments than given: "
                f"expected {len(params)} arguments, matched {len(self.args)} from step"
            )

        for index, annotation in enumerate(params):
            values.append(self._convert(index, annotation))

        return self._outcome(ctx, self.handler(*values))

    def _convert(self, index: int, annotation: Any) -> Any:
        if annotation is _EMPTY or annotation is str:
            return self._as_string(index)
        if annotation is bytes:
            return self._as_string(index).encode()
        if annotation in _INT_TYPES:
            bits, label = _INT_TYPES[annotation]
            return _parse_int(index, self._as_string(index), bits, label)
        if annotation in _FLOAT_TYPES:
            bits, label = _FLOAT_TYPES[annotation]
            return _parse_float(index, self._as_string(index), bits, label)
        arg = self.args[index]
        if annotation is PickleDocString:
            if isinstance(arg, PickleStepArgument):
                return arg.doc_string
            if isinstance(arg, PickleDocString):
                return arg
            raise CannotConvert(
                f'cannot convert argument {index}: "{arg}" of type '
                f'"{type(arg).__name__}" to PickleDocString'
            )
        if annotation is PickleTable:
            if isinstance(arg, PickleStepArgument):
                return arg.data_table
            if isinstance(arg, PickleTable):
                return arg
            raise CannotConvert(
                f'cannot convert argument {index}: "{arg}" of type '
                f'"{type(arg).__name__}" to PickleTable'
            )
        raise UnsupportedParameterType(
            "func has unsupported parameter type: "
            f"the parameter {index} type {_type_name(annotation)} is not supported"
        )

    def _as_string(self, index: int) -> str:
        arg = self.args[index]
        if isinstance(arg, str):
            return arg
        if isinstance(arg, PickleStepArgument):
            if arg.doc_string is None:
                raise CannotConvert(
                    f'cannot convert argument {index}: "{arg}" of type '
                    f'"{type(arg).__name__}": DocString is not set'
                )
            return arg.doc_string.content
        if isinstance(arg, PickleDocString):
            return arg.content
        raise CannotConvert(
            f'cannot convert argument {index}: "{arg}" of type '
            f'"{type(arg).__name__}" to string'
        )

    def _outcome(self, ctx: Context, result: Any) -> tuple[Context, Any]:
        if result is None:
            return ctx, None
        if isinstance(result, Context):
            return result, None
        if not (isinstance(result, tuple) and len(result) == 2):
            return ctx, result

        first, second = result
        if isinstance(first, Context):
            return first, second

        extra = ""
        if second is not None:
            extra = f", step def also returned an error: {second}"
        text = self.expr.pattern if self.expr is not None else ""
        if first is None:
            raise TypeError(
                f"step definition '{text}' with return type (Context, error) "
                f"must not return None for the Context value{extra}"
            )
        raise TypeError(
            f"step definition '{text}' has return type (Context, error), "
            f"but found {first} rather than a Context value{extra}"
        )


def _is_context(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, Context)