"""ANSI colour helpers for terminal output."""

from __future__ import annotations

from typing import Callable

ColorFunc = Callable[[object], str]

_ESC = "\x1b"

_BLACK = 30
_RED = 31
_GREEN = 32
_YELLOW = 33
_CYAN = 36
_WHITE = 37


def _colorize(value: object, code: int) -> str:
    return f"{_ESC}[{code}m{value}{_ESC}[0m"


def black(text: object) -> str:
    """Render *text* in black."""
    return _colorize(text, _BLACK)


def red(text: object) -> str:
    """Render *text* in red."""
    return _colorize(text, _RED)


def green(text: object) -> str:
    """Render *text* in green."""
    return _colorize(text, _GREEN)


def yellow(text: object) -> str:
    """Render *text* in yellow."""
    return _colorize(text, _YELLOW)


def cyan(text: object) -> str:
    """Render *text* in cyan."""
    return _colorize(text, _CYAN)


def white(text: object) -> str:
    """Render *text* in white."""
    return _colorize(text, _WHITE)


def bold(color: ColorFunc) -> ColorFunc:
    """Return a colour function that renders like *color*, but bold."""

    def apply(text: object) -> str:
        return color(text).replace(_ESC + "[", _ESC + "[1;", 1)

    return apply