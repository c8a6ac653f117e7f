"""The base formatter: run summary and snippets for undefined steps."""

from __future__ import annotations

import functools
import inspect
import os
import re
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TextIO

from . import colors
from .messages import PickleStepArgument
from .results import StepResultStatus, now
from .storage import Storage

TESTED_PACKAGE_ENV = "CUKEFMT_TESTED_PACKAGE"
SEED_ENV = "CUKEFMT_SEED"

_PASSED = StepResultStatus.PASSED
_FAILED = StepResultStatus.FAILED
_SKIPPED = StepResultStatus.SKIPPED
_UNDEFINED = StepResultStatus.UNDEFINED
_PENDING = StepResultStatus.PENDING
_AMBIGUOUS = StepResultStatus.AMBIGUOUS

_EXPR_CLEANUP = re.compile(r"([/\[\]()\\^$.|?*+'])")
_NUMBERS = re.compile(r"([0-9]+)")
_QUOTED = re.compile(r'(\W|^)"(?:[^"]*)"(\W|$)', re.ASCII)
_METHOD_NAME = re.compile(r"[^a-zA-Z_ ]")

_INT_GROUP = r"(\d+)"
_STR_GROUP = '"([^"]*)"'
_ARG_GROUPS = re.compile(re.escape(_INT_GROUP) + "|" + re.escape(_STR_GROUP))


def definition_id(sd: Any) -> str:
    """Describe where a step definition's handler lives: ``file:line -> name``."""
    handler = sd.handler
    while isinstance(handler, functools.partial):
        handler = handler.func
    handler = inspect.unwrap(handler)
    func = getattr(handler, "__func__", handler)
    if not hasattr(func, "__code__"):
        call = getattr(type(handler), "__call__", None)
        func = getattr(call, "__func__", call)

    code = getattr(func, "__code__", None)
    file = os.path.basename(code.co_filename) if code else ""
    line = code.co_firstlineno if code else 0

    module = getattr(func, "__module__", "") or ""
    qualname = getattr(func, "__qualname__", type(handler).__name__)
    name = f"{module}.{qualname}".replace(".<locals>", "")

    package = os.environ.get(TESTED_PACKAGE_ENV, "")
    if package:
        name = name.replace(package, "", 1).lstrip(".").replace("..", ".")

    return f"{file}:{line} -> {name}"


def _fraction(value: int, scale: int) -> str:
    whole, rest = divmod(value, scale)
    if rest == 0:
        return str(whole)
    digits = len(str(scale)) - 1
    return f"{whole}.{rest:0{digits}d}".rstrip("0")


def _format_duration(elapsed: timedelta) -> str:
    ns = ((elapsed.days * 86400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds) * 1000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"

    seconds, frac = divmod(ns, 1_000_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = _fraction(seconds * 1_000_000_000 + frac, 1_000_000_000) + "s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


@dataclass
class _UndefinedSnippet:
    method: str
    expr: str
    argument: PickleStepArgument | None

    def args(self) -> str:
        types = [
            "int" if m.group(0) == _INT_GROUP else "str"
            for m in _ARG_GROUPS.finditer(self.expr)
        ]
        if self.argument is not None:
            if self.argument.doc_string is not None:
                types.append("PickleDocString")
            if self.argument.data_table is not None:
                types.append("PickleTable")
        return ", ".join(f"arg{i}: {t}" for i, t in enumerate(types, 1))


def _snippet_expr(step: str) -> str:
    expr = _EXPR_CLEANUP.sub(r"\\\1", step)
    expr = _NUMBERS.sub(r"(\\d+)", expr)
    expr = _QUOTED.sub(r'\1"([^"]*)"\2', expr)
    return "^" + expr.strip() + "$"


def _snippet_method(step: str) -> str:
    name = _NUMBERS.sub(" ", step)
    name = _QUOTED.sub(" ", name)
    name = _METHOD_NAME.sub("", name).strip()
    words = []
    for i, word in enumerate(name.split(" ")):
        if i != 0:
            word = word[:1].upper() + word[1:]
        elif word:
            word = word[0].lower() + word[1:]
        words.append(word)
    return "".join(words)


class Base:
    """A formatter that ignores progress events and prints a summary."""

    def __init__(self, suite: str, out: TextIO) -> None:
        self.suite_name = suite
        self.out = out
        self.indent = 2
        self.storage: Storage | None = None
        self.lock = threading.RLock()

    def _println(self, text: str = "") -> None:
        self.out.write(f"{text}\n")

    def set_storage(self, storage: Storage) -> None:
        with self.lock:
            self.storage = storage

    def test_run_started(self) -> None:
        """Called when the test run starts."""

    def feature(self, document, path, content) -> None:
        """Called with each parsed gherkin document."""

    def pickle(self, pickle) -> None:
        """Called when a scenario starts."""

    def defined(self, pickle, step, definition) -> None:
        """Called when a step's definition has been looked up."""

    def passed(self, pickle, step, definition) -> None:
        """Called when a step passed."""

    def skipped(self, pickle, step, definition) -> None:
        """Called when a step was skipped."""

    def undefined(self, pickle, step, definition) -> None:
        """Called when a step has no definition."""

    def failed(self, pickle, step, definition, err) -> None:
        """Called when a step failed."""

    def pending(self, pickle, step, definition) -> None:
        """Called when a step is pending."""

    def ambiguous(self, pickle, step, definition, err) -> None:
        """Called when a step matched several definitions."""

    def summary(self) -> None:
        """Print scenario and step counts, elapsed time, seed and snippets."""
        storage = self.storage
        step_counts: Counter[StepResultStatus] = Counter()
        total_sc = passed_sc = undefined_sc = 0

        for pickle_result in storage.pickle_results():
            total_sc += 1
            step_results = storage.pickle_step_results_by_pickle_id(pickle_result.pickle_id)
            status = _UNDEFINED if not step_results else _PASSED
            for result in step_results:
                step_counts[result.status] += 1
                if result.status in (_FAILED, _AMBIGUOUS, _UNDEFINED, _PENDING):
                    status = result.status
            if status is _PASSED:
                passed_sc += 1
            elif status is _UNDEFINED:
                undefined_sc += 1
        total_st = sum(step_counts.values())

        steps: list[str] = []
        parts: list[str] = []
        if step_counts[_PASSED]:
            steps.append(colors.green(f"{step_counts[_PASSED]} passed"))
        if step_counts[_FAILED]:
            parts.append(colors.red(f"{step_counts[_FAILED]} failed"))
            steps.append(colors.red(f"{step_counts[_FAILED]} failed"))
        if step_counts[_PENDING]:
            parts.append(colors.yellow(f"{step_counts[_PENDING]} pending"))
            steps.append(colors.yellow(f"{step_counts[_PENDING]} pending"))
        if step_counts[_AMBIGUOUS]:
            parts.append(colors.yellow(f"{step_counts[_AMBIGUOUS]} ambiguous"))
            steps.append(colors.yellow(f"{step_counts[_AMBIGUOUS]} ambiguous"))
        if step_counts[_UNDEFINED]:
            parts.append(colors.yellow(f"{undefined_sc} undefined"))
            steps.append(colors.yellow(f"{step_counts[_UNDEFINED]} undefined"))
        elif undefined_sc:
            # scenarios without any steps count as undefined
            parts.append(colors.yellow(f"{undefined_sc} undefined"))
        if step_counts[_SKIPPED]:
            steps.append(colors.cyan(f"{step_counts[_SKIPPED]} skipped"))

        scenarios = [colors.green(f"{passed_sc} passed")] if passed_sc else []
        scenarios.extend(parts)

        elapsed = now() - storage.test_run_started().started_at

        self._println()
        if total_sc == 0:
            self._println("No scenarios")
        else:
            self._println(f"{total_sc} scenarios ({', '.join(scenarios)})")
        if total_st == 0:
            self._println("No steps")
        else:
            self._println(f"{total_st} steps ({', '.join(steps)})")
        self._println(_format_duration(elapsed))

        try:
            seed = int(os.environ.get(SEED_ENV, ""))
        except ValueError:
            seed = 0
        if seed:
            self._println()
            self._println("Randomized with seed: " + colors.yellow(seed))

        text = self.snippets()
        if text:
            self._println()
            self._println(
                colors.yellow(
                    "You can implement step definitions for undefined steps with these snippets:"
                )
            )
            self._println(colors.yellow(text))

    def snippets(self) -> str:
        """Return suggested step definitions for the undefined steps, or ''."""
        storage = self.storage
        undefined_results = storage.pickle_step_results_by_status(_UNDEFINED)
        if not undefined_results:
            return ""

        index = 0
        snips: list[_UndefinedSnippet] = []
        for result in undefined_results:
            pickle_step = storage.pickle_step(result.pickle_step_id)
            texts = [pickle_step.text]
            argument = pickle_step.argument
            if result.definition is not None:
                texts = result.definition.undefined
                argument = None
            for text in texts:
                expr = _snippet_expr(text)
                method = _snippet_method(text)
                if not method:
                    index += 1
                    method = f"StepDefinitioninition{index}"
                if not any(s.expr == expr for s in snips):
                    snips.append(_UndefinedSnippet(method, expr, argument))

        snips.sort(key=lambda s: s.method)

        out = ["\n"]
        for snip in snips:
            out.append(f"def {snip.method}({snip.args()}):\n    raise Pending\n\n")
        out.append("def initialize_scenario(ctx):\n")
        for snip in snips:
            out.append(f"    ctx.step(r'{snip.expr}', {snip.method})\n")
        return "".join(out).replace(" \n", "\n")


def base_formatter_func(suite: str, out: TextIO) -> Base:
    """Create a base formatter."""
    return Base(suite, out)