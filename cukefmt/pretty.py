"""A formatter that prints every feature with the status of each step."""

from __future__ import annotations

import re
from typing import TextIO

from . import colors
from .base import Base, definition_id
from .results import StepResultStatus

_OUTLINE_PLACEHOLDER = re.compile(r"<[^>]+>")

_redb = colors.bold(colors.red)
_blackb = colors.bold(colors.black)
_cyanb = colors.bold(colors.cyan)
_whiteb = colors.bold(colors.white)

_PENDING_NOTE = "TODO: write pending definition"


def _s(n: int) -> str:
    return " " * n


def _keyword_and_name(keyword: str, name: str) -> str:
    title = _whiteb(keyword + ":")
    if name:
        title += " " + name
    return title


def _line(path: str, location) -> str:
    """Render a ``# path:line`` reference, without repeating a line suffix."""
    suffix = f":{location.line}"
    if path.endswith(suffix):
        path = path[: -len(suffix)]
    return " " + _blackb(f"# {path}:{location.line}")


def _widen(longest: list[int], cells, clrs) -> None:
    for i, cell in enumerate(cells):
        lengths = [len(c(cell.value)) for c in clrs]
        lengths.append(len(cell.value))
        longest[i] = max(longest[i], *lengths)


def _max_col_lengths(table, *clrs) -> list[int]:
    if table is None:
        return []
    longest = [0] * len(table.rows[0].cells)
    for row in table.rows:
        _widen(longest, row.cells, clrs)
    return longest


def _longest_example_row(examples, *clrs) -> list[int]:
    if examples is None:
        return []
    longest = [0] * len(examples.table_header.cells)
    _widen(longest, examples.table_header.cells, clrs)
    for row in examples.table_body:
        _widen(longest, row.cells, clrs)
    return longest


def _is_first_scenario_in_rule(rule, scenario) -> bool:
    if rule is None or scenario is None:
        return False
    first = next((c.scenario for c in rule.children if c.scenario is not None), None)
    return first is not None and first.id == scenario.id


def _is_first_pickle_and_no_rule(feature, pickle, rule) -> bool:
    if rule is not None:
        return False
    return feature.pickles[0].id == pickle.id


class Pretty(Base):
    """Prints features, scenarios and steps in a readable, coloured layout."""

    def __init__(self, suite: str, out: TextIO) -> None:
        super().__init__(suite, out)
        self._first_feature = True

    def test_run_started(self) -> None:
        super().test_run_started()
        with self.lock:
            self._first_feature = True

    def feature(self, document, path, content) -> None:
        with self.lock:
            if not self._first_feature:
                self._println()
            self._first_feature = False
        super().feature(document, path, content)
        with self.lock:
            self._print_feature(document.feature)

    def pickle(self, pickle) -> None:
        super().pickle(pickle)
        with self.lock:
            if not pickle.steps:
                self._print_undefined_pickle(pickle)

    def passed(self, pickle, step, definition) -> None:
        super().passed(pickle, step, definition)
        with self.lock:
            self._print_step(pickle, step)

    def skipped(self, pickle, step, definition) -> None:
        super().skipped(pickle, step, definition)
        with self.lock:
            self._print_step(pickle, step)

    def undefined(self, pickle, step, definition) -> None:
        super().undefined(pickle, step, definition)
        with self.lock:
            self._print_step(pickle, step)

    def failed(self, pickle, step, definition, err) -> None:
        super().failed(pickle, step, definition, err)
        with self.lock:
            self._print_step(pickle, step)

    def ambiguous(self, pickle, step, definition, err) -> None:
        super().ambiguous(pickle, step, definition, err)
        with self.lock:
            self._print_step(pickle, step)

    def pending(self, pickle, step, definition) -> None:
        super().pending(pickle, step, definition)
        with self.lock:
            self._print_step(pickle, step)

    def summary(self) -> None:
        """List the failed steps, then print the totals."""
        storage = self.storage
        failed = sorted(
            storage.pickle_step_results_by_status(StepResultStatus.FAILED),
            key=lambda r: int(r.pickle_step_id),
        )
        if failed:
            self._println("\n--- " + colors.red("Failed steps:") + "\n")
            for result in failed:
                pickle = storage.pickle(result.pickle_id)
                pickle_step = storage.pickle_step(result.pickle_step_id)
                feature = storage.feature(pickle.uri)

                scenario = feature.find_scenario(pickle.ast_node_ids[0])
                scenario_desc = f"{scenario.keyword}: {pickle.name}"

                ast_step = feature.find_step(pickle_step.ast_node_ids[0])
                step_desc = ast_step.keyword.strip() + " " + pickle_step.text

                self._println(
                    _s(self.indent) + colors.red(scenario_desc) + _line(feature.uri, scenario.location)
                )
                self._println(
                    _s(self.indent * 2) + colors.red(step_desc) + _line(feature.uri, ast_step.location)
                )
                self._println(
                    _s(self.indent * 3) + colors.red("Error: ") + _redb(str(result.err)) + "\n"
                )

        super().summary()

    def _print_feature(self, feature) -> None:
        self._println(_keyword_and_name(feature.keyword, feature.name))
        if feature.description.strip():
            for line in feature.description.split("\n"):
                self._println(_s(self.indent) + line.strip())

    def _length_pickle_step(self, keyword: str, text: str) -> int:
        return self.indent * 2 + len(keyword.strip() + " " + text)

    def _length_pickle(self, keyword: str, name: str) -> int:
        return self.indent + len(keyword.strip() + ": " + name)

    def _longest_step(self, steps, pickle_length: int) -> int:
        return max(
            [pickle_length] + [self._length_pickle_step(st.keyword, st.text) for st in steps]
        )

    def _scenario_lengths(self, pickle) -> tuple[int, int]:
        feature = self.storage.feature(pickle.uri)
        scenario = feature.find_scenario(pickle.ast_node_ids[0])
        background = feature.find_background(pickle.ast_node_ids[0])

        header_length = self._length_pickle(scenario.keyword, scenario.name)
        max_length = self._longest_step(scenario.steps, header_length)
        if background is not None:
            max_length = self._longest_step(background.steps, max_length)
        return header_length, max_length

    def _print_scenario_header(self, pickle, scenario, space_filling: int) -> None:
        feature = self.storage.feature(pickle.uri)
        text = _s(self.indent) + _keyword_and_name(scenario.keyword, scenario.name)
        text += _s(space_filling) + _line(feature.uri, scenario.location)
        self._println("\n" + text)

    def _print_undefined_pickle(self, pickle) -> None:
        feature = self.storage.feature(pickle.uri)
        scenario = feature.find_scenario(pickle.ast_node_ids[0])
        background = feature.find_background(pickle.ast_node_ids[0])
        header_length, max_length = self._scenario_lengths(pickle)

        if background is not None:
            self._println(
                "\n" + _s(self.indent) + _keyword_and_name(background.keyword, background.name)
            )
            for step in background.steps:
                self._println(
                    _s(self.indent * 2)
                    + colors.cyan(step.keyword.strip())
                    + " "
                    + colors.cyan(step.text)
                )

        # scenario headers and examples are printed only once
        if scenario.examples:
            table, row = feature.find_example(pickle.ast_node_ids[1])
            first_row = table.table_body[0].id == row.id
            first_table = scenario.examples[0].location.line == table.location.line
            if not (first_table and first_row):
                return

        self._print_scenario_header(pickle, scenario, max_length - header_length)

        for examples in scenario.examples:
            widths = _longest_example_row(examples, colors.cyan, colors.cyan)
            self._println()
            self._println(_s(self.indent * 2) + _keyword_and_name(examples.keyword, examples.name))
            self._print_table_header(examples.table_header, widths)
            for row in examples.table_body:
                self._print_table_row(row, widths, colors.cyan)

    def _print_outline_example(self, pickle, step, background_steps: int) -> None:
        storage = self.storage
        error_msg = ""
        clr = colors.green

        feature = storage.feature(pickle.uri)
        scenario = feature.find_scenario(pickle.ast_node_ids[0])
        header_length, max_length = self._scenario_lengths(pickle)

        table, example_row = feature.find_example(pickle.ast_node_ids[1])
        print_example_header = table.table_body[0].id == example_row.id
        first_table = scenario.examples[0].location.line == table.location.line

        results = storage.pickle_step_results_by_pickle_id_until_step(pickle.id, step.id)

        first_executed = len(results) == background_steps + 1
        if first_table and print_example_header and first_executed:
            self._print_scenario_header(pickle, scenario, max_length - header_length)

        if not table.table_body:
            return
        if len(results) != len(pickle.steps):
            # examples are printed once all the steps have finished
            return

        for result in results:
            status = result.status
            if status in (StepResultStatus.FAILED, StepResultStatus.AMBIGUOUS):
                error_msg = str(result.err) if result.err is not None else ""
                clr = status.color()
            elif status in (StepResultStatus.UNDEFINED, StepResultStatus.PENDING):
                clr = status.color()

            if not (first_table and print_example_header):
                continue

            pickle_step = storage.pickle_step(result.pickle_step_id)
            ast_step = feature.find_step(pickle_step.ast_node_ids[0])

            text = ""
            if result.definition is not None:
                pos = 0
                for match in _OUTLINE_PLACEHOLDER.finditer(ast_step.text):
                    text += colors.cyan(ast_step.text[pos : match.start()])
                    text += _cyanb(match.group(0))
                    pos = match.end()
                text += colors.cyan(ast_step.text[pos:])

                step_length = self._length_pickle_step(ast_step.keyword, ast_step.text)
                text += _s(max_length - step_length)
                text += " " + _blackb("# " + definition_id(result.definition))

            self._println(
                _s(self.indent * 2) + colors.cyan(ast_step.keyword.strip()) + " " + text
            )

            if pickle_step.argument is not None:
                if pickle_step.argument.data_table is not None:
                    self._print_table(pickle_step.argument.data_table, colors.cyan)
                if ast_step.doc_string is not None:
                    self._print_doc_string(ast_step.doc_string)

        widths = _longest_example_row(table, clr, colors.cyan)

        if print_example_header:
            self._println()
            self._println(_s(self.indent * 2) + _keyword_and_name(table.keyword, table.name))
            self._print_table_header(table.table_header, widths)

        self._print_table_row(example_row, widths, clr)

        if error_msg:
            self._println(_s(self.indent * 4) + _redb(error_msg))

    def _print_table_row(self, row, widths: list[int], clr) -> None:
        cells = []
        for i, cell in enumerate(row.cells):
            value = clr(cell.value)
            cells.append(value + _s(widths[i] - len(value)))
        self._println(_s(self.indent * 3) + "| " + " | ".join(cells) + " |")

    def _print_table_header(self, row, widths: list[int]) -> None:
        self._print_table_row(row, widths, colors.cyan)

    def _print_step(self, pickle, pickle_step) -> None:
        storage = self.storage
        feature = storage.feature(pickle.uri)
        scenario_id = pickle.ast_node_ids[0]
        background = feature.find_background(scenario_id)
        scenario = feature.find_scenario(scenario_id)
        rule = feature.find_rule(scenario_id)
        ast_step = feature.find_step(pickle_step.ast_node_ids[0])

        is_background_step = False
        first_background_step = False
        background_steps = 0
        if background is not None:
            background_steps = len(background.steps)
            for idx, step in enumerate(background.steps):
                if step.id == pickle_step.ast_node_ids[0]:
                    is_background_step = True
                    first_background_step = idx == 0
                    break

        first_pickle = _is_first_pickle_and_no_rule(
            feature, pickle, rule
        ) or _is_first_scenario_in_rule(rule, scenario)

        if is_background_step and not first_pickle:
            return

        if is_background_step and first_background_step:
            self._println(
                "\n" + _s(self.indent) + _keyword_and_name(background.keyword, background.name)
            )

        if not is_background_step and scenario.examples:
            self._print_outline_example(pickle, pickle_step, background_steps)
            return

        header_length, max_length = self._scenario_lengths(pickle)
        step_length = self._length_pickle_step(ast_step.keyword, pickle_step.text)

        first_executed = bool(scenario.steps) and scenario.steps[0].id == pickle_step.ast_node_ids[0]
        if not is_background_step and first_executed:
            self._print_scenario_header(pickle, scenario, max_length - header_length)

        result = storage.pickle_step_result(pickle_step.id)
        color = result.status.color()
        text = _s(self.indent * 2) + color(ast_step.keyword.strip()) + " " + color(pickle_step.text)
        if result.definition is not None:
            text += _s(max_length - step_length + 1)
            text += _blackb("# " + definition_id(result.definition))
        self._println(text)

        if pickle_step.argument is not None:
            if pickle_step.argument.data_table is not None:
                self._print_table(pickle_step.argument.data_table, colors.cyan)
            if ast_step.doc_string is not None:
                self._print_doc_string(ast_step.doc_string)

        if result.err is not None:
            self._println(_s(self.indent * 2) + _redb(str(result.err)))

        if result.status is StepResultStatus.PENDING:
            self._println(_s(self.indent * 3) + colors.yellow(_PENDING_NOTE))

    def _print_doc_string(self, doc_string) -> None:
        content_type = " " + colors.cyan(doc_string.media_type) if doc_string.media_type else ""
        pad = _s(self.indent * 3)
        self._println(pad + colors.cyan(doc_string.delimiter) + content_type)
        for line in doc_string.content.split("\n"):
            self._println(pad + colors.cyan(line))
        self._println(pad + colors.cyan(doc_string.delimiter))

    def _print_table(self, table, clr) -> None:
        widths = _max_col_lengths(table, clr)
        for row in table.rows:
            cols = []
            for i, cell in enumerate(row.cells):
                value = clr(cell.value)
                cols.append(value + _s(widths[i] - len(value)))
            self._println(_s(self.indent * 3) + "| " + " | ".join(cols) + " |")


def pretty_formatter_func(suite: str, out: TextIO) -> Pretty:
    """Create a pretty formatter."""
    return Pretty(suite, out)