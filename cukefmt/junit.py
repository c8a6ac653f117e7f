"""A formatter that renders the run as JUnit compatible XML."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TextIO

from .base import Base
from .results import StepResultStatus, now

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&#34;",
    "'": "&#39;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def _render(tag: str, attrs: list[tuple[str, object]], children: list, depth: int) -> str:
    pad = "  " * depth
    head = pad + "<" + tag + "".join(f' {k}="{_escape(str(v))}"' for k, v in attrs) + ">"
    if not children:
        return f"{head}</{tag}>"
    inner = "\n".join(_render(*child, depth + 1) for child in children)
    return f"{head}\n{inner}\n{pad}</{tag}>"


def _duration(start: datetime, end: datetime) -> str:
    micros = (end - start) // timedelta(microseconds=1)
    text = format(Decimal(micros).scaleb(-6), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass
class _JunitFailure:
    message: str
    type: str = ""

    def _node(self):
        attrs: list[tuple[str, object]] = [("message", self.message)]
        if self.type:
            attrs.append(("type", self.type))
        return ("failure", attrs, [])


@dataclass
class _JunitError:
    message: str
    type: str

    def _node(self):
        return ("error", [("message", self.message), ("type", self.type)], [])


@dataclass
class _JunitTestCase:
    name: str = ""
    status: str = ""
    time: str = ""
    failure: _JunitFailure | None = None
    errors: list[_JunitError] = field(default_factory=list)

    def _node(self):
        children = [self.failure._node()] if self.failure is not None else []
        children.extend(e._node() for e in self.errors)
        attrs = [("name", self.name), ("status", self.status), ("time", self.time)]
        return ("testcase", attrs, children)


@dataclass
class _JunitTestSuite:
    name: str = ""
    tests: int = 0
    skipped: int = 0
    failures: int = 0
    errors: int = 0
    time: str = ""
    test_cases: list[_JunitTestCase] = field(default_factory=list)

    def _node(self):
        attrs = [
            ("name", self.name),
            ("tests", self.tests),
            ("skipped", self.skipped),
            ("failures", self.failures),
            ("errors", self.errors),
            ("time", self.time),
        ]
        return ("testsuite", attrs, [tc._node() for tc in self.test_cases])


@dataclass
class JunitPackageSuite:
    """The root ``testsuites`` element of a JUnit report."""

    name: str = ""
    tests: int = 0
    skipped: int = 0
    failures: int = 0
    errors: int = 0
    time: str = ""
    test_suites: list[_JunitTestSuite] = field(default_factory=list)

    def to_xml(self) -> str:
        """Render the report as indented XML, without the XML declaration."""
        attrs = [
            ("name", self.name),
            ("tests", self.tests),
            ("skipped", self.skipped),
            ("failures", self.failures),
            ("errors", self.errors),
            ("time", self.time),
        ]
        return _render("testsuites", attrs, [ts._node() for ts in self.test_suites], 0)


class JUnit(Base):
    """Renders test results in JUnit format."""

    def summary(self) -> None:
        suite = self.build_package_suite()
        self.out.write(XML_HEADER)
        self.out.write(suite.to_xml())

    def build_package_suite(self) -> JunitPackageSuite:
        """Collect the stored results into a JUnit report structure."""
        storage = self.storage
        features = sorted(storage.features(), key=lambda f: f.feature.name)
        run_started = storage.test_run_started().started_at

        suite = JunitPackageSuite(name=self.suite_name, time=_duration(run_started, now()))

        for feature in features:
            pickles = sorted(storage.pickles(feature.uri), key=lambda p: int(p.id))
            ts = _JunitTestSuite(name=feature.feature.name)
            name_counts = Counter(p.name for p in pickles)
            outline_no: Counter[str] = Counter()

            first_started = run_started
            last_finished = run_started

            for idx, pickle in enumerate(pickles):
                pickle_result = storage.pickle_result(pickle.id)
                if idx == 0:
                    first_started = pickle_result.started_at

                last_finished = pickle_result.started_at
                if pickle.steps:
                    last_finished = storage.pickle_step_result(pickle.steps[-1].id).finished_at

                tc = _JunitTestCase(
                    name=pickle.name, time=_duration(pickle_result.started_at, last_finished)
                )
                if name_counts[pickle.name] > 1:
                    outline_no[pickle.name] += 1
                    tc.name += f" #{outline_no[pickle.name]}"

                ts.tests += 1
                suite.tests += 1

                for result in storage.pickle_step_results_by_pickle_id(pickle.id):
                    text = storage.pickle_step(result.pickle_step_id).text
                    status = result.status
                    if status is StepResultStatus.PASSED:
                        tc.status = str(status)
                    elif status is StepResultStatus.FAILED:
                        tc.status = str(status)
                        tc.failure = _JunitFailure(message=f"Step {text}: {result.err}")
                    elif status is StepResultStatus.AMBIGUOUS:
                        tc.status = str(status)
                        tc.errors.append(_JunitError(f"Step {text}", "ambiguous"))
                    elif status is StepResultStatus.SKIPPED:
                        tc.errors.append(_JunitError(f"Step {text}", "skipped"))
                    elif status is StepResultStatus.UNDEFINED:
                        tc.status = str(status)
                        tc.errors.append(_JunitError(f"Step {text}", "undefined"))
                    elif status is StepResultStatus.PENDING:
                        tc.status = str(status)
                        tc.errors.append(
                            _JunitError(f"Step {text}: TODO: write pending definition", "pending")
                        )

                if tc.status == str(StepResultStatus.FAILED):
                    ts.failures += 1
                    suite.failures += 1
                elif tc.status in (str(StepResultStatus.UNDEFINED), str(StepResultStatus.PENDING)):
                    ts.errors += 1
                    suite.errors += 1

                ts.test_cases.append(tc)

            ts.time = _duration(first_started, last_finished)
            suite.test_suites.append(ts)

        return suite


def junit_formatter_func(suite: str, out: TextIO) -> JUnit:
    """Create a JUnit formatter."""
    return JUnit(suite, out)