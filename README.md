# cukefmt

Formatters that report the results of a Gherkin (Cucumber-style) test run.
A test runner tells a formatter what happens: the run starting, a feature
being read, a scenario (pickle) starting, and each step passing, failing,
being skipped, undefined, pending or ambiguous. The formatter reads the
details it needs from a `Storage` and writes a report to a text stream.

The package uses only the standard library.

## Formats

| module              | factory                   | output                                     |
|---------------------|---------------------------|--------------------------------------------|
| `cukefmt.base`      | `base_formatter_func`     | only the summary                           |
| `cukefmt.progress`  | `progress_formatter_func` | one character per step, then a summary     |
| `cukefmt.pretty`    | `pretty_formatter_func`   | every feature with the status of each step |
| `cukefmt.junit`     | `junit_formatter_func`    | JUnit-compatible XML                       |
| `cukefmt.cucumber`  | `cucumber_formatter_func` | Cucumber JSON                              |
| `cukefmt.events`    | `events_formatter_func`   | a stream of JSON events, one per line      |

Each factory takes `(suite, out)`: a suite name and a writable text stream.
The formatter classes are `Base`, `Progress`, `Pretty`, `JUnit`, `Cuke` and
`Events`; all of them derive from `Base` and share its event methods:
`set_storage`, `test_run_started`, `feature`, `pickle`, `defined`, `passed`,
`skipped`, `undefined`, `failed`, `pending`, `ambiguous` and `summary`.

The progress, pretty and base summaries write ANSI colour codes
(`cukefmt.colors`); there is no switch to turn them off.

## The pieces

- `cukefmt.messages` holds the Gherkin document and pickle data classes
  (`GherkinDocument`, `GherkinFeature`, `Scenario`, `Background`, `Rule`,
  `Examples`, `Step`, `Pickle`, `PickleStep`, `PickleTable`,
  `PickleDocString`, ...).
- `cukefmt.feature.Feature` wraps a document, its pickles and its raw
  content. `find_scenario`, `find_background`, `find_rule`, `find_example`
  and `find_step` look up AST nodes by id.
- `cukefmt.results` defines `StepResultStatus` and the result records
  `TestRunStarted`, `PickleResult`, `PickleStepResult` and
  `PickleAttachment`. `new_step_result(...)` builds a step result stamped
  with `now()`.
- `cukefmt.storage.Storage` keeps features, pickles and results in memory.
  Single-item lookups raise `KeyError` when nothing is stored under the key.
- `cukefmt.stepdef.StepDefinition` calls a step handler. `run(ctx)` converts
  the matched arguments to the handler's annotated parameter types (`str`,
  `bytes`, `int`, `float`, `Int64`, `Int32`, `Int16`, `Int8`, `Float32`,
  `PickleDocString`, `PickleTable`; unannotated parameters get strings) and
  passes a `Context` first if the handler asks for one. Conversion problems
  raise `UnmatchedStepArgumentNumber`, `CannotConvert` or
  `UnsupportedParameterType`, all subclasses of `StepDefinitionError`.
- `cukefmt.pathline.extract_feature_path_line` splits `path:line` into the
  path and the line (-1 if there is none); `select_pickles_by_line` keeps
  the pickles of a feature whose scenario starts on that line.
- `cukefmt.base.definition_id` describes a step definition's handler as
  `file:line -> module.name`.

Several formatters order pickles and steps by their ids as integers, so ids
should be decimal strings such as `"1"`, `"2"`, ...

## Example

```python
import sys

from cukefmt.progress import progress_formatter_func
from cukefmt.results import (
    PickleResult, StepResultStatus, TestRunStarted, new_step_result, now,
)
from cukefmt.storage import Storage

storage = Storage()
storage.set_test_run_started(TestRunStarted(now()))
storage.add_feature(feature)          # a cukefmt.feature.Feature you built

fmt = progress_formatter_func("my-suite", sys.stdout)
fmt.set_storage(storage)
fmt.test_run_started()
for pickle in feature.pickles:
    storage.add_pickle_result(PickleResult(pickle.id, now()))
    fmt.pickle(pickle)
    for step in pickle.steps:
        storage.add_pickle_step_result(
            new_step_result(StepResultStatus.PASSED, pickle.id, step.id, None, None, None)
        )
        fmt.passed(pickle, step, None)
fmt.summary()
```

When steps are undefined, the summary ends with suggested Python step
definitions for them (`Base.snippets()`).

## Deferring output

`cukefmt.flushwrap.wrap_on_flush(formatter)` returns an `OnFlushFormatter`
that records every event call without passing it on. `flush()` replays the
calls recorded so far, in order, on the wrapped formatter. This keeps each
scenario's output together when scenarios run concurrently.

## Environment

- `CUKEFMT_SEED`: if set to a non-zero integer, the summary prints it as the
  randomisation seed.
- `CUKEFMT_TESTED_PACKAGE`: this prefix is removed from the handler names
  that `definition_id` reports.

## What the package does not do

- It does not read or parse `.feature` files: the caller builds the
  `messages` objects and `Feature`s.
- It does not run tests or match step text against definitions; it only
  calls a handler through `StepDefinition.run` and reports results it is
  given.
- There is no registry of formats by name and no formatter that fans events
  out to several formatters at once; pick a factory from the table above.
- There is no command-line program.

## Running the tests

```
pip install -e ".[test]"
pytest
```