"""Feature path handling: line suffixes and selection by line."""

from __future__ import annotations

import re

from .feature import Feature

_PATH_LINE = re.compile(r":([0-9]+)$")
_MAX_LINE = (1 << 63) - 1


def extract_feature_path_line(p: str) -> tuple[str, int]:
    """Split ``path:line`` into the path and the line, or -1 if there is none."""
    match = _PATH_LINE.search(p)
    if match:
        line = int(match.group(1))
        if line <= _MAX_LINE:
            return p[: p.rindex(":")], line
    return p, -1


def select_pickles_by_line(feature: Feature, line: int) -> Feature:
    """Keep only the pickles whose scenario starts on *line*.

    With a line of -1 every pickle is kept. Otherwise ``:line`` is appended
    to the feature's and the kept pickles' URIs.
    """
    suffix = f":{line}"
    if line != -1:
        feature.uri += suffix

    kept = []
    for pickle in feature.pickles:
        scenario = feature.find_scenario(pickle.ast_node_ids[0])
        if line == -1 or scenario.location.line == line:
            if line != -1:
                pickle.uri += suffix
            kept.append(pickle)
    feature.pickles = kept
    return feature