"""JUnit XML report reader.

Each ``<testsuite>`` element becomes one duration sample keyed by the
suite name (the fully-qualified test class).  Reports may have a single
``<testsuite>`` root or a ``<testsuites>`` wrapper.
"""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree
from defusedxml.ElementTree import ParseError as DefusedParseError

from testshard.errors import MalformedReportError
from testshard.sharding.durations import DurationSample

if TYPE_CHECKING:
    from pathlib import Path
    from xml.etree.ElementTree import Element as XmlElement

logger = logging.getLogger(__name__)

_MS_PER_SECOND = 1000.0

# Commas are only accepted as thousands separators ("1,234.5"); "1,5" is ambiguous.
_GROUPED_NUMBER_RE = re.compile(r"^\d{1,3}(,\d{3})+(\.\d+)?$")


def _local_tag(elem: XmlElement) -> str:
    return elem.tag.split("}")[-1] if "}" in elem.tag else elem.tag


def _parse_seconds(value: str, *, what: str, source: Path) -> float:
    """Parse a JUnit ``time`` attribute (seconds) into milliseconds."""
    text = value.strip()
    if "," in text:
        if not _GROUPED_NUMBER_RE.match(text):
            msg = f"{source}: time of {what} has an ambiguous comma: {value!r}"
            raise MalformedReportError(msg)
        text = text.replace(",", "")
    try:
        seconds = float(text)
    except ValueError as e:
        msg = f"{source}: time of {what} is not numeric: {value!r}"
        raise MalformedReportError(msg) from e
    if not math.isfinite(seconds) or seconds < 0:
        msg = f"{source}: time of {what} must be finite and >= 0, got {value!r}"
        raise MalformedReportError(msg)
    return seconds * _MS_PER_SECOND


def _suite_duration_ms(suite: XmlElement, name: str, source: Path) -> float:
    time_attr = suite.get("time")
    if time_attr is not None and time_attr.strip():
        return _parse_seconds(time_attr, what=f"suite {name}", source=source)
    # Some reporters only record per-testcase times.
    total = 0.0
    for case in suite:
        if _local_tag(case) != "testcase":
            continue
        case_time = case.get("time")
        if case_time is not None and case_time.strip():
            total += _parse_seconds(
                case_time, what=f"testcase {case.get('name', '?')} in {name}", source=source
            )
    return total


def read_junit_report(path: Path) -> list[DurationSample]:
    """Read one JUnit XML report into duration samples.

    Raises:
        MalformedReportError: If the file is unreadable or not valid XML, a
            suite has no name, or a time is negative, non-numeric or not finite.
    """
    try:
        tree = ElementTree.parse(path)
    except (DefusedParseError, DefusedXmlException, OSError) as e:
        msg = f"Failed to read JUnit report {path}: {e}"
        raise MalformedReportError(msg) from e

    root = tree.getroot()
    if _local_tag(root) == "testsuite":
        suites = [root]
    else:
        suites = [elem for elem in root.iter() if _local_tag(elem) == "testsuite"]

    samples: list[DurationSample] = []
    for suite in suites:
        name = (suite.get("name") or "").strip()
        if not name:
            msg = f"{path}: <testsuite> without a name attribute"
            raise MalformedReportError(msg)
        duration_ms = _suite_duration_ms(suite, name, path)
        samples.append(DurationSample(identifier=name, duration_ms=duration_ms, source=str(path)))

    if not samples:
        logger.warning("JUnit report %s contains no test suites", path)
    return samples
