"""Test class discovery from a source tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testshard.discovery.files import find_files
from testshard.discovery.java import JavaClassInfo, extract_test_class, read_test_class
from testshard.errors import DiscoveryError
from testshard.utils.concurrency import DEFAULT_MAX_WORKERS, gather_bounded

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Outcome of scanning test source files."""

    identifiers: list[str] = field(default_factory=list)
    """Fully-qualified names of runnable test classes, in file order."""

    skipped: list[str] = field(default_factory=list)
    """Interfaces, abstract classes and disabled classes that were left out."""

    failures: list[DiscoveryError] = field(default_factory=list)
    """Files that could not be turned into a test class."""

    @property
    def success(self) -> bool:
        return not self.failures


def _load(path: Path) -> JavaClassInfo | DiscoveryError:
    try:
        return read_test_class(path)
    except DiscoveryError as e:
        return e


async def discover_test_classes(
    paths: Sequence[Path],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> DiscoveryResult:
    """Parse *paths* concurrently and collect their test classes.

    Parse failures are collected rather than raised so that one broken
    file does not hide the rest of the suite.
    """
    result = DiscoveryResult()
    outcomes = await gather_bounded(_load, paths, max_workers=max_workers)
    for outcome in outcomes:
        if isinstance(outcome, DiscoveryError):
            logger.error("%s", outcome)
            result.failures.append(outcome)
        elif outcome.is_runnable:
            result.identifiers.append(outcome.qualified_name)
        elif outcome.is_interface:
            logger.info("Skipping interface %s", outcome.qualified_name)
            result.skipped.append(outcome.qualified_name)
        elif outcome.is_abstract:
            logger.info("Skipping abstract class %s", outcome.qualified_name)
            result.skipped.append(outcome.qualified_name)
        else:
            logger.info("Skipping disabled test class %s", outcome.qualified_name)
            result.skipped.append(outcome.qualified_name)
    return result


__all__ = [
    "DiscoveryResult",
    "JavaClassInfo",
    "discover_test_classes",
    "extract_test_class",
    "find_files",
    "read_test_class",
]
