"""Test catalog: the validated, deduplicated set of tests to schedule."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from testshard.errors import InvalidIdentifierError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from testshard.sharding.durations import DurationModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestCatalog:
    """Ordered, duplicate-free test identifiers in discovery order."""

    __test__ = False

    identifiers: tuple[str, ...] = ()

    @classmethod
    def build(cls, raw_identifiers: Iterable[object]) -> TestCatalog:
        """Validate and deduplicate raw identifiers.

        Surrounding whitespace is trimmed; the first occurrence of a duplicate
        keeps its position.

        Raises:
            InvalidIdentifierError: If an entry is not a string or is blank.
        """
        seen: dict[str, None] = {}
        for position, raw in enumerate(raw_identifiers):
            if not isinstance(raw, str):
                msg = f"Test identifier at position {position} is not a string: {raw!r}"
                raise InvalidIdentifierError(msg)
            identifier = raw.strip()
            if not identifier:
                msg = f"Test identifier at position {position} is empty"
                raise InvalidIdentifierError(msg)
            if identifier in seen:
                logger.debug("Ignoring duplicate test %s", identifier)
                continue
            seen[identifier] = None
        return cls(identifiers=tuple(seen))

    def __iter__(self) -> Iterator[str]:
        return iter(self.identifiers)

    def __len__(self) -> int:
        return len(self.identifiers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.identifiers


def resolve_durations(catalog: TestCatalog, model: DurationModel) -> dict[str, float]:
    """Join the catalog with the duration model.

    Every catalog entry gets exactly one estimate; tests without history get
    ``model.fallback``.  History for tests that are not in the catalog is
    ignored.
    """
    resolved = {identifier: model.estimate_for(identifier) for identifier in catalog}

    missing = [identifier for identifier in catalog if not model.has_history(identifier)]
    for identifier in missing:
        logger.debug("No history for %s, estimating %.1f ms", identifier, model.fallback)

    known = set(catalog.identifiers)
    for identifier in model.estimates:
        if identifier not in known:
            logger.debug("Ignoring history for unknown test %s", identifier)

    logger.info(
        "Resolved durations for %d tests (%d without history)",
        len(resolved),
        len(missing),
    )
    return resolved
