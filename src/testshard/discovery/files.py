"""Test file discovery."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import TYPE_CHECKING

from testshard.errors import DiscoveryError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def _relative_pattern(root: Path, pattern: str) -> str:
    """Rewrite an absolute *pattern* relative to *root*.

    Raises:
        DiscoveryError: If an absolute pattern points outside *root*.
    """
    path = PurePath(pattern)
    if not path.is_absolute():
        return pattern
    try:
        relative = path.relative_to(root)
    except ValueError as e:
        msg = f"Glob pattern {pattern!r} is outside the working directory {root}"
        raise DiscoveryError(msg) from e
    logger.debug("Using glob pattern %s relative to %s", relative, root)
    return relative.as_posix()


def find_files(root: Path, glob: str, exclude_glob: str | None = None) -> list[Path]:
    """Find files under *root* matching *glob* but not *exclude_glob*.

    Args:
        root: Directory the patterns are relative to.
        glob: Include pattern (``**`` matches any number of directories).
            Absolute patterns must lie under *root*.
        exclude_glob: Optional pattern of files to leave out.

    Returns:
        Sorted list of unique matching file paths.

    Raises:
        DiscoveryError: If an absolute pattern is outside *root*.
    """
    files = {path for path in root.glob(_relative_pattern(root, glob)) if path.is_file()}
    if exclude_glob:
        excluded = files.intersection(root.glob(_relative_pattern(root, exclude_glob)))
        for path in sorted(excluded):
            logger.debug("Excluding test file %s", path)
        files -= excluded
    return sorted(files)
