"""Tree-sitter access for Java test sources."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import tree_sitter_language_pack as tslp

from testshard.errors import DiscoveryError

if TYPE_CHECKING:
    import tree_sitter

logger = logging.getLogger(__name__)

JAVA_LANGUAGE = "java"
JAVA_SUFFIX = ".java"

# Parsers are not safe to share between threads; keep one per worker thread.
_local = threading.local()


def is_java_source(file_path: str | Path) -> bool:
    return Path(file_path).suffix.lower() == JAVA_SUFFIX


def get_java_parser() -> tree_sitter.Parser:
    """Return this thread's Java parser, creating it on first use.

    Raises:
        DiscoveryError: If the grammar cannot be loaded.
    """
    parser: tree_sitter.Parser | None = getattr(_local, "parser", None)
    if parser is None:
        try:
            parser = tslp.get_parser(JAVA_LANGUAGE)
        except Exception as e:
            msg = f"Failed to load the tree-sitter {JAVA_LANGUAGE} grammar: {e}"
            raise DiscoveryError(msg) from e
        logger.debug("Loaded tree-sitter %s parser", JAVA_LANGUAGE)
        _local.parser = parser
    return parser


def parse_java(source: bytes) -> tree_sitter.Tree:
    return get_java_parser().parse(source)


def collect_error_ranges(root: tree_sitter.Node) -> list[tuple[int, int]]:
    """Collect line ranges of parse error nodes."""
    errors: list[tuple[int, int]] = []
    _walk_errors(root, errors)
    return errors


def _walk_errors(node: tree_sitter.Node, errors: list[tuple[int, int]]) -> None:
    if node.is_error or node.is_missing:
        errors.append((node.start_point.row + 1, node.end_point.row + 1))
    for child in node.children:
        _walk_errors(child, errors)


def node_text(node: tree_sitter.Node | None) -> str:
    """Decode node text from bytes, returning empty string for None."""
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace") if node.text else ""
