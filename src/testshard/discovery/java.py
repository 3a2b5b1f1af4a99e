"""Java test class extraction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from testshard.errors import DiscoveryError
from testshard.parsing.treesitter import (
    collect_error_ranges,
    is_java_source,
    node_text,
    parse_java,
)

if TYPE_CHECKING:
    from pathlib import Path

    import tree_sitter

logger = logging.getLogger(__name__)

_TYPE_DECLARATIONS = frozenset({"class_declaration", "interface_declaration"})
_NAME_NODES = frozenset({"identifier", "scoped_identifier"})
_ANNOTATION_NODES = frozenset({"marker_annotation", "annotation"})

# A class counts as disabled only when the annotation resolves to JUnit's.
SKIP_TEST_IMPORTS = frozenset({"org.junit.jupiter.api.Disabled", "org.junit.Ignore"})
SKIP_TEST_ANNOTATIONS = frozenset({"Disabled", "Ignore"})


@dataclass(frozen=True)
class JavaClassInfo:
    """Top-level type declared in a Java test source file."""

    package: str
    name: str
    is_interface: bool = False
    is_abstract: bool = False
    is_disabled: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name

    @property
    def is_runnable(self) -> bool:
        """True for a concrete, enabled test class."""
        return not (self.is_interface or self.is_abstract or self.is_disabled)


def extract_test_class(source: bytes, *, origin: str = "<source>") -> JavaClassInfo:
    """Parse Java *source* and describe its first top-level class or interface.

    Raises:
        DiscoveryError: If the source has syntax errors or declares no class
            or interface.
    """
    root = parse_java(source).root_node
    if root.has_error:
        lines = ", ".join(f"{start}-{end}" for start, end in collect_error_ranges(root))
        msg = f"Failed to parse test class {origin} (syntax errors at lines {lines})"
        raise DiscoveryError(msg)

    package = ""
    imports: set[str] = set()
    declaration: tree_sitter.Node | None = None
    for child in root.children:
        if child.type == "package_declaration":
            package = _declared_name(child)
        elif child.type == "import_declaration":
            imports.add(_declared_name(child))
        elif child.type in _TYPE_DECLARATIONS and declaration is None:
            declaration = child

    if declaration is None:
        msg = f"No class or interface declared in {origin}"
        raise DiscoveryError(msg)

    modifiers = next((c for c in declaration.children if c.type == "modifiers"), None)
    keywords = {c.type for c in modifiers.children} if modifiers is not None else set()
    annotations = _annotation_names(modifiers)

    return JavaClassInfo(
        package=package,
        name=node_text(declaration.child_by_field_name("name")),
        is_interface=declaration.type == "interface_declaration",
        is_abstract="abstract" in keywords,
        is_disabled=_is_disabled(annotations, imports),
    )


def read_test_class(path: Path) -> JavaClassInfo:
    """Read *path* and extract its test class.

    Raises:
        DiscoveryError: If the file is not a Java source or cannot be read
            or parsed.
    """
    if not is_java_source(path):
        msg = f"Not a Java source file: {path}"
        raise DiscoveryError(msg)
    try:
        source = path.read_bytes()
    except OSError as e:
        msg = f"Failed to read test class {path}: {e}"
        raise DiscoveryError(msg) from e
    return extract_test_class(source, origin=str(path))


def _declared_name(node: tree_sitter.Node) -> str:
    return next((node_text(c) for c in node.children if c.type in _NAME_NODES), "")


def _annotation_names(modifiers: tree_sitter.Node | None) -> list[str]:
    if modifiers is None:
        return []
    return [
        node_text(child.child_by_field_name("name"))
        for child in modifiers.children
        if child.type in _ANNOTATION_NODES
    ]


def _is_disabled(annotations: list[str], imports: set[str]) -> bool:
    for annotation in annotations:
        if annotation in SKIP_TEST_IMPORTS:
            return True
        if annotation in SKIP_TEST_ANNOTATIONS and imports & SKIP_TEST_IMPORTS:
            return True
    return False
