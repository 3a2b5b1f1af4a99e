"""Tests for Java test class discovery."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from testshard.discovery import discover_test_classes
from testshard.discovery.java import JavaClassInfo, extract_test_class, read_test_class
from testshard.errors import DiscoveryError
from testshard.parsing.treesitter import get_java_parser, is_java_source

if TYPE_CHECKING:
    from pathlib import Path

PLAIN_TEST = b"""\
package com.example.service;

import org.junit.jupiter.api.Test;

public class OrderServiceTest {
    @Test
    void placesOrder() {}
}
"""

ABSTRACT_TEST = b"""\
package com.example;

public abstract class AbstractDatabaseTest {
    protected void reset() {}
}
"""

INTERFACE_TEST = b"""\
package com.example;

public interface ContractTest {
    void verify();
}
"""

DISABLED_TEST = b"""\
package com.example;

import org.junit.jupiter.api.Disabled;
import org.junit.jupiter.api.Test;

@Disabled("flaky on CI")
public class FlakyTest {
    @Test
    void sometimesFails() {}
}
"""

IGNORED_TEST = b"""\
package com.example;

import org.junit.Ignore;

@Ignore
public class LegacyTest {}
"""

QUALIFIED_ANNOTATION_TEST = b"""\
package com.example;

@org.junit.jupiter.api.Disabled
public class QualifiedTest {}
"""

FOREIGN_DISABLED_TEST = b"""\
package com.example;

import com.example.annotations.Disabled;

@Disabled
public class NotReallyDisabledTest {}
"""

BROKEN_TEST = b"""\
package com.example;

public class BrokenTest {
    void missingBrace() {
"""


def _write(root: Path, relative: str, content: bytes) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


# ── extract_test_class ────────────────────────────────────────────────


class TestExtractTestClass:
    def test_plain_class(self) -> None:
        info = extract_test_class(PLAIN_TEST)
        assert info == JavaClassInfo(package="com.example.service", name="OrderServiceTest")
        assert info.qualified_name == "com.example.service.OrderServiceTest"
        assert info.is_runnable

    def test_default_package(self) -> None:
        info = extract_test_class(b"public class BareTest {}\n")
        assert info.package == ""
        assert info.qualified_name == "BareTest"

    def test_abstract_class(self) -> None:
        info = extract_test_class(ABSTRACT_TEST)
        assert info.is_abstract
        assert not info.is_runnable

    def test_interface(self) -> None:
        info = extract_test_class(INTERFACE_TEST)
        assert info.is_interface
        assert info.name == "ContractTest"

    def test_disabled_with_jupiter_import(self) -> None:
        assert extract_test_class(DISABLED_TEST).is_disabled

    def test_ignored_with_junit4_import(self) -> None:
        assert extract_test_class(IGNORED_TEST).is_disabled

    def test_fully_qualified_annotation(self) -> None:
        assert extract_test_class(QUALIFIED_ANNOTATION_TEST).is_disabled

    def test_annotation_from_other_package_is_ignored(self) -> None:
        assert not extract_test_class(FOREIGN_DISABLED_TEST).is_disabled

    def test_syntax_error(self) -> None:
        with pytest.raises(DiscoveryError, match="BrokenTest.java"):
            extract_test_class(BROKEN_TEST, origin="BrokenTest.java")

    def test_no_class(self) -> None:
        with pytest.raises(DiscoveryError, match="No class or interface"):
            extract_test_class(b"package com.example;\n\nenum Color { RED, GREEN }\n")


class TestReadTestClass:
    def test_reads_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "src/test/java/OrderServiceTest.java", PLAIN_TEST)
        assert read_test_class(path).name == "OrderServiceTest"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DiscoveryError, match="Failed to read"):
            read_test_class(tmp_path / "GoneTest.java")

    def test_non_java_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "notes.txt", b"public class Nope {}")
        with pytest.raises(DiscoveryError, match="Not a Java source"):
            read_test_class(path)


class TestTreeSitterHelpers:
    def test_is_java_source(self) -> None:
        assert is_java_source("src/FooTest.java")
        assert is_java_source("src/FooTest.JAVA")
        assert not is_java_source("src/foo_test.py")

    def test_parser_is_cached(self) -> None:
        assert get_java_parser() is get_java_parser()

    def test_grammar_failure_becomes_discovery_error(self) -> None:
        with (
            patch("testshard.parsing.treesitter._local", threading.local()),
            patch(
                "testshard.parsing.treesitter.tslp.get_parser",
                side_effect=RuntimeError("download failed"),
            ),
            pytest.raises(DiscoveryError, match="download failed"),
        ):
            extract_test_class(PLAIN_TEST)


# ── discover_test_classes ─────────────────────────────────────────────


class TestDiscoverTestClasses:
    async def test_collects_runnable_and_skipped(self, tmp_path: Path) -> None:
        paths = [
            _write(tmp_path, "a/OrderServiceTest.java", PLAIN_TEST),
            _write(tmp_path, "b/AbstractDatabaseTest.java", ABSTRACT_TEST),
            _write(tmp_path, "c/ContractTest.java", INTERFACE_TEST),
            _write(tmp_path, "d/FlakyTest.java", DISABLED_TEST),
        ]

        result = await discover_test_classes(paths, max_workers=2)

        assert result.identifiers == ["com.example.service.OrderServiceTest"]
        assert result.skipped == [
            "com.example.AbstractDatabaseTest",
            "com.example.ContractTest",
            "com.example.FlakyTest",
        ]
        assert result.success

    async def test_collects_failures_without_stopping(self, tmp_path: Path) -> None:
        paths = [
            _write(tmp_path, "BrokenTest.java", BROKEN_TEST),
            _write(tmp_path, "OrderServiceTest.java", PLAIN_TEST),
        ]

        result = await discover_test_classes(paths)

        assert result.identifiers == ["com.example.service.OrderServiceTest"]
        assert len(result.failures) == 1
        assert not result.success

    async def test_no_paths(self) -> None:
        result = await discover_test_classes([])
        assert result.identifiers == []
        assert result.success

    async def test_grammar_failure_is_reported_per_file(self, tmp_path: Path) -> None:
        paths = [
            _write(tmp_path, "OrderServiceTest.java", PLAIN_TEST),
            _write(tmp_path, "FlakyTest.java", DISABLED_TEST),
        ]

        with (
            patch("testshard.parsing.treesitter._local", threading.local()),
            patch(
                "testshard.parsing.treesitter.tslp.get_parser",
                side_effect=RuntimeError("download failed"),
            ),
        ):
            result = await discover_test_classes(paths)

        assert result.identifiers == []
        assert len(result.failures) == 2
        assert "download failed" in str(result.failures[0])
