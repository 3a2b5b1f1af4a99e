"""Shared fixtures: a small Gradle-style Java project with JUnit history."""

from __future__ import annotations

from pathlib import Path

import pytest

JAVA_TEMPLATE = """\
package com.example;

import org.junit.jupiter.api.Test;

public class {name} {{
    @Test
    void works() {{}}
}}
"""

JUNIT_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<testsuite name="com.example.{name}" tests="1" time="{seconds}">
  <testcase name="works" classname="com.example.{name}" time="{seconds}"/>
</testsuite>
"""

TEST_GLOB = "**/src/test/java/**/*Test.java"
JUNIT_GLOB = "**/build/test-results/**/TEST-*.xml"


def write_test_class(root: Path, name: str, source: str | None = None) -> Path:
    path = root / "src" / "test" / "java" / "com" / "example" / f"{name}.java"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source if source is not None else JAVA_TEMPLATE.format(name=name))
    return path


def write_junit_report(root: Path, name: str, seconds: float) -> Path:
    path = root / "build" / "test-results" / "test" / f"TEST-com.example.{name}.xml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(JUNIT_TEMPLATE.format(name=name, seconds=seconds))
    return path


@pytest.fixture
def java_project(tmp_path: Path) -> Path:
    """Four test classes with 0.5s, 0.5s, 0.3s and 0.2s of history."""
    for name, seconds in [("ATest", 0.5), ("BTest", 0.5), ("CTest", 0.3), ("DTest", 0.2)]:
        write_test_class(tmp_path, name)
        write_junit_report(tmp_path, name, seconds)
    return tmp_path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer or CI settings from leaking into config loading."""
    for var in ("TESTSHARD_GLOB", "TESTSHARD_JUNIT_GLOB", "TESTSHARD_MAX_WORKERS"):
        monkeypatch.delenv(var, raising=False)
