"""Configuration parsing from ``.testshard.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from testshard.sharding.durations import DEFAULT_ESTIMATE_MS, Aggregation, NewTestTime
from testshard.sharding.optimal import DEFAULT_MAX_CALCULATIONS
from testshard.sharding.output import FormatOption
from testshard.utils.concurrency import DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".testshard.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass
class DiscoveryConfig:
    """Test source discovery configuration."""

    glob: str = ""
    """Glob pattern (relative to the working directory) matching test sources."""

    exclude_glob: str = ""
    """Glob pattern of test sources to leave out."""


@dataclass
class ReportsConfig:
    """Historical report configuration."""

    junit_glob: str = ""
    """Glob pattern matching JUnit XML reports (empty = no history)."""


@dataclass
class SplitConfig:
    """Partitioning configuration."""

    total: int = 1
    """Number of shards to balance across."""

    new_test_time: str = NewTestTime.MEDIAN.value
    """Estimate for tests without history (median, average, min, max, zero)."""

    aggregation: str = Aggregation.MAX.value
    """Reduction of repeated samples per test (max, mean, median)."""

    default_estimate_ms: float = DEFAULT_ESTIMATE_MS
    """Estimate for every test when no history exists at all."""

    format: str = FormatOption.LIST.value
    """Output format (list, gradle)."""

    max_optimal_calculations: int = DEFAULT_MAX_CALCULATIONS
    """Maximum group counts tried when searching for the optimal total."""


@dataclass
class ExecutionConfig:
    """Discovery and report reading performance configuration."""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Maximum files parsed concurrently."""


@dataclass
class TestShardConfig:
    """Complete testshard configuration from ``.testshard.yml``."""

    __test__ = False

    root: str
    """Working directory the globs are relative to."""

    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    """Test source discovery configuration."""

    reports: ReportsConfig = field(default_factory=ReportsConfig)
    """Historical report configuration."""

    split: SplitConfig = field(default_factory=SplitConfig)
    """Partitioning configuration."""

    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    """Performance configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


def _parse_discovery_config(raw: dict[str, Any]) -> DiscoveryConfig:
    """Parse discovery configuration from raw YAML."""
    discovery_raw = _section(raw, "discovery")
    return DiscoveryConfig(
        glob=str(discovery_raw.get("glob", os.environ.get("TESTSHARD_GLOB", ""))),
        exclude_glob=str(discovery_raw.get("exclude_glob", "") or ""),
    )


def _parse_reports_config(raw: dict[str, Any]) -> ReportsConfig:
    """Parse report configuration from raw YAML."""
    reports_raw = _section(raw, "reports")
    return ReportsConfig(
        junit_glob=str(
            reports_raw.get("junit_glob", os.environ.get("TESTSHARD_JUNIT_GLOB", "")) or ""
        ),
    )


def _parse_split_config(raw: dict[str, Any]) -> SplitConfig:
    """Parse partitioning configuration from raw YAML."""
    split_raw = _section(raw, "split")
    return SplitConfig(
        total=int(split_raw.get("total", 1)),
        new_test_time=str(split_raw.get("new_test_time", NewTestTime.MEDIAN.value)),
        aggregation=str(split_raw.get("aggregation", Aggregation.MAX.value)),
        default_estimate_ms=float(split_raw.get("default_estimate_ms", DEFAULT_ESTIMATE_MS)),
        format=str(split_raw.get("format", FormatOption.LIST.value)),
        max_optimal_calculations=int(
            split_raw.get("max_optimal_calculations", DEFAULT_MAX_CALCULATIONS)
        ),
    )


def _parse_execution_config(raw: dict[str, Any]) -> ExecutionConfig:
    """Parse execution performance configuration from raw YAML."""
    exec_raw = _section(raw, "execution")
    env_workers = os.environ.get("TESTSHARD_MAX_WORKERS", DEFAULT_MAX_WORKERS)
    return ExecutionConfig(
        max_workers=int(exec_raw.get("max_workers", env_workers)),
    )


def load_config(root: str | Path) -> TestShardConfig:
    """Load and parse the complete ``.testshard.yml`` configuration.

    Falls back to defaults and environment variables when the YAML file is
    missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: expected a mapping at the top level", config_file)

    return TestShardConfig(
        root=str(root_path),
        discovery=_parse_discovery_config(raw),
        reports=_parse_reports_config(raw),
        split=_parse_split_config(raw),
        execution=_parse_execution_config(raw),
        raw=raw,
    )


def _validate_choice(value: str, choices: type[Any], key: str) -> list[str]:
    allowed = [member.value for member in choices]
    if value not in allowed:
        return [f"{key} must be one of {', '.join(allowed)} (got: {value})"]
    return []


def _validate_split_config(split: SplitConfig) -> list[str]:
    """Validate partitioning settings."""
    errors: list[str] = []

    if split.total < 1:
        errors.append(f"split.total must be at least 1 (got: {split.total})")

    errors.extend(_validate_choice(split.new_test_time, NewTestTime, "split.new_test_time"))
    errors.extend(_validate_choice(split.aggregation, Aggregation, "split.aggregation"))
    errors.extend(_validate_choice(split.format, FormatOption, "split.format"))

    if split.default_estimate_ms < 0:
        errors.append(
            f"split.default_estimate_ms must be non-negative (got: {split.default_estimate_ms})"
        )

    if split.max_optimal_calculations < 1:
        errors.append(
            f"split.max_optimal_calculations must be at least 1 "
            f"(got: {split.max_optimal_calculations})"
        )

    return errors


def validate_config(config: TestShardConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not Path(config.root).is_dir():
        errors.append(f"working directory does not exist: {config.root}")

    if not config.discovery.glob:
        errors.append("discovery.glob is required")

    errors.extend(_validate_split_config(config.split))

    if config.execution.max_workers < 1:
        errors.append(
            f"execution.max_workers must be at least 1 (got: {config.execution.max_workers})"
        )

    return errors
