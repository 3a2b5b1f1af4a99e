"""testshard CLI: top-level command group."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click
import yaml
from rich.logging import RichHandler

from testshard import __version__
from testshard.config import TestShardConfig, load_config, validate_config
from testshard.errors import TestShardError
from testshard.pipeline import SplitOptions, SplitPlan, plan_split
from testshard.reporters.terminal import console, reporter
from testshard.sharding.durations import Aggregation, NewTestTime
from testshard.sharding.optimal import calculate_optimal_group_count
from testshard.sharding.output import (
    FormatOption,
    format_duration,
    format_tests,
    write_partition_json,
    write_shard_files,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound="Callable[..., Any]")


def _configure_logging(*, debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_config_or_abort(path: str) -> TestShardConfig:
    try:
        return load_config(path)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _split_options(func: _F) -> _F:
    """Options shared by ``split`` and ``plan``; unset values fall back to config."""
    options = [
        click.option(
            "--split-total",
            "-t",
            type=int,
            default=None,
            help="Total number of test splits.",
        ),
        click.option(
            "--glob",
            "-g",
            default=None,
            help="Glob pattern to find test files (quote it to avoid shell expansion).",
        ),
        click.option(
            "--exclude-glob",
            "-e",
            default=None,
            help="Glob pattern to exclude test files.",
        ),
        click.option(
            "--junit-glob",
            "-j",
            default=None,
            help="Glob pattern to find JUnit reports.",
        ),
        click.option(
            "--format",
            "-f",
            "format_option",
            type=click.Choice([o.value for o in FormatOption]),
            default=None,
            help="The output format.",
        ),
        click.option(
            "--new-test-time",
            "-n",
            type=click.Choice([o.value for o in NewTestTime]),
            default=None,
            help="Estimate for tests without JUnit reports.",
        ),
        click.option(
            "--aggregation",
            type=click.Choice([o.value for o in Aggregation]),
            default=None,
            help="How repeated durations of one test are combined.",
        ),
        click.option(
            "--working-directory",
            "-w",
            default=".",
            type=click.Path(exists=True, file_okay=False, resolve_path=True),
            help="The working directory. Defaults to the current directory.",
        ),
        click.option(
            "--calculate-optimal-total-split",
            "-c",
            "calculate_optimal",
            is_flag=True,
            help="Calculate the optimal number of splits and warn on a mismatch.",
        ),
        click.option(
            "--max-optimal-total-split-calculations",
            "-m",
            "max_calculations",
            type=int,
            default=None,
            help="Maximum number of optimal split calculations.",
        ),
        click.option(
            "--workers",
            type=int,
            default=None,
            help="Maximum number of files parsed concurrently.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_options(kwargs: dict[str, Any], config: TestShardConfig) -> SplitOptions:
    """Merge CLI values over ``.testshard.yml`` values."""
    glob = kwargs.get("glob") or config.discovery.glob
    if not glob:
        raise click.UsageError("Missing option '--glob' (or discovery.glob in .testshard.yml).")

    split_total = kwargs.get("split_total")
    workers = kwargs.get("workers")
    try:
        return SplitOptions(
            glob=glob,
            group_count=split_total if split_total is not None else config.split.total,
            exclude_glob=kwargs.get("exclude_glob") or config.discovery.exclude_glob or None,
            junit_glob=kwargs.get("junit_glob") or config.reports.junit_glob or None,
            new_test_time=NewTestTime(kwargs.get("new_test_time") or config.split.new_test_time),
            aggregation=Aggregation(kwargs.get("aggregation") or config.split.aggregation),
            default_estimate_ms=config.split.default_estimate_ms,
            max_workers=workers if workers is not None else config.execution.max_workers,
        )
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e


def _resolve_format(kwargs: dict[str, Any], config: TestShardConfig) -> FormatOption:
    try:
        return FormatOption(kwargs.get("format_option") or config.split.format)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e


def _max_calculations(kwargs: dict[str, Any], config: TestShardConfig) -> int:
    value = kwargs.get("max_calculations")
    return value if value is not None else config.split.max_optimal_calculations


def _run_plan(root: Path, options: SplitOptions) -> SplitPlan:
    reporter.print_info(f"Working directory: {root}")
    reporter.print_info(f"Glob: {options.glob}")
    if options.exclude_glob:
        reporter.print_info(f"Exclude glob: {options.exclude_glob}")
    if options.junit_glob:
        reporter.print_info(f"JUnit glob: {options.junit_glob}")

    try:
        plan = asyncio.run(plan_split(root, options))
    except TestShardError as e:
        reporter.print_error(f"{type(e).__name__}: {e}")
        raise click.Abort from e

    for message in plan.warnings:
        reporter.print_warning(message)
    return plan


def _report_optimal(
    plan: SplitPlan,
    options: SplitOptions,
    max_calculations: int,
) -> int | None:
    if not options.junit_glob:
        reporter.print_warning("--calculate-optimal-total-split requires --junit-glob")
        return None
    try:
        optimal = calculate_optimal_group_count(plan.resolved, max_calculations)
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    if optimal is None:
        reporter.print_warning(
            f"--max-optimal-total-split-calculations of {max_calculations} is too low "
            "to calculate the optimal test split"
        )
        return None
    reporter.print_info(f"The optimal --split-total for this test suite is {optimal}")
    if optimal != options.group_count:
        reporter.print_warning(
            f"The --split-total value of {options.group_count} does not match "
            f"the optimal split of {optimal}"
        )
    return optimal


def _exit_on_discovery_failures(plan: SplitPlan) -> None:
    if not plan.discovery.success:
        reporter.print_error(
            f"{len(plan.discovery.failures)} test file(s) could not be parsed"
        )
        click.get_current_context().exit(1)


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="testshard")
def cli(*, debug: bool) -> None:
    """testshard: balance test classes across parallel CI shards."""
    _configure_logging(debug=debug)


@cli.command()
@click.option(
    "--split-index",
    "-i",
    type=int,
    required=True,
    help="This test split index (zero-based).",
)
@_split_options
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the test list to this file instead of stdout.",
)
def split(**kwargs: Any) -> None:
    """Print the tests of one split, longest first.

    Example:
      testshard split -i 0 -t 4 -g '**/src/test/**/*Test.java' \\
        -j '**/build/test-results/**/TEST-*.xml' -f gradle
    """
    root = Path(kwargs["working_directory"])
    config = _load_config_or_abort(str(root))
    options = _resolve_options(kwargs, config)
    fmt = _resolve_format(kwargs, config)
    split_index: int = kwargs["split_index"]

    if split_index < 0:
        raise click.UsageError("--split-index must not be negative.")
    if options.group_count >= 1 and split_index >= options.group_count:
        raise click.UsageError("--split-index must be lesser than --split-total.")

    reporter.print_info(f"Split index {split_index} (total: {options.group_count})")
    reporter.print_info(f"Output format: {fmt.value}")
    plan = _run_plan(root, options)

    if kwargs["calculate_optimal"]:
        if split_index == 0:
            _report_optimal(plan, options, _max_calculations(kwargs, config))
        else:
            logger.debug("Skipping calculation of optimal test split (only done on index 0)")

    group = plan.summary.groups[split_index]
    reporter.print_info(
        f"This test split has {group.test_count} tests ({format_duration(group.total_ms)})"
    )
    line = " ".join(format_tests(group.tests, fmt))

    output_path: str | None = kwargs.get("output_path")
    if output_path is not None:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(line + "\n" if line else "", encoding="utf-8")
        reporter.print_info(f"Test list written to {path}")
    else:
        click.echo(line)

    _exit_on_discovery_failures(plan)


@cli.command()
@_split_options
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Write one shard-NN.txt file per split into this directory.",
)
@click.option(
    "--json-output",
    "json_output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the full partition report as JSON.",
)
def plan(**kwargs: Any) -> None:
    """Compute every split and show how balanced they are."""
    root = Path(kwargs["working_directory"])
    config = _load_config_or_abort(str(root))
    options = _resolve_options(kwargs, config)
    fmt = _resolve_format(kwargs, config)

    reporter.print_header("testshard plan")
    split_plan = _run_plan(root, options)
    summary = split_plan.summary

    if kwargs["calculate_optimal"]:
        _report_optimal(split_plan, options, _max_calculations(kwargs, config))

    reporter.print_partition_banner(summary)
    reporter.print_partition_table(summary)

    output_dir: str | None = kwargs.get("output_dir")
    if output_dir is not None:
        written = write_shard_files(summary, Path(output_dir), fmt)
        reporter.print_success(f"Wrote {len(written)} shard files to {output_dir}")

    json_output: str | None = kwargs.get("json_output")
    if json_output is not None:
        write_partition_json(summary, Path(json_output))
        reporter.print_success(f"Partition report written to {json_output}")

    _exit_on_discovery_failures(split_plan)


@cli.group("config")
def config_group() -> None:
    """Inspect `.testshard.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    config = _load_config_or_abort(path)
    config_dict = asdict(config)
    config_dict.pop("raw", None)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.testshard.yml` configuration."""
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort