"""Command line interface for docwatch."""

from __future__ import annotations

import difflib
import time
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from docwatch.config import ConfigError, ConfigManager, DocwatchConfig, section_names
from docwatch.ingestion import DiscoveryResult, RequestsTransport, Transport, normalize_base_path
from docwatch.log import configure_logging
from docwatch.state import ChangeReport, Snapshot
from docwatch.watch import WatchService

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, base_path: str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {base_path}: {parts}.[/green]"


def _build_transport(config: DocwatchConfig) -> Transport:
    """Return the transport used by CLI commands."""
    return RequestsTransport(
        timeout=config.transport.timeout_seconds,
        user_agent=config.transport.user_agent,
    )


def _load_config(json_output: bool) -> DocwatchConfig:
    """Load configuration and configure logging, reporting errors CLI-style."""
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        raise  # pragma: no cover - _handle_cli_error always raises
    configure_logging(config.logging)
    return config


def _resolve_output_modes(
    ctx: click.Context,
    config: DocwatchConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine explicit flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` values.

    Raises:
        click.ClickException: If the combination is contradictory.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if quiet_enabled and explicit_quiet:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if summary_only and explicit_summary:
            raise click.ClickException("--json cannot be combined with --summary.")
    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _snapshot_table(snapshot: Snapshot, discovery: DiscoveryResult) -> Table:
    sources = discovery.sources()
    table = Table(title=f"Documents under {snapshot.base_path}")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Last modified")
    table.add_column("Fingerprint")
    table.add_column("Found by")
    for record in snapshot.records:
        table.add_row(
            record.name,
            str(record.size),
            record.last_modified,
            record.fingerprint,
            ", ".join(sources.get(record.name, [])),
        )
    return table


def _emit_report(
    report: ChangeReport,
    base_path: str,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render a change report."""

    if json_output:
        console.print_json(data=report.model_dump(mode="json"))
        return

    for record in report.added:
        _emit_message(
            f"[green]+ {record.name}[/green] ({record.size} chars)",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )
    for record in report.removed:
        _emit_message(
            f"[red]- {record.name}[/red]", mode="detail", quiet=quiet, summary_only=summary_only
        )
    for entry in report.modified:
        flags = entry.change_flags
        changed = [
            label
            for label, flag in (
                ("content", flags.content_changed),
                ("size", flags.size_changed),
                ("time", flags.time_changed),
            )
            if flag
        ]
        _emit_message(
            f"[yellow]~ {entry.name}[/yellow] ({', '.join(changed)})",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )

    _emit_message(
        _format_summary_line("Watch", base_path, report.counts()),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


def _block_until_interrupted() -> None:
    while True:
        time.sleep(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="docwatch")
def cli() -> None:
    """docwatch discovers remote documents and reports when they change."""


@cli.command()
@click.argument("base_url")
@click.option("--json", "json_output", is_flag=True, help="Emit the snapshot as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    base_url: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Discover documents under BASE_URL once and list them.

    Args:
        ctx: Click context for parameter source inspection.
        base_url: Location the documents are served from.
        json_output: When True, emit JSON instead of a table.
        summary_mode: When True, restrict output to summary lines.
        quiet: When True, suppress non-error output entirely.
    """

    config = _load_config(json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
    )
    base_path = normalize_base_path(base_url)
    service = WatchService(config, transport=_build_transport(config))
    try:
        result = service.pipeline.run(base_path)
    finally:
        service.close()
    snapshot, discovery = result.snapshot, result.discovery

    if json_output:
        payload = snapshot.model_dump(mode="json")
        payload["discovery"] = [outcome.model_dump(mode="json") for outcome in discovery.outcomes]
        console.print_json(data=payload)
        return

    if snapshot.records:
        _emit_message(
            _snapshot_table(snapshot, discovery),
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    for outcome in discovery.outcomes:
        if not outcome.ok:
            _emit_message(
                f"[yellow]{outcome.strategy}: {outcome.diagnostic}[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    _emit_message(
        _format_summary_line(
            "Scan", base_path, {"candidates": len(discovery.names), "documents": len(snapshot)}
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("base_url")
@click.option("--interval", type=float, help="Seconds between scans (default from config).")
@click.option("--once", is_flag=True, help="Run a single scan cycle and exit.")
@click.option("--json", "json_output", is_flag=True, help="Emit change reports as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def watch(
    ctx: click.Context,
    base_url: str,
    interval: float | None,
    once: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Scan BASE_URL periodically and print each detected change.

    Args:
        ctx: Click context for parameter source inspection.
        base_url: Location the documents are served from.
        interval: Optional interval override in seconds.
        once: When True, run one cycle and print its report.
        json_output: When True, emit JSON payloads instead of text.
        summary_mode: When True, restrict output to summary lines.
        quiet: When True, suppress non-error output entirely.

    Raises:
        click.ClickException: If option combinations are invalid.
    """

    if interval is not None and interval <= 0:
        raise click.ClickException("--interval must be greater than zero.")

    config = _load_config(json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
    )
    base_path = normalize_base_path(base_url)
    service = WatchService(config, transport=_build_transport(config))

    def _render(report: ChangeReport) -> None:
        _emit_report(
            report,
            base_path,
            json_output=json_output,
            quiet=quiet_enabled,
            summary_only=summary_only,
        )

    if once:
        try:
            report = service.perform_scan(base_path)
        finally:
            service.close()
        _render(report)
        return

    service.set_change_handler(_render)
    if not json_output:
        _emit_message(
            f"[cyan]Watching {base_path}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    service.start_scanning(base_path, interval)
    try:
        _block_until_interrupted()
    except KeyboardInterrupt:
        service.stop_scanning(timeout=config.transport.timeout_seconds)
        if not json_output:
            _emit_message(
                "[yellow]Watch stopped by user request.[/yellow]",
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    finally:
        service.close()


@cli.command()
@click.argument("base_url")
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Emit file metadata as JSON.")
@click.option("--content", "show_content", is_flag=True, help="Print the fetched content.")
def refresh(base_url: str, name: str, json_output: bool, show_content: bool) -> None:
    """Re-fetch document NAME under BASE_URL, bypassing cached results.

    Args:
        base_url: Location the documents are served from.
        name: Logical document name without extension.
        json_output: When True, emit JSON instead of text.
        show_content: When True, include the document body in the output.
    """

    config = _load_config(json_output)
    base_path = normalize_base_path(base_url)
    service = WatchService(config, transport=_build_transport(config))
    try:
        info = service.refresh_file(name, base_path)
    finally:
        service.close()

    if not info.exists:
        _handle_cli_error(
            f"{name} was not found under {base_path}.", code="not_found", json_output=json_output
        )
        return

    if json_output:
        payload = info.model_dump(mode="json")
        if not show_content:
            payload.pop("content", None)
        console.print_json(data=payload)
        return

    console.print(
        f"[green]{name}[/green]: size={info.size} last_modified={info.last_modified} "
        f"fingerprint={info.fingerprint}"
    )
    if show_content and info.content is not None:
        console.print(Syntax(info.content, "xml", word_wrap=True))


@cli.group()
def config() -> None:
    """Inspect and change settings stored in ~/.docwatch/config.yaml."""


@config.command("view")
@click.argument("section", required=False, type=click.Choice(section_names()))
@click.option("--no-env", is_flag=True, help="Ignore DOCWATCH__ environment overrides.")
def config_view(section: str | None, no_env: bool) -> None:
    """Show the effective settings, optionally for one SECTION only.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    data = loaded.model_dump(mode="python")
    if section is not None:
        data = {section: data[section]}
    console.print(Syntax(yaml.safe_dump(data, sort_keys=False), "yaml", word_wrap=True))

    env_values = {} if no_env else manager.env_overrides()
    if section is not None:
        env_values = {
            key: value for key, value in env_values.items() if key.startswith(f"{section}.")
        }
    if env_values:
        table = Table(title="Environment overrides")
        table.add_column("Setting")
        table.add_column("Value")
        for key, value in env_values.items():
            table.add_row(key, str(value))
        console.print(table)


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign, parsed as YAML.")
def config_set(key: str, value: str) -> None:
    """Persist SECTION.SETTING (for example scan.interval_seconds).

    Raises:
        click.ClickException: If the key is unknown or the value is invalid.
    """
    manager = ConfigManager()
    before = manager.read_text().splitlines()
    try:
        manager.set_value(key, value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    after = manager.read_text().splitlines()

    diff = [
        line
        for line in difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
        if not line.startswith(("-# Last updated", "+# Last updated"))
    ]
    if not any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


@config.command("reset")
@click.argument("section", required=False, type=click.Choice(section_names()))
def config_reset(section: str | None) -> None:
    """Restore defaults for SECTION, or for every section when omitted.

    Raises:
        click.ClickException: If the stored configuration cannot be read.
    """
    try:
        removed = ConfigManager().reset(section)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if not removed:
        console.print("[yellow]Nothing to reset; already using defaults.[/yellow]")
        return
    console.print(f"[green]Restored defaults for: {', '.join(removed)}.[/green]")


def main() -> None:
    """Entry point for the ``docwatch`` console script."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
