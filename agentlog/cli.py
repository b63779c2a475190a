"""CLI entrypoint."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from agentlog.config import AppConfig, load_config
from agentlog.errors import AgentlogError
from agentlog.files import DataDir
from agentlog.lib.json import dumps
from agentlog.lib.log import configure_logging
from agentlog.pipeline.client import PipelineClient, RunState, RunStatus
from agentlog.pipeline.messages import to_wire
from agentlog.redaction import RedactionOptions
from agentlog.render import format_ts, redacted_dump, render_event
from agentlog.version import VERSION


def _is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def _console() -> Console:
    return Console(highlight=False, soft_wrap=False)


def _fail(command: str, message: str) -> None:
    raise click.ClickException(f"{command}: {message}")


async def _ingest(source: str, config: AppConfig, protocol: bool) -> RunState:
    on_message = (lambda message: click.echo(dumps(to_wire(message)))) if protocol else None
    async with PipelineClient(config.pipeline, on_message=on_message) as client:
        if _is_url(source):
            client.start_from_url(source)
        else:
            client.start_from_file(Path(source).expanduser())
        return await client.wait()


def _redaction_options(config: AppConfig, no_redact: bool, emails: bool, tokens: bool, digits: bool) -> RedactionOptions:
    if no_redact:
        return RedactionOptions.none()
    defaults = config.redaction
    return RedactionOptions(
        emails=defaults.emails and emails,
        tokens=defaults.tokens and tokens,
        long_digits=defaults.long_digits and digits,
    )


def _print_summary(console: Console, state: RunState) -> None:
    console.print(
        f"{len(state.events)} events, {state.error_count} errors, {state.bytes_read} bytes read",
        style="bold",
    )
    for sample in state.error_samples:
        console.print(f"  line {sample.line_number}: {sample.message}", style="red")
    if state.status is RunStatus.ERROR:
        console.print(f"Run failed: {state.error_message}", style="bold red")


@click.group()
@click.version_option(VERSION, prog_name="agentlog")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines on stderr.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool) -> None:
    """Stream and normalize agent session logs."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["json_logs"] = json_logs
    try:
        ctx.obj["config"] = load_config()
    except AgentlogError as exc:
        _fail("agentlog", str(exc))


@cli.command()
@click.argument("source")
@click.option("--json", "as_json", is_flag=True, help="Print events as JSON lines.")
@click.option("--protocol", is_flag=True, help="Print every worker message as a JSON line.")
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Show at most N events.")
@click.option("--no-redact", is_flag=True, help="Disable all redaction.")
@click.option("--no-redact-emails", is_flag=True, help="Do not mask email addresses.")
@click.option("--no-redact-tokens", is_flag=True, help="Do not mask token-like strings.")
@click.option("--no-redact-digits", is_flag=True, help="Do not mask long digit runs.")
@click.pass_context
def view(
    ctx: click.Context,
    source: str,
    as_json: bool,
    protocol: bool,
    limit: int | None,
    no_redact: bool,
    no_redact_emails: bool,
    no_redact_tokens: bool,
    no_redact_digits: bool,
) -> None:
    """Parse SOURCE (a .jsonl/.json file or an http(s) URL) and show its events."""
    config: AppConfig = ctx.obj["config"]
    machine_output = as_json or protocol
    configure_logging(verbose=ctx.obj["verbose"], json_logs=ctx.obj["json_logs"], quiet=machine_output)

    state = asyncio.run(_ingest(source, config, protocol))
    options = _redaction_options(config, no_redact, not no_redact_emails, not no_redact_tokens, not no_redact_digits)
    events = state.events if limit is None else state.events[:limit]

    if as_json:
        for event in events:
            click.echo(dumps(redacted_dump(event, options)))
    elif not protocol:
        console = _console()
        for event in events:
            console.print(render_event(event, options))
        _print_summary(console, state)

    if state.status is RunStatus.ERROR:
        if machine_output:
            click.echo(f"view: {state.error_message}", err=True)
        sys.exit(1)


@cli.command(name="ls")
@click.argument("path", required=False, default="/")
@click.option("--sort", type=click.Choice(["name", "date"]), default="name", show_default=True)
@click.pass_context
def ls_command(ctx: click.Context, path: str, sort: str) -> None:
    """List directories and .json/.jsonl files under the data directory."""
    config: AppConfig = ctx.obj["config"]
    configure_logging(verbose=ctx.obj["verbose"], json_logs=ctx.obj["json_logs"])
    data_dir = DataDir(config.data_root, chunk_size=config.pipeline.chunk_size)
    try:
        listing = data_dir.list(path, sort)  # type: ignore[arg-type]
    except AgentlogError as exc:
        _fail("ls", str(exc))
        return

    table = Table(title=listing.path, title_justify="left")
    table.add_column("name")
    table.add_column("type")
    table.add_column("size", justify="right")
    table.add_column("modified")
    for entry in listing.entries:
        name = f"{entry.name}/" if entry.type == "dir" else entry.name
        size = "" if entry.type == "dir" else str(entry.size)
        table.add_row(name, entry.type, size, format_ts(int(entry.mtime_ms)))
    _console().print(table)


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config).")
@click.option("--port", type=int, default=None, help="Port (default from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the file browsing and streaming endpoints."""
    import uvicorn

    config: AppConfig = ctx.obj["config"]
    configure_logging(verbose=ctx.obj["verbose"], json_logs=ctx.obj["json_logs"])
    uvicorn.run(
        "agentlog.server.app:app",
        host=host or config.host,
        port=port or config.port,
        log_level="debug" if ctx.obj["verbose"] else "info",
    )


def main() -> None:
    cli()


__all__ = ["cli", "main"]
