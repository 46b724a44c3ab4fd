"""CLI entry point for inbox-scheduler.

Invoked as::

    inbox-scheduler [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m inbox_scheduler.cli.main

Commands
--------
serve email-agent      Run Agent A (inbox processing)
serve calendar-agent   Run Agent B (calendar operations)
serve provider         Run the local credential provider
token session          Mint a session credential for a user
token inspect          Decode and verify a credential
"""
from __future__ import annotations

import json
import logging
import sys

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from inbox_scheduler.config import Settings

console = Console()

DEFAULT_PORTS = {
    "provider": 3000,
    "email-agent": 3001,
    "calendar-agent": 3002,
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="inbox-scheduler")
@click.option(
    "--log-level",
    default=None,
    help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Two-agent inbox summarization and calendar scheduling demo"""
    settings = Settings.from_env()
    _configure_logging(log_level or settings.log_level)
    ctx.obj = settings


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from inbox_scheduler import __version__

    console.print(f"[bold]inbox-scheduler[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve command group
# ------------------------------------------------------------------


@cli.group(name="serve")
def serve_group() -> None:
    """Run one of the HTTP services."""


def _serve_options(service: str):  # type: ignore[no-untyped-def]
    def decorator(func):  # type: ignore[no-untyped-def]
        func = click.option(
            "--port",
            type=int,
            default=DEFAULT_PORTS[service],
            show_default=True,
            help="Port to listen on.",
        )(func)
        func = click.option(
            "--host", default="0.0.0.0", show_default=True, help="Interface to bind."
        )(func)
        return func

    return decorator


@serve_group.command(name="email-agent")
@_serve_options("email-agent")
@click.pass_obj
def serve_email_agent(settings: Settings, host: str, port: int) -> None:
    """Serve Agent A: inbox processing and delegated event creation."""
    from inbox_scheduler.server.app import run_server
    from inbox_scheduler.server.email_routes import build_email_routes

    with httpx.Client(timeout=settings.http_timeout) as http_client:
        routes = build_email_routes(settings, http_client)
        console.print(f"[bold]email-agent[/bold] listening on http://{host}:{port}")
        run_server(routes, host=host, port=port)


@serve_group.command(name="calendar-agent")
@_serve_options("calendar-agent")
@click.pass_obj
def serve_calendar_agent(settings: Settings, host: str, port: int) -> None:
    """Serve Agent B: scope-gated calendar operations."""
    from inbox_scheduler.server.app import run_server
    from inbox_scheduler.server.calendar_routes import build_calendar_routes

    with httpx.Client(timeout=settings.http_timeout) as http_client:
        routes = build_calendar_routes(settings, http_client)
        console.print(f"[bold]calendar-agent[/bold] listening on http://{host}:{port}")
        run_server(routes, host=host, port=port)


@serve_group.command(name="provider")
@_serve_options("provider")
@click.pass_obj
def serve_provider(settings: Settings, host: str, port: int) -> None:
    """Serve the credential provider's delegation endpoint."""
    from inbox_scheduler.server.app import run_server
    from inbox_scheduler.server.provider_routes import build_provider_routes

    routes = build_provider_routes(settings)
    console.print(f"[bold]credential-provider[/bold] listening on http://{host}:{port}")
    run_server(routes, host=host, port=port)


# ------------------------------------------------------------------
# token command group
# ------------------------------------------------------------------


@cli.group(name="token")
def token_group() -> None:
    """Mint and inspect credentials."""


@token_group.command(name="session")
@click.argument("subject")
@click.option(
    "--scope",
    "-s",
    multiple=True,
    required=True,
    help="Scope to grant (repeatable, e.g. -s email.read -s calendar.write).",
)
@click.option(
    "--ttl",
    type=int,
    default=None,
    help="Token lifetime in seconds (defaults to SESSION_TOKEN_TTL).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print claims as JSON.")
@click.pass_obj
def session_command(
    settings: Settings,
    subject: str,
    scope: tuple[str, ...],
    ttl: int | None,
    as_json: bool,
) -> None:
    """Mint a session credential for SUBJECT, signed with SIGNING_KEY."""
    from inbox_scheduler.delegation.provider import CredentialProvider

    provider = CredentialProvider(
        settings.signing_key_bytes,
        session_ttl_seconds=ttl or settings.session_token_ttl,
    )
    try:
        credential = provider.issue_session(subject, list(scope))
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    token = credential.encode()
    if as_json:
        click.echo(json.dumps({"token": token, **credential.to_dict()}, indent=2))
        return

    click.echo(token)
    console.print(f"\n  Token ID:  [bold]{credential.token_id}[/bold]", highlight=False)
    console.print(f"  Subject:   {credential.subject}", highlight=False)
    console.print(f"  Scopes:    {', '.join(credential.scopes)}", highlight=False)
    console.print(f"  Expires:   {credential.expires_at.isoformat()}", highlight=False)


@token_group.command(name="inspect")
@click.argument("token")
@click.pass_obj
def inspect_command(settings: Settings, token: str) -> None:
    """Decode TOKEN and check its signature and expiry."""
    from inbox_scheduler.delegation.token import CredentialError, SignedCredential

    try:
        credential = SignedCredential.decode(token)
    except CredentialError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    table = Table(title=f"Credential — {credential.token_id}", show_header=True)
    table.add_column("Claim", style="cyan")
    table.add_column("Value")
    for claim, value in credential.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "(none)"
        table.add_row(claim, "-" if value is None else str(value))
    console.print(table)

    signature_ok = credential.signature_valid(settings.signing_key_bytes)
    expired = credential.is_expired()
    console.print(
        f"  Signature: {'[green]valid[/green]' if signature_ok else '[red]INVALID[/red]'}"
    )
    console.print(f"  Expired:   {'[red]yes[/red]' if expired else '[green]no[/green]'}")
    if not signature_ok or expired:
        sys.exit(1)


if __name__ == "__main__":
    cli()
