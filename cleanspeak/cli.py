"""cleanspeak CLI — call the CleanSpeak API from the shell."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cleanspeak import __version__
from cleanspeak.client import CleanSpeakClient
from cleanspeak.config import ClientConfig, config_from_env, load_config
from cleanspeak.errors import CleanSpeakError, RequestFailed
from cleanspeak.models import ContentPart, ContentType
from cleanspeak.options import MODERATION_CONFIGURATION_KEYS

console = Console()


def build_client(config: ClientConfig) -> CleanSpeakClient:
    return CleanSpeakClient(config)


@contextmanager
def _errors_to_exit():
    try:
        yield
    except RequestFailed as e:
        console.print(f"[red]CleanSpeak returned {e.status_code}:[/] {e.message}")
        sys.exit(1)
    except (CleanSpeakError, httpx.RequestError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)


def _client(ctx: click.Context, **overrides) -> CleanSpeakClient:
    path = ctx.obj.get("config_path")
    with _errors_to_exit():
        config = load_config(path, **overrides) if path else config_from_env(**overrides)
    return build_client(config)


def _moderation_flags(f):
    """Add a --flag/--no-flag pair for every moderation setting."""
    for key in reversed(list(MODERATION_CONFIGURATION_KEYS)):
        flag = key.replace("_", "-")
        f = click.option(f"--{flag}/--no-{flag}", key, default=None)(f)
    return f


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    "config_path",
    envvar="CLEANSPEAK_CONFIG",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config file (default: CLEANSPEAK_* environment variables)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log requests")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """cleanspeak — filter and moderate content with CleanSpeak."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# ── Filter ───────────────────────────────────────────────────────────


@main.command(name="filter")
@click.argument("text")
@click.option("--severity", default=None, help="Minimum blacklist severity to match")
@click.pass_context
def filter_text(ctx: click.Context, text: str, severity: str | None):
    """Run TEXT through the profanity filter."""
    client = _client(ctx)
    blacklist = {"severity": severity} if severity else None
    with _errors_to_exit(), client:
        result = client.filter(text, blacklist=blacklist)

    status = "[red]filtered[/]" if result.filtered else "[green]clean[/]"
    console.print(f"{status}  {result.replacement}")


# ── Moderate ─────────────────────────────────────────────────────────


def _parse_part(value: str) -> ContentPart:
    try:
        name, type_, content = value.split(":", 2)
        return ContentPart(name=name, content=content, type=ContentType(type_))
    except ValueError:
        raise click.BadParameter(f"expected NAME:TYPE:CONTENT, got {value!r}")


@main.command()
@click.argument("content_id")
@click.option("--part", "-p", "parts", multiple=True, required=True, help="NAME:TYPE:CONTENT (repeatable)")
@click.option("--sender-id", default=None)
@click.option("--sender-display-name", default=None)
@click.option("--application-id", default=None)
@click.option("--requires-approval", is_flag=True, help="Queue for approval even if no filter matches")
@click.option("--generates-alert", is_flag=True, help="Send to the alert queue")
@click.option("--update", is_flag=True, help="Update an existing content item")
@click.pass_context
def moderate(ctx: click.Context, content_id: str, parts: tuple, **options):
    """Send content CONTENT_ID for moderation."""
    content = [_parse_part(p) for p in parts]
    client = _client(ctx)
    with _errors_to_exit(), client:
        client.moderate(content, content_id=content_id, **options)
    console.print(f"[green]Sent[/] {content_id} for moderation")


@main.command()
@click.argument("content_id")
@click.argument("reporter_id")
@click.option("--reason", default=None, help="Why the content is flagged (spam, abusive, ...)")
@click.option("--comment", default=None)
@click.pass_context
def flag(ctx: click.Context, content_id: str, reporter_id: str, reason: str | None, comment: str | None):
    """Flag content CONTENT_ID on behalf of REPORTER_ID."""
    client = _client(ctx)
    with _errors_to_exit(), client:
        client.flag_content(content_id, reporter_id, reason=reason, comment=comment)
    console.print(f"[green]Flagged[/] {content_id}")


# ── Users ────────────────────────────────────────────────────────────


@main.command(name="add-user")
@click.argument("user_id")
@click.option("--email", default=None)
@click.option("--name", default=None)
@click.option("--display-name", "display_names", multiple=True)
@click.option("--birth-date", default=None, help="YYYY-MM-DD")
@click.option("--image-url", default=None)
@click.option("--application-id", "application_ids", multiple=True)
@click.option("--update", is_flag=True, help="Update an existing user")
@click.pass_context
def add_user(ctx: click.Context, user_id: str, display_names: tuple, application_ids: tuple, **options):
    """Create or update user USER_ID."""
    if display_names:
        options["display_names"] = list(display_names)
    if application_ids:
        options["application_ids"] = list(application_ids)
    client = _client(ctx)
    with _errors_to_exit(), client:
        client.add_user(user_id, **options)
    console.print(f"[green]Saved[/] user {user_id}")


# ── Applications ─────────────────────────────────────────────────────


@main.group()
def app():
    """Manage CleanSpeak applications."""


@app.command(name="create")
@click.argument("name")
@click.option("--notification-path", required=True, help="Path CleanSpeak calls on accept/reject")
@click.option("--id", "application_id", default=None, help="Use this id instead of a random one")
@_moderation_flags
@click.pass_context
def create_app(ctx: click.Context, name: str, notification_path: str, application_id: str | None, **flags):
    """Create application NAME and link its notification server."""
    client = _client(ctx)
    with _errors_to_exit(), client:
        result = client.create_application(
            name, notification_path=notification_path, id=application_id, **flags
        )

    if result is None:
        console.print("[yellow]CleanSpeak is disabled; nothing created.[/]")
        return
    table = Table(title="Application created")
    table.add_column("Name", style="cyan")
    table.add_column("ID")
    table.add_row(name, str(result["id"]))
    console.print(table)


@app.command(name="update")
@click.argument("application_id")
@click.option("--name", default=None)
@_moderation_flags
@click.pass_context
def update_app(ctx: click.Context, application_id: str, name: str | None, **flags):
    """Update application APPLICATION_ID."""
    client = _client(ctx)
    with _errors_to_exit(), client:
        client.update_application(application_id, name=name, **flags)
    console.print(f"[green]Updated[/] {application_id}")


@app.command(name="delete")
@click.argument("application_id")
@click.option("--notification-path", required=True)
@click.pass_context
def delete_app(ctx: click.Context, application_id: str, notification_path: str):
    """Delete application APPLICATION_ID and its notification server."""
    client = _client(ctx)
    with _errors_to_exit(), client:
        client.delete_application(application_id, notification_path=notification_path)
    console.print(f"[green]Deleted[/] {application_id}")


# ── Worker ───────────────────────────────────────────────────────────


@main.command()
@click.option("--redis-url", envvar="CLEANSPEAK_REDIS_URL", required=True, help="Redis URL of the job queue")
@click.option("--once", is_flag=True, help="Exit when the queue is empty")
@click.option("--timeout", default=5, show_default=True, help="Seconds to wait for a job")
@click.pass_context
def worker(ctx: click.Context, redis_url: str, once: bool, timeout: int):
    """Run queued moderate/flag/add-user jobs against CleanSpeak."""
    from cleanspeak.jobs import RedisWorkQueue, run_worker

    queue = RedisWorkQueue.from_url(redis_url)
    client = _client(ctx)
    console.print(f"\n[bold blue]cleanspeak[/] — worker on {redis_url}\n")
    with client:
        processed = run_worker(queue, client, once=once, timeout=timeout)
    console.print(f"Processed {processed} job(s)")


if __name__ == "__main__":
    main()
