"""Club Console CLI: sign in and work the admin moderation queues."""

from __future__ import annotations

import asyncio
import functools
import secrets
import sys
from typing import Awaitable, Callable, Optional

import click
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from clubconsole import __version__
from clubconsole.auth import oauth
from clubconsole.auth.models import Role
from clubconsole.config import load_config
from clubconsole.console import Console, build_console
from clubconsole.errors import ConsoleError
from clubconsole.log import setup_logging
from clubconsole.moderation.kinds import KINDS, USERS
from clubconsole.moderation.models import ALL, FilterSortSpec, ModerationRecord, SortDirection
from clubconsole.notifications import Notification, NotificationKind

console = RichConsole()

_KIND_CHOICE = click.Choice(sorted(KINDS))


def _run(fn: Callable[..., Awaitable[None]]) -> Callable[..., None]:
    """Run an async command body against a started console; report console errors."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> None:
        ctx = click.get_current_context()
        app: Console = ctx.obj

        async def main() -> None:
            await app.auth.start()
            await fn(app, *args, **kwargs)

        try:
            asyncio.run(main())
        except ConsoleError as exc:
            console.print(f"[red]{exc.message}[/]")
            sys.exit(1)

    return wrapper


def _print_notification(notification: Optional[Notification]) -> None:
    if notification is None:
        return
    style = {
        NotificationKind.success: "green",
        NotificationKind.error: "red",
        NotificationKind.info: "blue",
    }[notification.kind]
    console.print(f"[{style}]{notification.text}[/]")


def _summary(record: ModerationRecord, kind_name: str) -> str:
    p = record.payload
    if kind_name == "applications":
        return f"{p.get('firstName', '')} {p.get('lastName', '')} <{p.get('email', '')}>"
    if kind_name == "messages":
        return f"{p.get('name', '')}: {p.get('subject', '')}"
    if kind_name == "users":
        return f"{p.get('displayName', '')} <{p.get('email', '')}>"
    return f"{p.get('title', '')} ({p.get('organizer', '')})"


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="YAML settings file")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str]):
    """Club Console: membership club administration."""
    config = load_config(config_path)
    setup_logging(config.log_level, config.log_format)
    ctx.obj = build_console(config)


# ── Account ──────────────────────────────────────────────────────────


@main.command()
@click.argument("email")
@click.option("--name", "display_name", prompt=True, help="Display name")
@click.password_option()
@_run
async def signup(app: Console, email: str, display_name: str, password: str):
    """Create an account and sign in."""
    identity = await app.auth.sign_up(email, password, display_name)
    console.print(f"[green]Signed up as[/] {identity.email} ([bold]{app.auth.session.role.value}[/])")


@main.command()
@click.argument("email", required=False)
@click.option("--password", prompt=False, hide_input=True, default=None)
@click.option("--google", is_flag=True, help="Sign in with Google")
@click.option("--code", default="", help="OAuth authorization code")
@_run
async def login(app: Console, email: Optional[str], password: Optional[str], google: bool, code: str):
    """Sign in with email and password, or with --google."""
    if google:
        if not code and not oauth.is_demo_mode(app.config):
            state = secrets.token_urlsafe(16)
            console.print("Open this URL to sign in, then re-run with --code:")
            console.print(oauth.get_google_auth_url(app.config, state), soft_wrap=True)
            return
        identity = await app.auth.sign_in_with_oauth("google", code)
    else:
        if not email:
            raise click.UsageError("EMAIL is required unless --google is given")
        if password is None:
            password = click.prompt("Password", hide_input=True)
        identity = await app.auth.sign_in(email, password)
    console.print(f"[green]Signed in as[/] {identity.email} ([bold]{app.auth.session.role.value}[/])")


@main.command()
@_run
async def logout(app: Console):
    """Sign out."""
    await app.auth.sign_out()
    console.print("Signed out.")


@main.command("reset-password")
@click.argument("email")
@_run
async def reset_password(app: Console, email: str):
    """Request a password reset for EMAIL."""
    await app.auth.reset_password(email)
    console.print("Password reset requested. Check your inbox for further instructions.")


@main.command()
@_run
async def whoami(app: Console):
    """Show the signed-in identity and role."""
    session = app.auth.session
    if session.identity is None:
        console.print("[yellow]Not signed in.[/]")
        return
    console.print(Panel(
        f"{session.identity.display_name or '-'}\n{session.identity.email}\nrole: [bold]{session.role.value}[/]",
        title="Session",
    ))


# ── Admin ────────────────────────────────────────────────────────────


@main.command()
@_run
async def dashboard(app: Console):
    """Show admin counters."""
    from clubconsole.dashboard import load_dashboard

    stats = await load_dashboard(app.auth.session, app.store)
    _print_notification(stats.notification)
    table = Table(title="Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Users", str(stats.total_users))
    table.add_row("Members", str(stats.total_members))
    table.add_row("Pending applications", str(stats.pending_applications))
    table.add_row("Unread messages", str(stats.unread_messages))
    table.add_row("Pending proposals", str(stats.pending_proposals))
    console.print(table)


@main.command("list")
@click.argument("kind", type=_KIND_CHOICE)
@click.option("--search", "-s", default="", help="Case-insensitive search term")
@click.option("--status", default=ALL, help="Status (or role) filter; 'all' disables it")
@click.option("--sort", "sort_field", default="createdAt", help="Field to sort by")
@click.option("--direction", default="desc", type=click.Choice(["asc", "desc"]))
@_run
async def list_records(app: Console, kind: str, search: str, status: str, sort_field: str, direction: str):
    """List records of KIND."""
    engine = app.engine(kind)
    await engine.load_all()
    _print_notification(engine.notification)
    rows = engine.view(FilterSortSpec(search, status, sort_field, SortDirection(direction)))

    table = Table(title=f"{kind.capitalize()} ({len(rows)} of {len(engine.records)})")
    table.add_column("ID", style="dim")
    table.add_column(engine.kind.status_field.capitalize(), style="cyan")
    table.add_column("Created")
    table.add_column("Summary")
    for record in rows:
        created = record.created_at.strftime("%b %d, %Y") if record.created_at else "N/A"
        table.add_row(record.id, record.status, created, _summary(record, kind))
    console.print(table)


@main.command()
@click.argument("kind", type=_KIND_CHOICE)
@click.argument("record_id")
@_run
async def show(app: Console, kind: str, record_id: str):
    """Show one record of KIND."""
    engine = app.engine(kind)
    await engine.load_all()
    record = engine.open_detail(record_id)
    lines = [f"[bold]{k}[/]: {v}" for k, v in sorted(record.to_dict(engine.kind.status_field).items())]
    console.print(Panel("\n".join(lines), title=f"{kind} / {record_id}"))


@main.command()
@click.argument("kind", type=_KIND_CHOICE)
@click.argument("record_id")
@click.argument("action")
@_run
async def act(app: Console, kind: str, record_id: str, action: str):
    """Apply ACTION (approve, reject, mark_read) to a record of KIND."""
    engine = app.engine(kind)
    await engine.load_all()
    await engine.transition(record_id, action)
    _print_notification(engine.notification)


@main.command("set-role")
@click.argument("user_id")
@click.argument("role", type=click.Choice([r.value for r in Role]))
@_run
async def set_role(app: Console, user_id: str, role: str):
    """Change the role of USER_ID."""
    if await app.auth.update_user_role(user_id, Role(role)):
        _print_notification(Notification.success(USERS.messages.transitioned["change_role"]))
    else:
        _print_notification(Notification.error(USERS.messages.transition_failed["change_role"]))


@main.command()
@click.argument("kind", type=_KIND_CHOICE)
@click.argument("record_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@_run
async def delete(app: Console, kind: str, record_id: str, yes: bool):
    """Permanently delete a record of KIND."""
    engine = app.engine(kind)
    await engine.load_all()
    engine.get(record_id)
    confirmed = yes or click.confirm(
        f"Are you sure you want to delete this {kind[:-1]}? This action cannot be undone."
    )
    if not await engine.remove(record_id, confirmed):
        if engine.notification is None:
            console.print("Cancelled.")
    _print_notification(engine.notification)


if __name__ == "__main__":
    main()
