"""Flask CLI commands for inspecting and revoking refresh sessions."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from tokenguard.services._shared.errors import SessionStoreError
from tokenguard.services.sessions.provider import get_session_service

LOGGER = logging.getLogger(__name__)


@click.group("sessions")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def sessions_cli(verbose: bool) -> None:
    """Refresh session administration commands."""
    LOGGER.setLevel(logging.DEBUG if verbose else logging.INFO)


@sessions_cli.command("list")
@click.argument("owner_id")
@click.option("--active-only", is_flag=True, help="Hide revoked sessions.")
@with_appcontext
def list_sessions(owner_id: str, active_only: bool) -> None:
    """List the refresh sessions of OWNER_ID, oldest first."""
    try:
        views = get_session_service().list_sessions(owner_id)
    except SessionStoreError as exc:
        raise click.ClickException(str(exc)) from exc

    if active_only:
        views = [v for v in views if not v.is_revoked]
    if not views:
        click.echo("(no sessions)")
        return
    for v in views:
        state = "revoked" if v.is_revoked else "active"
        click.echo(
            f"{v.id}  {state:<7}  created={v.created_at.isoformat()}  "
            f"expires={v.expires_at.isoformat()}"
        )


@sessions_cli.command("revoke-all")
@click.argument("owner_id")
@click.confirmation_option(prompt="Revoke every session of this owner?")
@with_appcontext
def revoke_all(owner_id: str) -> None:
    """Revoke every refresh session of OWNER_ID."""
    try:
        count = get_session_service().revoke_all_sessions(owner_id)
    except SessionStoreError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Revoked {count} session(s) for {owner_id}.")
