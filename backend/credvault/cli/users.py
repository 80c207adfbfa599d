"""Flask CLI commands for operator-side account inspection and session control."""

from __future__ import annotations

import dataclasses
import json
import logging

import click
from flask.cli import with_appcontext

from credvault.api.deps import build_session_service
from credvault.services.session import SessionService

LOGGER = logging.getLogger(__name__)


def _resolve_user_id(service: SessionService, username: str) -> int:
    with service.ro_uow() as uow:
        user = uow.users.find_by_username_or_email(username=username)
        if user is None:
            raise click.ClickException(f"No user named '{username}'.")
        return user.id


@click.group("users")
def users_cli() -> None:
    """Inspect accounts and manage their refresh sessions."""


@users_cli.command("show")
@click.argument("username")
@with_appcontext
def show(username: str) -> None:
    """Print the public view of USERNAME as JSON."""
    service = build_session_service()
    user = service.get_current_user(_resolve_user_id(service, username))
    click.echo(json.dumps(dataclasses.asdict(user), default=str, indent=2))


@users_cli.command("revoke-session")
@click.argument("username")
@with_appcontext
def revoke_session(username: str) -> None:
    """Clear the stored refresh token of USERNAME (admin-side logout)."""
    service = build_session_service()
    user_id = _resolve_user_id(service, username)
    service.logout(user_id)
    LOGGER.info("Session revoked from CLI", extra={"event": "cli.revoke_session", "user_id": user_id})
    click.echo(f"Refresh session cleared for '{username}'.")
