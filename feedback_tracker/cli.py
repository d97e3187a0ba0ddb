import click
from flask.cli import with_appcontext

from feedback_tracker.errors import Conflict, ValidationFailed
from feedback_tracker.models.user import ROLE_ADMIN, ROLE_CHOICES, ROLE_USER
from feedback_tracker.services import identity as identity_store
from feedback_tracker.services.sessions import get_session_store

@click.group()
def users():
    """User management."""

@users.command("create")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--role", type=click.Choice(list(ROLE_CHOICES)), default=ROLE_USER)
@with_appcontext
def users_create(name, email, password, role):
    try:
        user = identity_store.create_user(name=name, email=email, password=password, role=role)
    except Conflict:
        raise click.ClickException("User already exists")
    except ValidationFailed as e:
        raise click.ClickException("; ".join(f"{k}: {v}" for k, v in e.errors.items()))
    click.echo(f"User created id={user.id} email={user.email} role={user.role}")

@users.command("promote")
@click.option("--email", required=True)
@click.option("--role", type=click.Choice(list(ROLE_CHOICES)), default=ROLE_ADMIN)
@with_appcontext
def users_promote(email, role):
    """Change a user's role. Existing sessions keep the old role until re-login."""
    user = identity_store.find_by_email(email)
    if not user:
        raise click.ClickException("User not found")
    identity_store.set_role(user, role)
    click.echo(f"Set role of {email} to {role}")

@click.group()
def sessions():
    """Login session housekeeping."""

@sessions.command("purge")
@with_appcontext
def sessions_purge():
    removed = get_session_store().purge_expired()
    click.echo(f"Purged {removed} expired session(s)")

def register_cli(app):
    app.cli.add_command(users)
    app.cli.add_command(sessions)
