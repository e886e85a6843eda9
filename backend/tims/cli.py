# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tims/cli.py
# Usage, from backend/ with FLASK_APP=wsgi.py in the environment:
#
#   flask system init [--admin-email admin@tims.local]
#       create tables if missing, then seed the admin account once
#   flask system reset-db --yes
#       throwaway databases only: drop every table and recreate the schema
#   flask users list
#   flask users create --username noc1 --email noc1@tims.local \
#       --full-name "NOC Operator" --password "..." --role manager
#       omitted options are prompted for
#   flask sessions cleanup --retention-days 30
#       purge dead session rows past the retention window

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, USER_ROLES
from .services.auth_service import create_user, PasswordValidationError, MIN_PASSWORD_LENGTH
from .services.session_service import cleanup_expired_sessions
from .validation import ValidationError, ConflictError


DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@tims.local', show_default=True, help='Email of the default admin')
@with_appcontext
def init_system(admin_email):
    """
    Bootstrap a fresh database: tables plus an admin account.

    Safe to rerun. The seeded password is DEFAULT_ADMIN_PASSWORD and must be
    rotated before the API is exposed anywhere real.
    """
    click.echo("START Initializing TIMS...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(username="admin").first()
    if existing:
        click.echo("WARN  User 'admin' already exists, skipping...")
    else:
        try:
            create_user(
                username="admin",
                email=admin_email,
                password=DEFAULT_ADMIN_PASSWORD,
                full_name="System Administrator",
                role="admin",
            )
            click.echo(f"PASS Created user: admin ({admin_email}) with role 'admin'")
        except (ValidationError, ConflictError, PasswordValidationError) as e:
            click.echo(f"FAIL Failed to create admin: {str(e)}")
            return

    click.echo("DONE TIMS is ready")
    click.echo(f"     login: admin / {DEFAULT_ADMIN_PASSWORD} (rotate it before going live)")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate the whole schema. Every row is lost."""
    if not yes:
        click.confirm("WARN Every table will be dropped. Continue?", abort=True)

    click.echo("DROP  Removing schema...")
    db.drop_all()

    click.echo("BUILD Recreating schema...")
    db.create_all()

    click.echo("PASS Schema rebuilt; run 'flask system init' to seed the admin account.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, full_name, password, role):
    """
    Add an account. The password has to pass the same strength check as the
    API: MIN_PASSWORD_LENGTH characters with upper, lower, digit and symbol.
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            role=role,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo(f"Need {MIN_PASSWORD_LENGTH}+ characters mixing upper, lower, digit and symbol")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {active_str}")

    click.echo("="*90 + "\n")


@click.group('sessions')
def sessions_group():
    """Session token maintenance."""


@sessions_group.command('cleanup')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Attach the command groups to app.cli."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sessions_group)
