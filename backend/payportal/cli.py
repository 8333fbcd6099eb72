# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/payportal/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin and employee accounts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role employee]
#   List accounts with their roles.
# - python -m flask users create --name "Ann Lee" --email ann@x.com --password "Abcdef1!" --role employee
#   Create an account (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import ADMIN, EMPLOYEE, ROLES
from .services import throttle_service
from .services.auth_service import DuplicateEmailError, create_user, find_user_by_email
from .validation import ValidationError, validate_account_payload


DEFAULT_PASSWORD = "Password123!"

DEFAULT_ACCOUNTS = (
    ("Portal Admin", "admin@payportal.local", ADMIN),
    ("Portal Employee", "employee@payportal.local", EMPLOYEE),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, help='Password for the default accounts')
@with_appcontext
def init_system(password):
    """
    Initialize the portal: tables plus a default admin and employee.

    Customers register themselves; staff accounts come from here or from
    POST /api/admin/users.

    SECURITY: Change the default passwords immediately in production!
    """
    click.echo("START Initializing payments portal...")

    db.create_all()
    click.echo("PASS Tables ready")

    for name, email, role in DEFAULT_ACCOUNTS:
        existing = find_user_by_email(email)
        if existing:
            click.echo(f"PASS Using existing {role}: {email} (ID: {existing.id})")
            continue
        try:
            user = create_user(name=name, email=email, password=password, role=role)
        except ValidationError as e:
            click.echo(f"FAIL Password validation failed: {e.message}")
            return
        click.echo(f"PASS Created {role}: {email} (ID: {user.id})")

    click.echo("DONE System initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name (letters and spaces)')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a new account.

    Same rules as registration. Password must have:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (@$!%*?&)
    """
    try:
        fields = validate_account_payload({
            "name": name,
            "email": email,
            "password": password,
            "role": role,
        })
        user = create_user(**fields)

        click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except ValidationError as e:
        click.echo(f"FAIL {e.message}")
        for error in e.errors:
            click.echo(f"     {error['field']}: {error['message']}")
    except DuplicateEmailError as e:
        click.echo(f"FAIL {str(e)}")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all accounts with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<40} {'Role'}")
    click.echo("="*90)

    for user in users:
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<40} {user.role}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = throttle_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
