"""
Flask CLI commands:
    flask --app api seed
    flask --app api create-admin --email admin@template.com --password 'Admin@123'
"""
import click
from flask.cli import with_appcontext

from models import storage
from models.seed import seed_rbac, seed_admin
from utils.security import hash_password


@click.command("seed")
@with_appcontext
def seed_command():
    """Create the default roles and permissions."""
    created = seed_rbac(storage.get_session())
    click.echo(f"Seeded {created['permissions']} permissions and {created['roles']} roles")


@click.command("create-admin")
@with_appcontext
@click.option("--email", envvar="ADMIN_EMAIL", default="admin@template.com", show_default=True)
@click.option("--password", envvar="ADMIN_PASSWORD", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--name", default="Admin", show_default=True)
def create_admin_command(email, password, name):
    """Create an admin user (no-op when the email exists)."""
    if len(password) < 8:
        raise click.BadParameter("must be at least 8 characters", param_hint="--password")
    user, created = seed_admin(storage.get_session(), email, hash_password(password), name)
    if created:
        click.echo(f"Admin user created: {user.email}")
    else:
        click.echo(f"User already exists: {user.email}")


def register_commands(app):
    app.cli.add_command(seed_command)
    app.cli.add_command(create_admin_command)
