"""CLI tools for back-office administration."""

import asyncio

import click

from assurance.core.structured_logging import configure_logging
from assurance.db.enums import UserRole, UserStatus
from assurance.db.session import SessionLocal
from assurance.services import case_service, notification_service, user_service


@click.group()
def cli():
    """Assurance back-office CLI tools."""
    configure_logging()


@cli.command()
@click.option("--username", required=True, help="Login name")
@click.option("--display-name", default=None, help="Optional display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    default=UserRole.USER.value,
    show_default=True,
)
@click.option("--logged-in", is_flag=True, help="Stamp a login so the user receives broadcasts")
def create_user(username: str, display_name: str | None, role: str, logged_in: bool):
    """
    Add a user to the directory.

    Example:
        python -m assurance.cli create-user --username alice --role ADMIN --logged-in
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(
            db,
            username=username,
            display_name=display_name,
            role=UserRole(role),
            status=UserStatus.REGISTERED,
        )
        if logged_in:
            user_service.record_login(db, user)
        click.echo(f"✓ Created user: {user.username} ({user.role})")
    except user_service.UserAlreadyExistsError:
        click.echo(f"❌ User '{username}' already exists")
    finally:
        db.close()


@cli.command()
def purge_notifications():
    """Hard-delete notifications older than the retention window."""
    db = SessionLocal()
    try:
        count = notification_service.purge_old_notifications(db)
        click.echo(f"✓ Purged {count} notifications")
    finally:
        db.close()


@cli.command()
def cleanup_duplicates():
    """Delete cases whose payload duplicates a more recent case."""
    db = SessionLocal()
    try:
        count = case_service.cleanup_duplicate_cases(db)
        click.echo(f"✓ Removed {count} duplicate cases")
    finally:
        db.close()


@cli.command()
@click.option("--limit", default=None, type=int, help="Batch size (default: WORKER_BATCH_SIZE)")
def run_jobs(limit: int | None):
    """Process one batch of pending background jobs and exit."""
    from assurance.worker import run_pending_jobs

    db = SessionLocal()
    try:
        completed, failed = asyncio.run(run_pending_jobs(db, limit=limit))
        click.echo(f"✓ Jobs completed: {completed}, failed: {failed}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
