"""
bizdir.tools.cli

`bizdir-admin` operations CLI.

Responsibilities:
- Seed the platform ADMIN account on a fresh database.
- Reset a user's password from the shell (support/ops path, no API exposure).

Usage:
    bizdir-admin seed-admin --email admin@example.com --password secret1
    bizdir-admin reset-password --email owner@example.com --password newpass
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from bizdir.auth.passwords import MIN_PASSWORD_LENGTH, hash_password
from bizdir.db.init_db import init_db
from bizdir.db.models import UserRole
from bizdir.db.repositories.users import UserRepo, normalize_email
from bizdir.db.session import create_engine, create_sessionmaker, session_scope
from bizdir.observability.logging import configure_logging, get_logger
from bizdir.settings import Settings

log = get_logger(__name__)

app = typer.Typer(
    name="bizdir-admin",
    help="Business directory operations: admin seeding and password resets.",
    no_args_is_help=True,
)

console = Console()


async def seed_admin(settings: Settings, *, email: str, password: str, name: str | None) -> bool:
    """
    Create the ADMIN user unless the email is already registered.
    Returns True when a user was created.
    """

    engine = create_engine(settings)
    try:
        if settings.env in ("dev", "test"):
            await init_db(engine)
        async with session_scope(create_sessionmaker(engine)) as session:
            users = UserRepo(session)
            if await users.get_by_email(email) is not None:
                return False
            user = await users.create(
                email=email, password_hash=hash_password(password), role=UserRole.admin, name=name
            )
            log.info("admin_seeded", user_id=str(user.id))
            return True
    finally:
        await engine.dispose()


async def reset_password(settings: Settings, *, email: str, password: str) -> bool:
    engine = create_engine(settings)
    try:
        async with session_scope(create_sessionmaker(engine)) as session:
            users = UserRepo(session)
            user = await users.get_by_email(email)
            if user is None:
                return False
            await users.set_password_hash(user, hash_password(password))
            log.info("password_reset", user_id=str(user.id))
            return True
    finally:
        await engine.dispose()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        console.print(f"[red]Password must be at least {MIN_PASSWORD_LENGTH} characters.[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for structured logs."),
) -> None:
    """
    Business directory operations CLI.
    """
    configure_logging(service_name="bizdir-admin", level=log_level)


@app.command("seed-admin")
def seed_admin_command(
    email: str = typer.Option(..., "--email", help="Admin login email."),
    password: str = typer.Option(..., "--password", help="Admin password."),
    name: str | None = typer.Option(None, "--name", help="Display name."),
) -> None:
    """
    Create the platform admin if it does not exist yet.
    """
    _check_password(password)
    created = asyncio.run(seed_admin(Settings(), email=email, password=password, name=name))
    if created:
        console.print(f"[green]Admin {normalize_email(email)} created.[/green]")
    else:
        console.print(f"[yellow]User {normalize_email(email)} already exists; nothing to do.[/yellow]")


@app.command("reset-password")
def reset_password_command(
    email: str = typer.Option(..., "--email", help="User login email."),
    password: str = typer.Option(..., "--password", help="New password."),
) -> None:
    """
    Re-hash a user's password.
    """
    _check_password(password)
    if not asyncio.run(reset_password(Settings(), email=email, password=password)):
        console.print(f"[red]User {normalize_email(email)} not found.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Password updated for {normalize_email(email)}.[/green]")


if __name__ == "__main__":
    app()
