# seed.py — Seed the fixed roles and a bootstrap admin
#
# Usage:
#   python -m seed roles
#   python -m seed admin --email a@b.c --first-name Site --last-name Admin
import asyncio
import logging
from typing import Optional

import typer
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models import Role, RoleName, User

logger = logging.getLogger("custor-portal.seed")

DEFAULT_ROLES = [
    (RoleName.ADMIN, "Manages users, roles and teams"),
    (RoleName.MENTOR, "Leads teams and reviews intern work"),
    (RoleName.INTERN, "Works on assigned project tasks"),
]


async def seed_roles(db: AsyncSession) -> int:
    """Insert any missing default roles. Returns the number inserted."""
    result = await db.execute(select(Role.name))
    existing = set(result.scalars().all())
    added = 0
    for name, description in DEFAULT_ROLES:
        if name.value not in existing:
            db.add(Role(name=name.value, description=description))
            added += 1
    if added:
        await db.commit()
        logger.info(f"Seeded {added} role(s)")
    return added


async def seed_admin(
    db: AsyncSession, email: str, password: str, first_name: str = "Admin", last_name: str = "User",
) -> User:
    from auth import AuthService, is_valid_password

    if not is_valid_password(password):
        raise ValueError("Admin password does not meet complexity requirements")

    await seed_roles(db)
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    user = result.scalar_one_or_none()
    if user:
        logger.info(f"Admin {email} already exists")
        return user

    role = (await db.execute(select(Role).where(Role.name == RoleName.ADMIN.value))).scalar_one()
    user = User(
        email=email,
        password_hash=AuthService.hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    logger.info(f"Created admin {email}")
    return user


async def _run(admin: Optional[tuple] = None) -> None:
    from database import init_db, get_db_context, close_db

    await init_db()
    try:
        if admin:
            async with get_db_context() as db:
                await seed_admin(db, *admin)
    finally:
        await close_db()


app = typer.Typer(name="custor-seed", help="Seed Custor Portal reference data")


@app.callback()
def _configure_logging():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s %(message)s")


@app.command("roles")
def roles_command():
    """Create the tables and the Admin / Mentor / Intern roles."""
    asyncio.run(_run())
    typer.echo("✅ Roles seeded")


@app.command("admin")
def admin_command(
    email: str = typer.Option(..., "--email", help="Admin login email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Admin password"),
    first_name: str = typer.Option("Admin", "--first-name"),
    last_name: str = typer.Option("User", "--last-name"),
):
    """Seed the roles and create a bootstrap admin if it does not exist yet."""
    try:
        asyncio.run(_run((email, password, first_name, last_name)))
    except ValueError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Admin {email} ready")


if __name__ == "__main__":
    app()
