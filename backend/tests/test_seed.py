# tests/test_seed.py — Reference data seeding
import pytest
from sqlalchemy import select
from typer.testing import CliRunner

from auth import AuthService
from models import Role, RoleName
from seed import app, seed_admin, seed_roles


@pytest.mark.asyncio
async def test_seed_roles_is_idempotent(db_session):
    assert await seed_roles(db_session) == 3
    assert await seed_roles(db_session) == 0
    names = (await db_session.execute(select(Role.name).order_by(Role.id))).scalars().all()
    assert names == [r.value for r in RoleName]


@pytest.mark.asyncio
async def test_seed_admin(db_session):
    user = await seed_admin(db_session, "root@custor.test", "Sup3r$ecret", "Site", "Admin")
    assert AuthService.verify_password("Sup3r$ecret", user.password_hash)

    again = await seed_admin(db_session, "ROOT@custor.test", "Sup3r$ecret")
    assert again.id == user.id


@pytest.mark.asyncio
async def test_seed_admin_rejects_weak_password(db_session):
    with pytest.raises(ValueError):
        await seed_admin(db_session, "root@custor.test", "password")


def test_cli_lists_commands():
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "roles" in result.output
    assert "admin" in result.output


@pytest.mark.asyncio
async def test_seed_admin_rejects_overlong_password(db_session):
    with pytest.raises(ValueError):
        await seed_admin(db_session, "root@custor.test", "Aa1!" + "x" * 80)
