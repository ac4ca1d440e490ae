from datetime import datetime, timezone
from uuid import uuid4

import pytest

from namedsql.execution.connection import ConnectionSettings
from namedsql.execution.constraints import ConstraintViolationMapper
from namedsql.execution.database import Database
from namedsql.execution.errors import ResourceClosedError

# ==================================================
# Named Query Integration
# ==================================================


class EmailInUseError(Exception):
    pass


@pytest.mark.asyncio
async def test_ping(db: Database) -> None:
    assert await db.ping() is True


@pytest.mark.asyncio
async def test_named_insert_and_select_round_trip(db: Database, users_table: str) -> None:
    user_id = uuid4()
    created_at = datetime(2025, 12, 24, 18, 0, tzinfo=timezone.utc)

    await db.named_query(
        f"""
        insert into {users_table} (id, email, password, role, created_at, deleted_at)
        values ($id, $email, $password, $role, $created_at, $deleted_at)
        """,
        {
            "id": user_id,
            "email": "admin@site.com",
            "password": "hashed",
            "role": "admin",
            "created_at": created_at,
            "deleted_at": None,
        },
    )

    result = await db.named_query(
        f"select id, email, created_at, deleted_at from {users_table} where id = $id",
        {"id": user_id},
    )

    assert result.row_count == 1
    row = result.first()
    assert row is not None
    assert row["id"] == user_id
    assert row["email"] == "admin@site.com"
    assert row["created_at"] == created_at
    assert row["deleted_at"] is None


@pytest.mark.asyncio
async def test_array_argument_feeds_any(db: Database, users_table: str) -> None:
    ids = [uuid4(), uuid4(), uuid4()]
    for index, user_id in enumerate(ids):
        await db.named_query(
            f"insert into {users_table} (id, email, password) values ($id, $email, $password)",
            {"id": user_id, "email": f"u{index}@site.com", "password": "x"},
        )

    result = await db.named_query(
        f"select email from {users_table} where email = any($emails::text[]) order by email",
        {"emails": ["u0@site.com", "u2@site.com", "missing@site.com"]},
    )

    assert [row["email"] for row in result] == ["u0@site.com", "u2@site.com"]


@pytest.mark.asyncio
async def test_cast_and_null_filters(db: Database, users_table: str) -> None:
    await db.named_query(
        f"insert into {users_table} (id, email, password) values ($id, $email, $password)",
        {"id": uuid4(), "email": "cast@site.com", "password": "x"},
    )
    template = f"""
        select u.email from {users_table} u
        where ($email::text is null or u.email = $email::text)
    """

    everyone = await db.named_query(template, {"email": None})
    one = await db.named_query(template, {"email": "cast@site.com"})
    none = await db.named_query(template, {"email": "other@site.com"})

    assert everyone.row_count == 1
    assert one.row_count == 1
    assert none.row_count == 0


@pytest.mark.asyncio
async def test_update_reports_affected_rows(db: Database, users_table: str) -> None:
    await db.named_query(
        f"insert into {users_table} (id, email, password) values ($id, $email, $password)",
        {"id": uuid4(), "email": "flag@site.com", "password": "x"},
    )

    result = await db.named_query(
        f"update {users_table} set is_active = $is_active where email = $email",
        {"is_active": False, "email": "flag@site.com"},
    )

    assert result.row_count == 1
    assert result.rows == []


@pytest.mark.asyncio
async def test_unique_violation_maps_to_domain_error(db: Database, users_table: str) -> None:
    mapper = ConstraintViolationMapper(
        {f"{users_table}_email_unique": lambda exc: EmailInUseError("email address already in use")}
    )
    insert = f"insert into {users_table} (id, email, password) values ($id, $email, $password)"

    await db.named_query(insert, {"id": uuid4(), "email": "taken@site.com", "password": "x"})
    with pytest.raises(EmailInUseError):
        async with mapper.guard():
            await db.named_query(insert, {"id": uuid4(), "email": "taken@site.com", "password": "x"})


@pytest.mark.asyncio
async def test_disconnect_is_terminal(database_url: str) -> None:
    db = await Database.connect(ConnectionSettings(url=database_url, max_pool_size=1))
    assert await db.ping() is True

    await db.disconnect()

    with pytest.raises(ResourceClosedError):
        await db.ping()
    with pytest.raises(ResourceClosedError):
        await db.open()
