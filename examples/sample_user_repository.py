"""
Repository example: user CRUD written against the QueryExecutor contract, so the
same methods run on a Database or inside a Transaction.

Requires DATABASE_URL (a .env file in the working directory is honoured) and the
schema in examples/migrations/create_users_table.sql.

Run:
    poetry run python examples/sample_user_repository.py
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from namedsql.execution.base import QueryExecutor
from namedsql.execution.connection import ConnectionSettings
from namedsql.execution.constraints import ConstraintViolationMapper
from namedsql.execution.database import Database
from namedsql.execution.transaction import Transaction


class EmailInUseError(Exception):
    pass


@dataclass
class UserEntity:
    email: str
    password: str
    role: str = "user"
    is_active: bool = True
    user_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    deleted_at: datetime | None = None


# ==================================================
# Queries
# ==================================================

CREATE_USER = """
    insert into users (user_id, email, password, role, is_active, created_at)
    values ($user_id, $email, $password, $role, $is_active, $created_at)
"""

FIND_BY_ID = """
    select * from users
    where user_id = $user_id
    limit 1
"""

UPDATE_USER = """
    update users
    set email = $email,
        password = $password,
        role = $role,
        is_active = $is_active,
        created_at = $created_at,
        deleted_at = $deleted_at
    where user_id = $user_id
"""

DELETE_USER = """
    delete from users
    where user_id = $user_id
"""


class UserRepo:
    def __init__(self) -> None:
        self.constraints = ConstraintViolationMapper(
            {"email_unique": lambda exc: EmailInUseError("email address already in use")}
        )

    async def create_user(self, db: QueryExecutor, user: UserEntity) -> None:
        async with self.constraints.guard(operation="create_user"):
            await db.named_query(CREATE_USER, user)

    async def find_by_id(self, db: QueryExecutor, user_id: UUID) -> UserEntity | None:
        result = await db.named_query(FIND_BY_ID, {"user_id": user_id})
        row = result.first()
        if row is None:
            return None
        return UserEntity(**row)

    async def update_user(self, db: QueryExecutor, user: UserEntity) -> None:
        async with self.constraints.guard(operation="update_user"):
            await db.named_query(UPDATE_USER, user)

    async def delete_user(self, db: QueryExecutor, user_id: UUID) -> None:
        await db.named_query(DELETE_USER, {"user_id": user_id})


async def main() -> None:
    db = await Database.connect(ConnectionSettings.from_env())
    try:
        assert await db.ping()
        print("-- connection established")

        repo = UserRepo()
        users = [
            UserEntity(email="admin-two@site.com", password="my-strong-hashed-password", role="admin"),
            UserEntity(email="user-three@site.com", password="my-strong-hashed-password"),
        ]

        async def create_all(tx: Transaction) -> None:
            for user in users:
                await repo.create_user(tx, user)

        await db.transaction(create_all)

        found = await repo.find_by_id(db, users[0].user_id)
        print(found)

        try:
            await repo.create_user(db, UserEntity(email="admin-two@site.com", password="x"))
        except EmailInUseError as exc:
            print(f"-- {exc}")

        for user in users:
            await repo.delete_user(db, user.user_id)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
