from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Iterable, Mapping, Optional, Sequence

import asyncpg

from khata.db.models import Expense, Group, User
from khata.logging import get_logger, sql_logger
from khata.services.settlement import ExpenseRecord, Split


class NotFoundError(LookupError):
    pass


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg expects a plain postgresql/postgres scheme, without "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetch", query=query, args=args)
        return await self._pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchrow", query=query, args=args)
        return await self._pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchval", query=query, args=args)
        return await self._pool.fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.execute", query=query, args=args)
        return await self._pool.execute(query, *args)

    async def executemany(self, command: str, args: Iterable[Iterable[Any]]) -> None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.executemany", query=command)
        await self._pool.executemany(command, args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        await self._ensure_pool()
        assert self._pool
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                sql_logger.info("sql.transaction.begin")
                yield conn

    async def _ensure_pool(self) -> None:
        if self._pool is None:
            await self.connect()


class KhataRepository:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._log = get_logger(__name__)

    async def ensure_user(self, tg_id: int, username: Optional[str], full_name: Optional[str]) -> int:
        row = await self.db.fetchrow(
            """
            INSERT INTO users (tg_id, username, full_name)
            VALUES ($1, $2, $3)
            ON CONFLICT (tg_id) DO UPDATE
                SET username = EXCLUDED.username,
                    full_name = EXCLUDED.full_name
            RETURNING id
            """,
            tg_id,
            username,
            full_name,
        )
        assert row is not None
        return int(row["id"])

    async def get_user_by_username(self, username: str) -> User | None:
        clean = username.lstrip("@")
        row = await self.db.fetchrow("SELECT * FROM users WHERE lower(username) = lower($1)", clean)
        return User(**dict(row)) if row else None

    async def get_users(self, user_ids: Sequence[int]) -> list[asyncpg.Record]:
        if not user_ids:
            return []
        return await self.db.fetch(
            "SELECT id AS user_id, tg_id, username, full_name FROM users WHERE id = ANY($1::bigint[])",
            list(user_ids),
        )

    async def create_group(self, name: str, created_by: int) -> Group:
        async with self.db.transaction() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO groups (name, created_by)
                VALUES ($1, $2)
                RETURNING *
                """,
                name,
                created_by,
            )
            assert row is not None
            await conn.execute(
                "INSERT INTO group_members (group_id, user_id) VALUES ($1, $2)",
                row["id"],
                created_by,
            )
        self._log.info("group.created", group_id=row["id"], created_by=created_by)
        return Group(**dict(row))

    async def get_group(self, group_id: int) -> Group | None:
        row = await self.db.fetchrow("SELECT * FROM groups WHERE id = $1", group_id)
        return Group(**dict(row)) if row else None

    async def require_group(self, group_id: int) -> Group:
        group = await self.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group #{group_id} not found.")
        return group

    async def list_user_groups(self, user_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT g.*,
                   (SELECT count(*) FROM group_members m WHERE m.group_id = g.id) AS member_count,
                   (SELECT count(*) FROM expenses e WHERE e.group_id = g.id) AS expense_count
            FROM groups g
            JOIN group_members gm ON gm.group_id = g.id
            WHERE gm.user_id = $1
            ORDER BY g.created_at, g.id
            """,
            user_id,
        )

    async def add_member(self, group_id: int, user_id: int) -> bool:
        status = await self.db.execute(
            """
            INSERT INTO group_members (group_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT (group_id, user_id) DO NOTHING
            """,
            group_id,
            user_id,
        )
        added = status.endswith(" 1")
        if added:
            self._log.info("group.member.added", group_id=group_id, user_id=user_id)
        return added

    async def remove_member(self, group_id: int, user_id: int) -> None:
        await self.db.execute(
            "DELETE FROM group_members WHERE group_id = $1 AND user_id = $2",
            group_id,
            user_id,
        )
        self._log.info("group.member.removed", group_id=group_id, user_id=user_id)

    async def get_group_members(self, group_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT gm.user_id, gm.joined_at, u.tg_id, u.username, u.full_name
            FROM group_members gm
            JOIN users u ON u.id = gm.user_id
            WHERE gm.group_id = $1
            ORDER BY gm.joined_at, gm.user_id
            """,
            group_id,
        )

    async def delete_group(self, group_id: int) -> None:
        await self.db.execute("DELETE FROM groups WHERE id = $1", group_id)
        self._log.info("group.deleted", group_id=group_id)

    async def create_expense(
        self,
        group_id: int,
        description: str,
        amount: Decimal,
        paid_by: int,
        created_by: int,
        shares: Mapping[int, Decimal],
    ) -> Expense:
        async with self.db.transaction() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO expenses (group_id, description, amount, paid_by, created_by)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING *
                """,
                group_id,
                description,
                amount,
                paid_by,
                created_by,
            )
            assert row is not None
            if shares:
                await conn.executemany(
                    """
                    INSERT INTO expense_splits (expense_id, user_id, amount)
                    VALUES ($1, $2, $3)
                    """,
                    [(row["id"], user_id, share) for user_id, share in shares.items()],
                )
        self._log.info("expense.created", expense_id=row["id"], group_id=group_id, splits=len(shares))
        return Expense(**dict(row))

    async def get_expense(self, expense_id: int) -> Expense | None:
        row = await self.db.fetchrow("SELECT * FROM expenses WHERE id = $1", expense_id)
        return Expense(**dict(row)) if row else None

    async def require_expense(self, expense_id: int) -> Expense:
        expense = await self.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense #{expense_id} not found.")
        return expense

    async def get_group_expenses(self, group_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT e.*,
                   u.username AS payer_username,
                   u.full_name AS payer_full_name,
                   u.tg_id AS payer_tg_id
            FROM expenses e
            LEFT JOIN users u ON u.id = e.paid_by
            WHERE e.group_id = $1
            ORDER BY e.spent_at, e.id
            """,
            group_id,
        )

    async def delete_expense(self, expense_id: int) -> None:
        await self.db.execute("DELETE FROM expenses WHERE id = $1", expense_id)
        self._log.info("expense.deleted", expense_id=expense_id)

    async def load_settlement_input(self, group_id: int) -> tuple[list[int], list[ExpenseRecord]]:
        """Member ids and expense records for the settlement engine.

        Both come back in a stable order so repeated requests over the same
        history produce the same plan.
        """
        members = await self.get_group_members(group_id)
        expenses = await self.db.fetch(
            "SELECT id, paid_by, amount FROM expenses WHERE group_id = $1 ORDER BY spent_at, id",
            group_id,
        )
        split_rows = await self.db.fetch(
            """
            SELECT s.expense_id, s.user_id, s.amount
            FROM expense_splits s
            JOIN expenses e ON e.id = s.expense_id
            WHERE e.group_id = $1
            ORDER BY s.expense_id, s.user_id
            """,
            group_id,
        )

        splits: dict[int, list[Split]] = {}
        for row in split_rows:
            splits.setdefault(row["expense_id"], []).append(Split(member=row["user_id"], amount=row["amount"]))

        records = [
            ExpenseRecord(
                payer=exp["paid_by"],
                amount=exp["amount"],
                splits=tuple(splits.get(exp["id"], ())),
            )
            for exp in expenses
        ]
        return [member["user_id"] for member in members], records


_global_repo: KhataRepository | None = None


def set_global_repository(repo: KhataRepository) -> None:
    global _global_repo
    _global_repo = repo


def get_global_repository() -> KhataRepository:
    if _global_repo is None:
        raise RuntimeError("Repository is not initialized")
    return _global_repo
