from decimal import Decimal

import pytest

from khata.handlers.expenses import build_balances_message, build_settlement_message, resolve_shares
from khata.services.settlement import ExpenseRecord, Split
from khata.utils.parse import ExpenseArgs


class StubRepo:
    def __init__(self) -> None:
        self.members = [
            {"user_id": 1, "tg_id": 101, "username": "Anna", "full_name": None},
            {"user_id": 2, "tg_id": 102, "username": "bob", "full_name": None},
            {"user_id": 3, "tg_id": 103, "username": None, "full_name": "Chandra"},
        ]
        self.former_members = [{"user_id": 4, "tg_id": 104, "username": "dev", "full_name": None}]
        self.records = [
            ExpenseRecord(payer=1, amount=Decimal("90"), splits=(Split(1, Decimal("30")), Split(2, Decimal("30")), Split(3, Decimal("30")))),
        ]

    async def get_group_members(self, group_id: int):
        return self.members

    async def get_users(self, user_ids):
        known = self.members + self.former_members
        return [row for row in known if row["user_id"] in user_ids]

    async def load_settlement_input(self, group_id: int):
        return [row["user_id"] for row in self.members], self.records


@pytest.mark.asyncio
async def test_resolve_shares_equal():
    args = ExpenseArgs(group_id=1, description="Dinner", amount=Decimal("100.00"))

    shares = await resolve_shares(StubRepo(), args)

    assert shares == {1: Decimal("33.34"), 2: Decimal("33.33"), 3: Decimal("33.33")}


@pytest.mark.asyncio
async def test_resolve_shares_custom():
    args = ExpenseArgs(
        group_id=1,
        description="Cab",
        amount=Decimal("30.00"),
        shares=[("anna", Decimal("20.00")), ("bob", Decimal("10.00"))],
    )

    assert await resolve_shares(StubRepo(), args) == {1: Decimal("20.00"), 2: Decimal("10.00")}


@pytest.mark.asyncio
async def test_resolve_shares_rejects_outsider_and_bad_total():
    repo = StubRepo()
    outsider = ExpenseArgs(group_id=1, description="Cab", amount=Decimal("10"), shares=[("zed", Decimal("10"))])
    with pytest.raises(ValueError, match="@zed"):
        await resolve_shares(repo, outsider)

    short = ExpenseArgs(group_id=1, description="Cab", amount=Decimal("10"), shares=[("bob", Decimal("4"))])
    with pytest.raises(ValueError, match="expected 10.00"):
        await resolve_shares(repo, short)


@pytest.mark.asyncio
async def test_build_settlement_message():
    text = await build_settlement_message(StubRepo(), 1)

    assert text.splitlines() == [
        "To settle up:",
        "• @bob → @Anna: 30.00 INR",
        "• Chandra → @Anna: 30.00 INR",
    ]


@pytest.mark.asyncio
async def test_build_balances_message():
    text = await build_balances_message(StubRepo(), 1)

    assert "• @Anna: gets back 60.00 INR" in text
    assert "• Chandra: owes 30.00 INR" in text


@pytest.mark.asyncio
async def test_settlement_message_labels_member_who_left():
    repo = StubRepo()
    repo.records.append(ExpenseRecord(payer=1, amount=Decimal("20"), splits=(Split(4, Decimal("20")),)))

    text = await build_settlement_message(repo, 1)

    assert "• @dev → @Anna: 20.00 INR" in text
    assert "user 4" not in text
