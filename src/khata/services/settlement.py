from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Hashable, Iterable, Mapping, Sequence, Union

Amount = Union[Decimal, int, float, str]

EPSILON = Decimal("0.01")
CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class Split:
    member: Hashable
    amount: Decimal


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    payer: Hashable
    amount: Decimal
    splits: Sequence[Split] = ()


@dataclass(frozen=True, slots=True)
class Settlement:
    from_member: Hashable
    to_member: Hashable
    amount: Decimal


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps 0.1 as one tenth instead of its binary expansion
        return Decimal(str(value))
    return Decimal(value)


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_balances(
    members: Iterable[Hashable],
    expenses: Iterable[ExpenseRecord],
) -> dict[Hashable, Decimal]:
    """Net position per member: total paid minus total owed.

    Order follows first appearance, members first. Payers and split members
    missing from ``members`` are added rather than rejected.
    """
    balances: dict[Hashable, Decimal] = {}
    for member in members:
        balances[member] = Decimal(0)

    for expense in expenses:
        balances[expense.payer] = balances.get(expense.payer, Decimal(0)) + to_decimal(expense.amount)
        for split in expense.splits:
            balances[split.member] = balances.get(split.member, Decimal(0)) - to_decimal(split.amount)

    return balances


def settle_balances(balances: Mapping[Hashable, Amount]) -> list[Settlement]:
    """Greedy first-available matching of debtors against creditors.

    Each debtor, in balance order, pays the first creditor that still has
    credit left. Not guaranteed to yield the fewest possible transfers.
    """
    creditors: list[list] = []
    debtors: list[list] = []

    for member, raw in balances.items():
        balance = to_decimal(raw)
        if balance > EPSILON:
            creditors.append([member, balance])
        elif balance < -EPSILON:
            debtors.append([member, -balance])

    settlements: list[Settlement] = []
    for debtor_id, remaining_debt in debtors:
        while remaining_debt > EPSILON:
            creditor = next((c for c in creditors if c[1] > EPSILON), None)
            if creditor is None:
                break

            amount = round_cents(min(remaining_debt, creditor[1]))
            settlements.append(Settlement(from_member=debtor_id, to_member=creditor[0], amount=amount))

            creditor[1] -= amount
            remaining_debt -= amount

    return settlements


def compute_settlements(
    members: Iterable[Hashable],
    expenses: Iterable[ExpenseRecord],
) -> list[Settlement]:
    return settle_balances(compute_balances(members, expenses))
