from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Hashable, Iterable, Mapping, Optional, Sequence

from aiogram import html

from khata.services.settlement import EPSILON, Settlement


@dataclass(slots=True)
class GroupCardData:
    group_id: int
    name: str
    members: list[str] = field(default_factory=list)
    expense_count: int = 0
    total_spent: Decimal = Decimal(0)
    is_creator: bool = False


def member_label(row: Mapping) -> str:
    if row.get("username"):
        return html.quote(f"@{row['username']}")
    if row.get("full_name"):
        return html.quote(row["full_name"])
    return f"id{row.get('tg_id')}"


def build_labels(members: Iterable[Mapping]) -> dict[int, str]:
    return {row["user_id"]: member_label(row) for row in members}


def format_money(amount: Decimal, currency: str) -> str:
    return f"{amount:.2f} {currency}"


def format_group_card(card: GroupCardData, currency: str) -> str:
    header = f"#{card.group_id} {html.quote(card.name)}"
    if card.is_creator:
        header += " (yours)"
    lines = [
        header,
        f"Members: {', '.join(card.members) if card.members else '—'}",
        f"Expenses: {card.expense_count}, total {format_money(card.total_spent, currency)}",
    ]
    return "\n".join(lines)


def build_group_card(
    group_id: int,
    name: str,
    members: Sequence[Mapping],
    expenses: Sequence[Mapping],
    viewer_id: int,
    created_by: int,
) -> GroupCardData:
    return GroupCardData(
        group_id=group_id,
        name=name,
        members=[member_label(row) for row in members],
        expense_count=len(expenses),
        total_spent=sum((exp["amount"] for exp in expenses), Decimal(0)),
        is_creator=viewer_id == created_by,
    )


def format_expense_lines(expenses: Sequence[Mapping], currency: str) -> list[str]:
    lines = ["Expenses:"]
    if not expenses:
        lines.append("• no expenses yet")
        return lines

    for exp in expenses:
        payer = member_label(
            {
                "username": exp["payer_username"],
                "full_name": exp["payer_full_name"],
                "tg_id": exp["payer_tg_id"],
            }
        )
        lines.append(
            f"• #{exp['id']} {html.quote(exp['description'])} — {format_money(exp['amount'], currency)} (paid by {payer})"
        )
    return lines


def _label(labels: Mapping[Hashable, str], member: Hashable) -> str:
    return labels.get(member, f"user {member}")


def format_balances(balances: Mapping[Hashable, Decimal], labels: Mapping[Hashable, str], currency: str) -> str:
    lines = ["Balances:"]
    for member, balance in balances.items():
        if abs(balance) <= EPSILON:
            state = "settled"
        elif balance > 0:
            state = f"gets back {format_money(balance, currency)}"
        else:
            state = f"owes {format_money(-balance, currency)}"
        lines.append(f"• {_label(labels, member)}: {state}")
    return "\n".join(lines)


def format_settlements(
    settlements: Sequence[Settlement],
    labels: Mapping[Hashable, str],
    currency: str,
    title: Optional[str] = None,
) -> str:
    lines = [title or "To settle up:"]
    if not settlements:
        lines.append("• everyone is settled up")
        return "\n".join(lines)

    for s in settlements:
        lines.append(
            f"• {_label(labels, s.from_member)} → {_label(labels, s.to_member)}: {format_money(s.amount, currency)}"
        )
    return "\n".join(lines)
