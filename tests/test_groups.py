from decimal import Decimal

from khata.services.groups import (
    build_group_card,
    build_labels,
    format_balances,
    format_expense_lines,
    format_group_card,
    format_settlements,
    member_label,
)
from khata.services.settlement import Settlement

MEMBERS = [
    {"user_id": 1, "tg_id": 1001, "username": "anna", "full_name": "Anna K"},
    {"user_id": 2, "tg_id": 1002, "username": None, "full_name": "Bob <B>"},
    {"user_id": 3, "tg_id": 1003, "username": None, "full_name": None},
]

EXPENSES = [
    {
        "id": 7,
        "description": "Groceries",
        "amount": Decimal("120.50"),
        "payer_username": "anna",
        "payer_full_name": "Anna K",
        "payer_tg_id": 1001,
    },
]


def test_member_label_fallbacks():
    assert [member_label(row) for row in MEMBERS] == ["@anna", "Bob &lt;B&gt;", "id1003"]


def test_format_group_card():
    card = build_group_card(5, "Goa trip", MEMBERS, EXPENSES, viewer_id=1, created_by=1)
    text = format_group_card(card, "INR")

    assert text.splitlines()[0] == "#5 Goa trip (yours)"
    assert "@anna, Bob &lt;B&gt;, id1003" in text
    assert "Expenses: 1, total 120.50 INR" in text


def test_format_expense_lines():
    assert format_expense_lines([], "INR") == ["Expenses:", "• no expenses yet"]
    lines = format_expense_lines(EXPENSES, "INR")
    assert lines[1] == "• #7 Groceries — 120.50 INR (paid by @anna)"


def test_format_balances():
    labels = build_labels(MEMBERS)
    text = format_balances({1: Decimal("30"), 2: Decimal("-30"), 3: Decimal("0.004")}, labels, "INR")

    assert text.splitlines() == [
        "Balances:",
        "• @anna: gets back 30.00 INR",
        "• Bob &lt;B&gt;: owes 30.00 INR",
        "• id1003: settled",
    ]


def test_format_settlements():
    labels = build_labels(MEMBERS)
    settlements = [Settlement(from_member=2, to_member=1, amount=Decimal("30.00"))]

    assert format_settlements(settlements, labels, "INR").splitlines() == [
        "To settle up:",
        "• Bob &lt;B&gt; → @anna: 30.00 INR",
    ]
    assert format_settlements([], labels, "INR").splitlines()[1] == "• everyone is settled up"


def test_format_settlements_unknown_member():
    settlements = [Settlement(from_member=9, to_member=1, amount=Decimal("5.00"))]

    assert "user 9 → @anna" in format_settlements(settlements, build_labels(MEMBERS), "INR")
