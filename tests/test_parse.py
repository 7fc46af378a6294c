from decimal import Decimal

import pytest

from khata.utils.parse import parse_amount, parse_custom_splits, parse_expense_args, parse_id


@pytest.mark.parametrize(
    ("text", "expected"),
    [("12", Decimal("12.00")), ("12.5", Decimal("12.50")), ("12,50", Decimal("12.50")), (" 0 ", Decimal("0.00"))],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["abc", "-5", "1.234", "NaN", "Infinity", ""])
def test_parse_amount_rejects(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_parse_id():
    assert parse_id("#17") == 17
    with pytest.raises(ValueError, match="group id"):
        parse_id("x", "group id")
    with pytest.raises(ValueError):
        parse_id("0")


def test_parse_custom_splits():
    assert parse_custom_splits("@Anna=60 bob=40,5") == [("anna", Decimal("60.00")), ("bob", Decimal("40.50"))]


def test_parse_custom_splits_rejects_duplicates_and_garbage():
    with pytest.raises(ValueError, match="twice"):
        parse_custom_splits("@anna=1 @ANNA=2")
    with pytest.raises(ValueError):
        parse_custom_splits("@anna")


def test_parse_expense_args_equal_split():
    args = parse_expense_args("3 | Dinner at Olive | 1200")

    assert args.group_id == 3
    assert args.description == "Dinner at Olive"
    assert args.amount == Decimal("1200.00")
    assert args.shares == []


def test_parse_expense_args_custom_split():
    args = parse_expense_args("3 | Cab | 300 | @anna=200 @bob=100")

    assert args.shares == [("anna", Decimal("200.00")), ("bob", Decimal("100.00"))]


@pytest.mark.parametrize("text", ["3 | Cab", "x | Cab | 10", "3 |  | 10", "3 | Cab | ten"])
def test_parse_expense_args_rejects(text):
    with pytest.raises(ValueError):
        parse_expense_args(text)
