from decimal import Decimal

import pytest

from khata.services.settlement import ExpenseRecord, Split, compute_settlements
from khata.services.split import check_shares, split_equally


def test_split_equally_even():
    shares = split_equally(Decimal("100"), [1, 2, 3, 4])
    assert shares == {1: Decimal("25.00"), 2: Decimal("25.00"), 3: Decimal("25.00"), 4: Decimal("25.00")}


def test_split_equally_remainder_goes_to_first_members():
    shares = split_equally(Decimal("100"), [1, 2, 3])
    assert shares == {1: Decimal("33.34"), 2: Decimal("33.33"), 3: Decimal("33.33")}
    assert sum(shares.values()) == Decimal("100")


def test_split_equally_small_amount():
    shares = split_equally("0.05", [1, 2, 3])
    assert list(shares.values()) == [Decimal("0.02"), Decimal("0.02"), Decimal("0.01")]


def test_split_equally_rejects_bad_input():
    with pytest.raises(ValueError):
        split_equally(Decimal("-1"), [1])
    with pytest.raises(ValueError):
        split_equally(Decimal("10"), [])
    with pytest.raises(ValueError, match="whole cents"):
        split_equally("0.005", [1])


def test_check_shares():
    check_shares(Decimal("10"), {1: Decimal("6"), 2: Decimal("4")})

    with pytest.raises(ValueError, match="expected 10.00"):
        check_shares(Decimal("10"), {1: Decimal("6"), 2: Decimal("3")})
    with pytest.raises(ValueError):
        check_shares(Decimal("10"), {1: Decimal("12"), 2: Decimal("-2")})


def test_equal_split_feeds_settlement():
    shares = split_equally(Decimal("90"), [1, 2, 3])
    record = ExpenseRecord(payer=1, amount=Decimal("90"), splits=tuple(Split(m, a) for m, a in shares.items()))

    assert record.splits == (Split(1, Decimal("30.00")), Split(2, Decimal("30.00")), Split(3, Decimal("30.00")))
    settlements = compute_settlements([1, 2, 3], [record])
    assert [(s.from_member, s.to_member, s.amount) for s in settlements] == [
        (2, 1, Decimal("30.00")),
        (3, 1, Decimal("30.00")),
    ]
