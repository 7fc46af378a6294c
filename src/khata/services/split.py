from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Hashable, Mapping, Sequence

from khata.services.settlement import CENT, Amount, to_decimal


def split_equally(amount: Amount, members: Sequence[Hashable]) -> dict[Hashable, Decimal]:
    """Shares in whole cents that add up to ``amount`` exactly.

    Leftover cents go one each to members from the front of the list.
    """
    total = to_decimal(amount)
    if total < 0:
        raise ValueError("amount must be non-negative")
    if total != total.quantize(CENT):
        raise ValueError("amount must be in whole cents")
    if not members:
        raise ValueError("members must not be empty")

    n = len(members)
    base_share = (total / n).quantize(CENT, rounding=ROUND_DOWN)
    shares = [base_share for _ in members]

    remainder = total - base_share * n
    idx = 0
    while remainder >= CENT:
        shares[idx] += CENT
        remainder -= CENT
        idx = (idx + 1) % n

    return {member: share for member, share in zip(members, shares)}


def check_shares(amount: Amount, shares: Mapping[Hashable, Decimal]) -> None:
    total = to_decimal(amount)
    if any(share < 0 for share in shares.values()):
        raise ValueError("shares must be non-negative")
    if sum(shares.values(), Decimal(0)) != total:
        raise ValueError(f"shares add up to {sum(shares.values(), Decimal(0)):.2f}, expected {total:.2f}")
