from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

_SHARE_RE = re.compile(r"^@?(?P<username>[A-Za-z0-9_]+)=(?P<amount>\S+)$")


@dataclass(slots=True)
class ExpenseArgs:
    group_id: int
    description: str
    amount: Decimal
    shares: list[tuple[str, Decimal]] = field(default_factory=list)


def parse_amount(text: str) -> Decimal:
    """
    Parse a money amount entered by a user.

    Accepts "12", "12.5" and "12,50". Rejects negatives, non-finite values
    and anything finer than a cent.
    """
    cleaned = text.strip().replace(",", ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {text!r}") from exc

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {text!r}")
    if value < 0:
        raise ValueError("Amount must not be negative")
    if value.as_tuple().exponent < -2:
        raise ValueError("Amount can have at most two decimal places")
    return value.quantize(Decimal("0.01"))


def parse_id(text: str, what: str = "id") -> int:
    try:
        value = int(text.strip().lstrip("#"))
    except ValueError as exc:
        raise ValueError(f"Invalid {what}") from exc
    if value <= 0:
        raise ValueError(f"Invalid {what}")
    return value


def parse_custom_splits(text: str) -> list[tuple[str, Decimal]]:
    """Parse "@anna=10 @bob=5.50" into (username, amount) pairs."""
    shares: list[tuple[str, Decimal]] = []
    seen: set[str] = set()
    for token in text.split():
        match = _SHARE_RE.match(token)
        if not match:
            raise ValueError(f"Expected @username=amount, got {token!r}")
        username = match.group("username").lower()
        if username in seen:
            raise ValueError(f"@{username} is listed twice")
        seen.add(username)
        shares.append((username, parse_amount(match.group("amount"))))
    return shares


def parse_expense_args(text: str) -> ExpenseArgs:
    """Parse "<group_id> | <description> | <amount> [| @u1=10 @u2=5]"."""
    parts = [part.strip() for part in text.split("|")]
    if len(parts) < 3:
        raise ValueError("Expected <group_id> | <description> | <amount>")

    group_id = parse_id(parts[0], "group id")
    description = parts[1]
    if not description:
        raise ValueError("Description is required")
    amount = parse_amount(parts[2])

    shares: list[tuple[str, Decimal]] = []
    if len(parts) > 3 and parts[3]:
        shares = parse_custom_splits(parts[3])

    return ExpenseArgs(group_id=group_id, description=description, amount=amount, shares=shares)

