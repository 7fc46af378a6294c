from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class User:
    id: int
    tg_id: int
    username: Optional[str]
    full_name: Optional[str]


@dataclass(slots=True)
class Group:
    id: int
    name: str
    created_by: int
    created_at: datetime


@dataclass(slots=True)
class Expense:
    id: int
    group_id: int
    description: str
    amount: Decimal
    paid_by: int
    created_by: int
    spent_at: datetime
    created_at: datetime

