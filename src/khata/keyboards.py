from __future__ import annotations

from typing import Iterable, Mapping

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="📒 My groups", callback_data="menu:mygroups")],
            [InlineKeyboardButton(text="ℹ️ Help", callback_data="menu:help")],
        ]
    )


def groups_keyboard(groups: Iterable[Mapping]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=f"#{group['id']} {group['name']}", callback_data=f"group:{group['id']}")]
        for group in groups
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def group_keyboard(group_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="Balances", callback_data=f"balances:{group_id}"),
                InlineKeyboardButton(text="Settle up", callback_data=f"settle:{group_id}"),
            ],
            [InlineKeyboardButton(text="« Groups", callback_data="menu:mygroups")],
        ]
    )
