from __future__ import annotations

from aiogram import F, Router, html
from aiogram.filters import Command, CommandStart
from aiogram.types import CallbackQuery, Message

from khata.db.repo import get_global_repository
from khata.keyboards import main_menu_keyboard

basic_router = Router()

HELP_TEXT = (
    "<b>Khata</b> keeps track of shared expenses and tells you who pays whom.\n\n"
    "<b>Groups</b>\n"
    "/newgroup &lt;name&gt; — create a group\n"
    "/mygroups — your groups\n"
    "/group &lt;id&gt; — group details\n"
    "/join &lt;id&gt; — join a group\n"
    "/addmember &lt;id&gt; @username — add someone who has talked to the bot\n"
    "/leave &lt;id&gt; — leave a group\n"
    "/deletegroup &lt;id&gt; — delete a group you created\n\n"
    "<b>Expenses</b>\n"
    "/addexpense &lt;id&gt; | &lt;description&gt; | &lt;amount&gt; — you paid, split equally\n"
    "/addexpense &lt;id&gt; | &lt;description&gt; | &lt;amount&gt; | @anna=60 @bob=40 — custom shares\n"
    "/expenses &lt;id&gt; — list expenses\n"
    "/delexpense &lt;expense_id&gt; — delete an expense\n"
    "/balances &lt;id&gt; — who is up and who is down\n"
    "/settle &lt;id&gt; — transfers that settle the group"
)


@basic_router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    user = message.from_user
    if not user:
        return

    repo = get_global_repository()
    await repo.ensure_user(user.id, user.username, user.full_name)

    await message.answer(
        f"👋 Hi, {html.quote(user.first_name)}!\n\n"
        "Create a group, add what everyone paid and I will work out who pays whom to settle up.",
        reply_markup=main_menu_keyboard(),
    )


@basic_router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@basic_router.callback_query(F.data == "menu:help")
async def cb_help(callback: CallbackQuery) -> None:
    if callback.message:
        await callback.message.answer(HELP_TEXT)
    await callback.answer()
