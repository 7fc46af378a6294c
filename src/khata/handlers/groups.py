from __future__ import annotations

from aiogram import F, Router, html
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message, User

from khata.config import get_settings
from khata.db.repo import KhataRepository, get_global_repository
from khata.keyboards import group_keyboard, groups_keyboard
from khata.services.authz import assert_group_creator, assert_group_member
from khata.services.groups import build_group_card, format_expense_lines, format_group_card
from khata.utils.parse import parse_id

groups_router = Router()


def get_repo() -> KhataRepository:
    return get_global_repository()


async def current_user_id(repo: KhataRepository, user: User) -> int:
    return await repo.ensure_user(user.id, user.username, user.full_name)


async def callback_group_id(callback: CallbackQuery) -> int | None:
    try:
        return parse_id((callback.data or "").partition(":")[2], "group id")
    except ValueError:
        await callback.answer("This button is out of date.", show_alert=True)
        return None


async def build_group_message(repo: KhataRepository, group_id: int, viewer_id: int) -> str:
    group = await repo.require_group(group_id)
    members = await repo.get_group_members(group_id)
    expenses = await repo.get_group_expenses(group_id)
    card = build_group_card(group.id, group.name, members, expenses, viewer_id, group.created_by)
    currency = get_settings().currency
    return "\n".join([format_group_card(card, currency), "", *format_expense_lines(expenses, currency)])


async def build_groups_list(repo: KhataRepository, user_id: int) -> tuple[str, list]:
    groups = await repo.list_user_groups(user_id)
    if not groups:
        return "You are not in any group yet. Create one with /newgroup &lt;name&gt;.", groups
    lines = ["Your groups:"]
    for group in groups:
        lines.append(
            f"• #{group['id']} {html.quote(group['name'])} — "
            f"{group['member_count']} members, {group['expense_count']} expenses"
        )
    return "\n".join(lines), groups


@groups_router.message(Command("newgroup"))
async def cmd_newgroup(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    name = (command.args or "").strip()
    if not name:
        await message.answer("Usage: /newgroup &lt;name&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    group = await repo.create_group(name, user_id)
    await message.answer(
        f"✅ Group #{group.id} <b>{html.quote(group.name)}</b> created.\n"
        f"Friends can join with /join {group.id}",
        reply_markup=group_keyboard(group.id),
    )


@groups_router.message(Command("mygroups"))
async def cmd_mygroups(message: Message) -> None:
    user = message.from_user
    if not user:
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    text, groups = await build_groups_list(repo, user_id)
    await message.answer(text, reply_markup=groups_keyboard(groups) if groups else None)


@groups_router.callback_query(F.data == "menu:mygroups")
async def cb_mygroups(callback: CallbackQuery) -> None:
    repo = get_repo()
    user_id = await current_user_id(repo, callback.from_user)
    text, groups = await build_groups_list(repo, user_id)
    if callback.message:
        await callback.message.answer(text, reply_markup=groups_keyboard(groups) if groups else None)
    await callback.answer()


@groups_router.message(Command("group"))
async def cmd_group(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /group &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    text = await build_group_message(repo, group_id, user_id)
    await message.answer(text, reply_markup=group_keyboard(group_id))


@groups_router.callback_query(F.data.startswith("group:"))
async def cb_group(callback: CallbackQuery) -> None:
    group_id = await callback_group_id(callback)
    if group_id is None:
        return
    repo = get_repo()
    user_id = await current_user_id(repo, callback.from_user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    text = await build_group_message(repo, group_id, user_id)
    if callback.message:
        await callback.message.answer(text, reply_markup=group_keyboard(group_id))
    await callback.answer()


@groups_router.message(Command("join"))
async def cmd_join(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /join &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    group = await repo.require_group(group_id)
    if await repo.add_member(group_id, user_id):
        await message.answer(f"You joined <b>{html.quote(group.name)}</b>!", reply_markup=group_keyboard(group_id))
    else:
        await message.answer("You are already a member of this group.")


@groups_router.message(Command("addmember"))
async def cmd_addmember(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    parts = (command.args or "").split()
    if len(parts) != 2:
        await message.answer("Usage: /addmember &lt;id&gt; @username")
        return

    try:
        group_id = parse_id(parts[0], "group id")
    except ValueError:
        await message.answer("Invalid group id")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)

    target = await repo.get_user_by_username(parts[1])
    if not target:
        await message.answer("User not found. They need to send /start to the bot first.")
        return

    if await repo.add_member(group_id, target.id):
        await message.answer(f"Added {html.quote(parts[1])} to the group.")
    else:
        await message.answer(f"{html.quote(parts[1])} is already a member.")


@groups_router.message(Command("leave"))
async def cmd_leave(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /leave &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await assert_group_member(repo.db, user_id, group_id)
    await repo.remove_member(group_id, user_id)
    await message.answer("You left the group. Your expenses stay in its history.")


@groups_router.message(Command("deletegroup"))
async def cmd_deletegroup(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /deletegroup &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_creator(repo.db, user_id, group_id)
    await repo.delete_group(group_id)
    await message.answer("Group deleted successfully.")
