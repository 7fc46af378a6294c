from __future__ import annotations

from decimal import Decimal

from aiogram import F, Router, html
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from khata.config import get_settings
from khata.db.repo import KhataRepository
from khata.handlers.groups import callback_group_id, current_user_id, get_repo
from khata.keyboards import group_keyboard
from khata.logging import get_logger
from khata.services.authz import assert_group_member
from khata.services.groups import build_labels, format_balances, format_expense_lines, format_settlements
from khata.services.settlement import compute_balances, settle_balances
from khata.services.split import check_shares, split_equally
from khata.utils.parse import ExpenseArgs, parse_expense_args, parse_id

expenses_router = Router()
log = get_logger(__name__)

ADDEXPENSE_USAGE = (
    "Usage: /addexpense &lt;id&gt; | &lt;description&gt; | &lt;amount&gt; [| @user1=10 @user2=5]\n"
    "Without shares the amount is split equally among all members."
)


async def resolve_shares(repo: KhataRepository, args: ExpenseArgs) -> dict[int, Decimal]:
    """Per-member shares for a new expense, keyed by user id.

    Raises ValueError when a named user is not in the group or when custom
    shares do not add up to the amount.
    """
    members = await repo.get_group_members(args.group_id)
    member_ids = [row["user_id"] for row in members]

    if not args.shares:
        return split_equally(args.amount, member_ids)

    by_username = {(row["username"] or "").lower(): row["user_id"] for row in members if row["username"]}
    shares: dict[int, Decimal] = {}
    for username, amount in args.shares:
        user_id = by_username.get(username)
        if user_id is None:
            raise ValueError(f"@{username} is not a member of this group")
        shares[user_id] = amount

    check_shares(args.amount, shares)
    return shares


async def build_balances_message(repo: KhataRepository, group_id: int) -> str:
    members, expenses = await repo.load_settlement_input(group_id)
    balances = compute_balances(members, expenses)
    # members who left still appear through their expense history
    labels = build_labels(await repo.get_users(list(balances)))
    return format_balances(balances, labels, get_settings().currency)


async def build_settlement_message(repo: KhataRepository, group_id: int) -> str:
    members, expenses = await repo.load_settlement_input(group_id)
    balances = compute_balances(members, expenses)
    # members who left still appear through their expense history
    labels = build_labels(await repo.get_users(list(balances)))
    settlements = settle_balances(balances)
    log.info(
        "settlement.computed",
        group_id=group_id,
        members=len(members),
        expenses=len(expenses),
        transfers=len(settlements),
    )
    return format_settlements(settlements, labels, get_settings().currency)


@expenses_router.message(Command("addexpense"))
async def cmd_addexpense(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        args = parse_expense_args(command.args or "")
    except ValueError as exc:
        await message.answer(f"{html.quote(str(exc))}\n\n{ADDEXPENSE_USAGE}")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(args.group_id)
    await assert_group_member(repo.db, user_id, args.group_id)

    try:
        shares = await resolve_shares(repo, args)
    except ValueError as exc:
        await message.answer(html.quote(str(exc)))
        return

    expense = await repo.create_expense(
        group_id=args.group_id,
        description=args.description,
        amount=args.amount,
        paid_by=user_id,
        created_by=user_id,
        shares=shares,
    )
    currency = get_settings().currency
    await message.answer(
        f"Expense added: #{expense.id} {html.quote(expense.description)} — {expense.amount:.2f} {currency}, "
        f"split between {len(shares)} member(s).",
        reply_markup=group_keyboard(args.group_id),
    )


@expenses_router.message(Command("expenses"))
async def cmd_expenses(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /expenses &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)

    expenses = await repo.get_group_expenses(group_id)
    await message.answer("\n".join(format_expense_lines(expenses, get_settings().currency)))


@expenses_router.message(Command("delexpense"))
async def cmd_delexpense(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        expense_id = parse_id(command.args or "", "expense id")
    except ValueError:
        await message.answer("Usage: /delexpense &lt;expense_id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    expense = await repo.require_expense(expense_id)
    await assert_group_member(repo.db, user_id, expense.group_id)

    await repo.delete_expense(expense_id)
    await message.answer("Expense deleted.")


@expenses_router.message(Command("balances"))
async def cmd_balances(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /balances &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    await message.answer(await build_balances_message(repo, group_id))


@expenses_router.message(Command("settle"))
async def cmd_settle(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    try:
        group_id = parse_id(command.args or "", "group id")
    except ValueError:
        await message.answer("Usage: /settle &lt;id&gt;")
        return

    repo = get_repo()
    user_id = await current_user_id(repo, user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    await message.answer(await build_settlement_message(repo, group_id))


@expenses_router.callback_query(F.data.startswith("balances:"))
async def cb_balances(callback: CallbackQuery) -> None:
    group_id = await callback_group_id(callback)
    if group_id is None:
        return
    repo = get_repo()
    user_id = await current_user_id(repo, callback.from_user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    if callback.message:
        await callback.message.answer(await build_balances_message(repo, group_id))
    await callback.answer()


@expenses_router.callback_query(F.data.startswith("settle:"))
async def cb_settle(callback: CallbackQuery) -> None:
    group_id = await callback_group_id(callback)
    if group_id is None:
        return
    repo = get_repo()
    user_id = await current_user_id(repo, callback.from_user)
    await repo.require_group(group_id)
    await assert_group_member(repo.db, user_id, group_id)
    if callback.message:
        await callback.message.answer(await build_settlement_message(repo, group_id))
    await callback.answer()
