from __future__ import annotations

from aiogram import Router
from aiogram.filters import ExceptionTypeFilter
from aiogram.types import ErrorEvent

from khata.db.repo import NotFoundError
from khata.logging import get_logger
from khata.services.authz import AuthorizationError

errors_router = Router()
log = get_logger(__name__)


async def _reply(event: ErrorEvent, text: str) -> None:
    update = event.update
    if update.message:
        await update.message.answer(text)
    elif update.callback_query:
        await update.callback_query.answer(text, show_alert=True)


@errors_router.errors(ExceptionTypeFilter(AuthorizationError, NotFoundError))
async def on_denied(event: ErrorEvent) -> None:
    log.info("request.denied", error=str(event.exception), kind=type(event.exception).__name__)
    await _reply(event, f"❌ {event.exception}")


@errors_router.errors()
async def on_unexpected(event: ErrorEvent) -> None:
    log.error("request.failed", exc_info=event.exception)
    await _reply(event, "Something went wrong, please try again later.")
