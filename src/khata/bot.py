from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from khata.config import get_settings
from khata.db.repo import Database, KhataRepository, set_global_repository
from khata.handlers import basic_router, errors_router, expenses_router, groups_router
from khata.logging import configure_logging, get_logger


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()
    db = Database(settings.database_url)
    await db.connect()
    repo = KhataRepository(db)

    dp.include_router(basic_router)
    dp.include_router(groups_router)
    dp.include_router(expenses_router)
    dp.include_router(errors_router)

    set_global_repository(repo)

    log = get_logger(__name__)
    log.info("bot.start", currency=settings.currency)
    try:
        await dp.start_polling(bot)
    finally:
        await db.close()
        await bot.session.close()
        log.info("bot.stop")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
