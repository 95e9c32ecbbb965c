import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.filters import Command
from aiogram.types import Message

from bike_registration.config import settings
from bike_registration.handlers import registration

logger = logging.getLogger(__name__)


async def cmd_start(message: Message) -> None:
    await message.answer(
        "👋 Welcome to the bike registration bot!\n"
        "Send /register to register your bike and extend its warranty.",
    )


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    dp.message.register(cmd_start, Command("start"))
    dp.include_router(registration.router)
    return dp


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

    bot = Bot(
        token=settings.TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher()
    logger.info("Bike registration bot starting (API %s)", settings.API_BASE_URL)
    asyncio.run(dp.start_polling(bot))


if __name__ == "__main__":
    main()
