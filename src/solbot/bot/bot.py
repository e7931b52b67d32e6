"""Bot initialization and runner."""

import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from solbot.bot.handlers import setup_routers
from solbot.config import Settings, get_settings
from solbot.session.coordinator import SessionCoordinator

logger = logging.getLogger(__name__)


def create_bot(
    settings: Optional[Settings] = None,
    coordinator: Optional[SessionCoordinator] = None,
) -> tuple[Bot, Dispatcher, SessionCoordinator]:
    """Create bot, dispatcher and session coordinator.

    The coordinator is passed to handlers as the ``coordinator`` argument.
    """
    settings = settings or get_settings()

    if not settings.telegram_bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")

    coordinator = coordinator or SessionCoordinator.from_settings(settings)

    # No default parse_mode - each result decides
    bot = Bot(token=settings.telegram_bot_token)

    # FSM state only tracks the send prompt; losing it on restart is fine
    dp = Dispatcher(storage=MemoryStorage(), coordinator=coordinator)
    dp.include_router(setup_routers())

    return bot, dp, coordinator


def configure_logging(settings: Settings) -> None:
    """Configure logging - reduce noise from libraries."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("aiogram").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run_bot() -> None:
    """Run the bot in polling mode."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting Solana wallet bot...")
    logger.info(f"Configuration: {settings.get_safe_dict()}")

    bot, dp, coordinator = create_bot(settings)
    coordinator.start_background()

    try:
        # Delete webhook if any and start polling
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Starting polling...")
        await dp.start_polling(bot)
    finally:
        await coordinator.shutdown()
        await bot.session.close()


def main() -> None:
    """Entry point for the ``solbot`` command."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
