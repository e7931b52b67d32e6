"""Bot handlers module."""

from aiogram import Router

from solbot.bot.handlers import start, transfer, wallet


def setup_routers() -> Router:
    """Create and configure all routers."""
    main_router = Router()

    main_router.include_router(start.router)
    main_router.include_router(wallet.router)
    main_router.include_router(transfer.router)

    return main_router
