"""Render command results into Telegram messages."""

from typing import Optional

from aiogram.types import Message

from solbot.bot.keyboards import result_keyboard
from solbot.session.coordinator import CommandResult


async def send_result(message: Message, result: CommandResult) -> Optional[Message]:
    """Send a result as a new message in the same chat."""
    if not result.text:
        return None
    return await message.answer(
        result.text,
        parse_mode=result.parse_mode,
        reply_markup=result_keyboard(result),
    )


async def edit_result(message: Message, result: CommandResult) -> None:
    """Replace ``message`` (usually the confirmation prompt) with a result."""
    if not result.text:
        return
    await message.edit_text(
        result.text,
        parse_mode=result.parse_mode,
        disable_web_page_preview=True,
    )
