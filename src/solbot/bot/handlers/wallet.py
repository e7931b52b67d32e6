"""Wallet handlers: generate, address, key export, balance, history, airdrop."""

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from solbot.bot.keyboards import main_menu_keyboard
from solbot.bot.replies import send_result
from solbot.session.coordinator import MARKDOWN, SessionCoordinator

router = Router()


@router.callback_query(F.data == "wallet:generate")
async def handle_generate_wallet(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    """Create a wallet for the user."""
    if not callback.message:
        return

    await callback.answer("Generating wallet...")
    result = await coordinator.generate_wallet(callback.from_user.id)
    await send_result(callback.message, result)


@router.message(Command("address"))
async def cmd_address(message: Message, coordinator: SessionCoordinator) -> None:
    if not message.from_user:
        return
    await send_result(message, await coordinator.view_address(message.from_user.id))


@router.callback_query(F.data == "wallet:address")
async def handle_view_address(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer()
    await send_result(callback.message, await coordinator.view_address(callback.from_user.id))


async def _export_private_key(chat_message: Message, user_id: int, coordinator: SessionCoordinator) -> None:
    """Send the private key and let the coordinator schedule its deletion."""

    async def reveal(text: str) -> Message:
        return await chat_message.answer(
            text, parse_mode=MARKDOWN, reply_markup=main_menu_keyboard(has_wallet=True)
        )

    async def retract(sent: Message) -> None:
        await sent.delete()

    result = await coordinator.export_private_key(user_id, reveal, retract)
    await send_result(chat_message, result)


@router.message(Command("export"))
async def cmd_export(message: Message, coordinator: SessionCoordinator) -> None:
    if not message.from_user:
        return
    await _export_private_key(message, message.from_user.id, coordinator)


@router.callback_query(F.data == "wallet:export")
async def handle_export_private_key(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer()
    await _export_private_key(callback.message, callback.from_user.id, coordinator)


@router.message(Command("balance"))
async def cmd_balance(message: Message, coordinator: SessionCoordinator) -> None:
    if not message.from_user:
        return
    await send_result(message, await coordinator.check_balance(message.from_user.id))


@router.callback_query(F.data == "wallet:balance")
async def handle_check_balance(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer("Checking balance...")
    await send_result(callback.message, await coordinator.check_balance(callback.from_user.id))


@router.message(Command("history"))
async def cmd_history(message: Message, coordinator: SessionCoordinator) -> None:
    if not message.from_user:
        return
    await send_result(message, await coordinator.transaction_history(message.from_user.id))


@router.callback_query(F.data == "wallet:history")
async def handle_transaction_history(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer("Fetching transaction history...")
    result = await coordinator.transaction_history(callback.from_user.id)
    await send_result(callback.message, result)


@router.message(Command("airdrop"))
async def cmd_airdrop(message: Message, coordinator: SessionCoordinator) -> None:
    if not message.from_user:
        return
    await message.answer("🔄 Requesting airdrop...")
    await send_result(message, await coordinator.request_airdrop(message.from_user.id))


@router.callback_query(F.data == "wallet:airdrop")
async def handle_request_airdrop(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer("Requesting airdrop...")
    await send_result(callback.message, await coordinator.request_airdrop(callback.from_user.id))


@router.callback_query(F.data == "wallet:users")
async def handle_user_count(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    if not callback.message:
        return

    await callback.answer()
    await send_result(callback.message, await coordinator.user_count(callback.from_user.id))
