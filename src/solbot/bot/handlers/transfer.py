"""SOL transfer handlers: prompt, propose, confirm, cancel."""

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message

from solbot import messages
from solbot.bot.replies import edit_result, send_result
from solbot.session.coordinator import SessionCoordinator
from solbot.session.errors import ErrorKind

router = Router()

# Errors the user can fix by replying again
RETRYABLE_INPUT = (ErrorKind.INVALID_FORMAT, ErrorKind.INVALID_ADDRESS, ErrorKind.INVALID_AMOUNT)
MAX_ATTEMPTS = 3


class TransferStates(StatesGroup):
    """FSM states for the send flow."""

    entering_details = State()


@router.callback_query(F.data == "transfer:start")
async def handle_send_sol(
    callback: CallbackQuery, state: FSMContext, coordinator: SessionCoordinator
) -> None:
    """Ask for ``<address> <amount>``."""
    if not callback.message:
        return

    await callback.answer()
    result = await coordinator.send_prompt(callback.from_user.id)
    if result.ok:
        await state.set_state(TransferStates.entering_details)
    await send_result(callback.message, result)


@router.message(Command("send"))
async def cmd_send(
    message: Message,
    command: CommandObject,
    state: FSMContext,
    coordinator: SessionCoordinator,
) -> None:
    """Handle /send, with or without inline arguments."""
    if not message.from_user:
        return

    user_id = message.from_user.id
    if not command.args:
        result = await coordinator.send_prompt(user_id)
        if result.ok:
            await state.set_state(TransferStates.entering_details)
        await send_result(message, result)
        return

    await state.clear()
    await send_result(message, await coordinator.propose_transfer(user_id, command.args))


@router.message(TransferStates.entering_details, F.text)
async def handle_transfer_details(
    message: Message, state: FSMContext, coordinator: SessionCoordinator
) -> None:
    """Handle the ``<address> <amount>`` reply.

    Any other command, or MAX_ATTEMPTS invalid replies in a row, leaves
    the send flow.
    """
    if not message.from_user or not message.text:
        return

    if message.text.startswith("/"):
        await state.clear()
        await message.answer(messages.SEND_ABANDONED)
        return

    result = await coordinator.propose_transfer(message.from_user.id, message.text)
    await send_result(message, result)

    if result.error_kind not in RETRYABLE_INPUT:
        await state.clear()
        return

    data = await state.get_data()
    attempts = data.get("attempts", 0) + 1
    if attempts >= MAX_ATTEMPTS:
        await state.clear()
        await message.answer(messages.SEND_ABANDONED)
    else:
        await state.update_data(attempts=attempts)


@router.callback_query(F.data.startswith("confirm_send:"))
async def handle_confirm_send(callback: CallbackQuery, coordinator: SessionCoordinator) -> None:
    """Execute the confirmed transfer."""
    if not callback.data or not callback.message:
        return

    proposal_id = callback.data.split(":", 1)[1]
    await callback.answer("Processing transaction...")
    result = await coordinator.confirm_transfer(callback.from_user.id, proposal_id)
    await edit_result(callback.message, result)


@router.callback_query(F.data == "cancel_send")
async def handle_cancel_send(
    callback: CallbackQuery, state: FSMContext, coordinator: SessionCoordinator
) -> None:
    """Cancel the pending transfer."""
    if not callback.message:
        return

    await state.clear()
    await callback.answer("Transaction cancelled")
    result = await coordinator.cancel_transfer(callback.from_user.id)
    await edit_result(callback.message, result)
