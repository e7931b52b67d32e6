"""Start and basic command handlers."""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from solbot.bot.replies import send_result
from solbot.session.coordinator import SessionCoordinator

router = Router()


@router.message(CommandStart())
async def cmd_start(
    message: Message, state: FSMContext, coordinator: SessionCoordinator
) -> None:
    """Handle /start command - show welcome and the wallet menu."""
    if not message.from_user:
        return

    # Leaves any half-finished send flow
    await state.clear()

    result = await coordinator.start(message.from_user.id, message.from_user.first_name)
    await send_result(message, result)


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    help_text = """Solana Bot Commands

Wallet:
  /start    - Show the wallet menu
  /address  - Show your wallet address
  /balance  - Check your SOL balance
  /history  - Recent transactions
  /airdrop  - Request devnet SOL
  /export   - Show your private key (auto-deletes)

Transfers:
  /send <address> <amount>
            - Send SOL (asks for confirmation)

Unconfirmed transfers expire after a few minutes."""

    await message.answer(help_text)
