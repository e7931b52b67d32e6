"""Telegram keyboard builders."""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from solbot.session.coordinator import CommandResult, Keyboard


def main_menu_keyboard(has_wallet: bool = False) -> InlineKeyboardMarkup:
    """Create the main wallet menu.

    The generate button is only offered until the user has a wallet.
    """
    buttons = []

    if not has_wallet:
        buttons.append(
            [InlineKeyboardButton(text="🔑 Generate Wallet", callback_data="wallet:generate")]
        )

    buttons.extend(
        [
            [
                InlineKeyboardButton(text="View Address", callback_data="wallet:address"),
                InlineKeyboardButton(text="Export Private Key", callback_data="wallet:export"),
            ],
            [
                InlineKeyboardButton(text="Check Balance", callback_data="wallet:balance"),
                InlineKeyboardButton(text="Transaction History", callback_data="wallet:history"),
            ],
            [InlineKeyboardButton(text="💰 Request Airdrop", callback_data="wallet:airdrop")],
            [InlineKeyboardButton(text="Send SOL", callback_data="transfer:start")],
            [InlineKeyboardButton(text="Check User Map", callback_data="wallet:users")],
        ]
    )

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def confirm_transfer_keyboard(proposal_id: str) -> InlineKeyboardMarkup:
    """Create transfer confirmation keyboard."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="✅ Confirm", callback_data=f"confirm_send:{proposal_id}"),
                InlineKeyboardButton(text="❌ Cancel", callback_data="cancel_send"),
            ]
        ]
    )


def result_keyboard(result: CommandResult) -> Optional[InlineKeyboardMarkup]:
    """Keyboard requested by a command result."""
    if result.keyboard == Keyboard.CONFIRM_TRANSFER and result.proposal_id:
        return confirm_transfer_keyboard(result.proposal_id)
    if result.keyboard == Keyboard.MAIN_MENU:
        return main_menu_keyboard(result.has_wallet)
    return None
