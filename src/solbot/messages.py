"""User-facing message texts and formatting.

Texts use Telegram's legacy Markdown unless noted otherwise.
"""

from datetime import datetime, timezone
from decimal import Decimal
from html import escape
from typing import Optional

from solbot.chain.base import BalanceInfo, TransactionInfo
from solbot.session.errors import ErrorKind, InsufficientBalance, SessionError


def short_sig(signature: str) -> str:
    """First and last 8 characters of a signature."""
    return f"{signature[:8]}...{signature[-8:]}"


def fmt_sol(amount: Decimal) -> str:
    """Render a SOL amount without trailing zeros."""
    return format(amount.normalize(), "f")


def code_span(text: str) -> str:
    """Untrusted text as a legacy Markdown code span.

    Markup inside a code span is not parsed; a backtick would end the span,
    so it is replaced.
    """
    return "`" + text.replace("`", "'") + "`"


def welcome(first_name: Optional[str]) -> str:
    """Welcome text (HTML)."""
    name = escape(first_name or "there")
    return (
        f"Welcome to Solana Bot, <b>{name}</b>!\n\n"
        "Choose an option below to get started.\n\n"
    )


NO_WALLET = "❌ No wallet found! Please generate a wallet first."
WALLET_EXISTS = "Wallet already exists!"
REVEAL_PENDING = (
    "⏱️ You already have a private key message that will be deleted soon. "
    "Please wait before requesting another one."
)
TRANSFER_CANCELLED = "❌ *Transaction Cancelled*\n\nYou can start a new transfer anytime."
NOTHING_TO_CANCEL = "There is no pending transfer to cancel."
GENERIC_FAILURE = "Sorry, something went wrong. Please try again."


def user_count(total: int) -> str:
    return f"Total users: {total}"


def wallet_generated(
    address: str,
    mnemonic: Optional[str],
    balance: Optional[BalanceInfo],
    reveal_delay: float,
) -> str:
    if balance is not None:
        balance_line = f"💰 *Current Balance:* {fmt_sol(balance.balance)} SOL ({balance.lamports} lamports)\n\n"
    else:
        balance_line = "💰 *Current Balance:* unavailable right now\n\n"

    phrase_block = ""
    if mnemonic:
        phrase_block = f"🔑 *Recovery Phrase (12 words):*\n`{mnemonic}`\n\n"

    return (
        "✅ *Wallet Generated Successfully!* 🎉\n\n"
        f"👀 *Your Wallet Address:*\n`{address}`\n\n"
        f"{balance_line}"
        f"{phrase_block}"
        "⚠️ *IMPORTANT SECURITY REMINDERS:*\n"
        "• 🔐 *Backup your private key* using \"Export Private Key\"\n"
        "• 📝 *Write down your recovery phrase* and store it safely\n"
        "• 🚫 *Never share* your private key or recovery phrase\n"
        "• 💾 *Anyone with access can control your wallet*\n\n"
        "🚀 *Next Steps:*\n"
        "• Use \"Check Balance\" to see your SOL balance\n"
        "• Fund your wallet to start using it\n"
        "• Use \"Transaction History\" to track activity\n"
        f"• Use \"Export Private Key\" to backup (auto-deletes in {reveal_delay:g}s)"
    )


def wallet_address(address: str) -> str:
    return f"👀 Your Wallet Address:\n\n`{address}`"


def private_key(base58_key: str, key_array: list[int], delay_seconds: float) -> str:
    return (
        "🔐 *Your Private Key* ⚠️\n\n"
        "*WARNING:* Never share your private key with anyone! "
        "Anyone with access to this key can control your wallet.\n\n"
        f"*Private Key (Base58):*\n`{base58_key}`\n\n"
        f"*Private Key (Array):*\n`[{','.join(str(b) for b in key_array)}]`\n\n"
        f"🚨 *This message will self-delete in {delay_seconds:g} seconds for security!*\n"
        "💾 *Copy your private key NOW!*"
    )


def balance(info: BalanceInfo, cluster: str) -> str:
    return (
        "💰 *Balance Information*\n\n"
        f"*SOL Balance:* {info.balance:.6f} SOL\n"
        f"*Lamports:* {info.lamports:,}\n\n"
        f"_Balance fetched from Solana {cluster}_"
    )


def transaction_history(transactions: list[TransactionInfo]) -> str:
    if not transactions:
        return (
            "📊 *Transaction History*\n\n"
            "No transactions found for this wallet.\n\n"
            "_This wallet hasn't made any transactions yet._"
        )

    lines = [f"📊 *Transaction History* (Last {len(transactions)})\n"]
    for index, tx in enumerate(transactions, start=1):
        if tx.block_time:
            date = datetime.fromtimestamp(tx.block_time, tz=timezone.utc).strftime("%Y-%m-%d")
        else:
            date = "Unknown"
        status = "✅ Success" if tx.succeeded else "❌ Failed"

        lines.append(f"*{index}.* `{short_sig(tx.signature)}`")
        lines.append(f"   📅 {date} | {status}")
        if tx.memo:
            lines.append(f"   📝 {code_span(tx.memo)}")
        lines.append("")

    lines.append("_View full transactions on Solana Explorer_")
    return "\n".join(lines)


BALANCE_FAILED = "❌ Failed to fetch balance. Please check your connection and try again."
HISTORY_FAILED = "❌ Failed to fetch transaction history. Please check your connection and try again."


def airdrop_success(amount: Decimal, signature: str, explorer_url: str) -> str:
    return (
        "✅ *Airdrop Successful!* 🎉\n\n"
        f"💰 *Amount:* {fmt_sol(amount)} SOL\n"
        f"📋 *Transaction:* `{short_sig(signature)}`\n\n"
        f"✨ *{fmt_sol(amount)} SOL has been added to your wallet!*\n"
        "Use \"Check Balance\" to see your updated balance.\n\n"
        f"🔗 View on Solana Explorer: {explorer_url}"
    )


AIRDROP_FAILED = (
    "❌ *Airdrop Failed*\n\n"
    "Sorry, the airdrop request failed. This could be due to:\n"
    "• Rate limiting (try again in a few minutes)\n"
    "• Devnet issues\n"
    "• Network connectivity\n\n"
    "Please try again later."
)

SEND_ABANDONED = 'Send cancelled. Tap "Send SOL" to start again.'

SEND_PROMPT = (
    "💸 *Send SOL* 💸\n\n"
    "Please reply with: `<address> <amount>`\n\n"
    "*Example:* `9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM 0.1`"
)


def confirm_transfer(recipient: str, amount: Decimal, expires_seconds: float) -> str:
    return (
        "🔍 *Confirm Transfer*\n\n"
        f"💸 *Amount:* {fmt_sol(amount)} SOL\n"
        f"📮 *To:* `{recipient}`\n\n"
        f"⏳ This request expires in {expires_seconds / 60:g} minutes.\n\n"
        "Confirm this transfer?"
    )


def transfer_sent(recipient: str, amount: Decimal, signature: str, explorer_url: str) -> str:
    return (
        "✅ *SOL Sent Successfully!* 🎉\n\n"
        f"💸 *Amount:* {fmt_sol(amount)} SOL\n"
        f"📮 *To:* `{recipient}`\n"
        f"📋 *Transaction:* `{short_sig(signature)}`\n\n"
        f"🔗 [View on Explorer]({explorer_url})"
    )


def session_error(error: SessionError) -> str:
    """Text for a session failure, chosen by its kind."""
    if isinstance(error, InsufficientBalance):
        return f"❌ Insufficient balance. You have {error.observed:.6f} SOL."
    return ERROR_TEXTS[error.kind]


ERROR_TEXTS: dict[ErrorKind, str] = {
    ErrorKind.ALREADY_PENDING: (
        "⏳ You already have a transfer awaiting confirmation. "
        "Confirm or cancel it before starting a new one."
    ),
    ErrorKind.NO_PENDING_PROPOSAL: "❌ Transaction expired or invalid.",
    ErrorKind.INVALID_ADDRESS: "❌ Invalid recipient address.",
    ErrorKind.INVALID_FORMAT: (
        "❌ Please reply with the address and the amount separated by a space: "
        "`<address> <amount>`"
    ),
    ErrorKind.INVALID_AMOUNT: "❌ Invalid amount. The amount must be a positive number of SOL.",
    ErrorKind.INSUFFICIENT_BALANCE: "❌ Insufficient balance.",
    ErrorKind.BALANCE_UNAVAILABLE: "❌ Could not check your balance right now. Please try again.",
    ErrorKind.SUBMISSION_FAILED: "❌ Failed to send SOL. Please try again.",
    ErrorKind.NO_WALLET: NO_WALLET,
    ErrorKind.FATAL: GENERIC_FAILURE,
}
