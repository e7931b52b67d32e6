"""Session coordinator: one call per user command.

Composes the wallet registry, the reveal tracker and the transfer
proposal manager into the operations the chat transport calls. Every
operation returns a ``CommandResult``; no exception escapes a command.
The coordinator also owns the periodic proposal sweep.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

from solbot import messages
from solbot.chain.base import BalanceInfo, LedgerError
from solbot.chain.client import SolanaClient
from solbot.config import Settings
from solbot.session.errors import (
    AlreadyPending,
    ErrorKind,
    InvalidTransferFormat,
    NoWallet,
    SessionError,
)
from solbot.session.proposals import TransferProposalManager
from solbot.session.reveal import ExpiringRevealTracker, RetractFn, RevealFn
from solbot.utils.locks import KeyedLock, LockTimeoutError
from solbot.wallet.keys import secret_key_array, secret_key_base58
from solbot.wallet.registry import WalletRecord, WalletRegistry

logger = logging.getLogger(__name__)

MARKDOWN = "Markdown"
HTML = "HTML"


class ResultStatus(str, Enum):
    OK = "ok"
    REJECTED = "rejected"
    FATAL = "fatal"


class Keyboard(str, Enum):
    """Which buttons the transport should attach."""

    MAIN_MENU = "main_menu"
    CONFIRM_TRANSFER = "confirm_transfer"
    NONE = "none"


@dataclass
class CommandResult:
    """Outcome of a command, rendered by the transport.

    ``text`` is None when the command already produced its own output
    (a revealed secret is sent by the reveal callback).
    """

    status: ResultStatus
    text: Optional[str]
    parse_mode: Optional[str] = MARKDOWN
    keyboard: Keyboard = Keyboard.MAIN_MENU
    has_wallet: bool = False
    proposal_id: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


F = TypeVar("F", bound=Callable[..., Awaitable[CommandResult]])


def command(name: str) -> Callable[[F], F]:
    """Turn session failures into Rejected results and anything else into Fatal.

    The wrapped method must take ``user_id`` as its first argument.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(self: "SessionCoordinator", user_id: int, *args: Any, **kwargs: Any):
            try:
                return await func(self, user_id, *args, **kwargs)
            except SessionError as e:
                return self._rejected(user_id, messages.session_error(e), error_kind=e.kind)
            except LockTimeoutError as e:
                logger.error(f"{name} for user {user_id}: {e}")
                return self._fatal(user_id)
            except Exception:
                logger.exception(f"Unhandled error in {name} for user {user_id}")
                return self._fatal(user_id)

        return wrapper  # type: ignore[return-value]

    return decorator


class SessionCoordinator:
    """Entry point for every user command."""

    def __init__(
        self,
        wallets: WalletRegistry,
        reveals: ExpiringRevealTracker,
        proposals: TransferProposalManager,
        ledger: SolanaClient,
        settings: Settings,
    ):
        self.wallets = wallets
        self.reveals = reveals
        self.proposals = proposals
        self.ledger = ledger
        self.settings = settings
        self._sweep_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionCoordinator":
        """Wire up all components against a live Solana RPC endpoint."""
        ledger = SolanaClient(
            settings.sol_rpc_url,
            timeout=settings.rpc_timeout,
            confirm_timeout=settings.confirm_timeout,
            poll_interval=settings.confirm_poll_interval,
        )
        wallets = WalletRegistry(locks=KeyedLock(settings.lock_timeout, name="wallet"))
        reveals = ExpiringRevealTracker(locks=KeyedLock(settings.lock_timeout, name="reveal"))
        proposals = TransferProposalManager(
            wallets,
            oracle=ledger,
            submitter=ledger,
            locks=KeyedLock(settings.lock_timeout, name="transfer"),
        )
        return cls(wallets, reveals, proposals, ledger, settings)

    # ------------------------------------------------------------------
    # Result helpers
    # ------------------------------------------------------------------

    def _ok(self, user_id: int, text: Optional[str], **kwargs: Any) -> CommandResult:
        return CommandResult(
            ResultStatus.OK, text, has_wallet=self.wallets.has_wallet(user_id), **kwargs
        )

    def _rejected(self, user_id: int, text: str, **kwargs: Any) -> CommandResult:
        return CommandResult(
            ResultStatus.REJECTED, text, has_wallet=self.wallets.has_wallet(user_id), **kwargs
        )

    def _fatal(self, user_id: int) -> CommandResult:
        return CommandResult(
            ResultStatus.FATAL,
            messages.GENERIC_FAILURE,
            parse_mode=None,
            has_wallet=self.wallets.has_wallet(user_id),
            error_kind=ErrorKind.FATAL,
        )

    def _require_wallet(self, user_id: int) -> WalletRecord:
        record = self.wallets.lookup(user_id)
        if record is None:
            raise NoWallet()
        return record

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @command("start")
    async def start(self, user_id: int, first_name: Optional[str] = None) -> CommandResult:
        return self._ok(user_id, messages.welcome(first_name), parse_mode=HTML)

    @command("user_count")
    async def user_count(self, user_id: int) -> CommandResult:
        return self._ok(user_id, messages.user_count(self.wallets.count()), parse_mode=None)

    @command("generate_wallet")
    async def generate_wallet(self, user_id: int) -> CommandResult:
        record, created = await self.wallets.provision(user_id)
        if not created:
            return self._rejected(user_id, messages.WALLET_EXISTS, parse_mode=None)

        balance: Optional[BalanceInfo]
        try:
            balance = await self.ledger.get_balance(record.address)
        except LedgerError as e:
            logger.warning(f"Could not fetch balance of new wallet for user {user_id}: {e}")
            balance = None

        text = messages.wallet_generated(
            record.address, record.mnemonic, balance, self.settings.reveal_delay_seconds
        )
        return self._ok(user_id, text)

    @command("view_address")
    async def view_address(self, user_id: int) -> CommandResult:
        record = self._require_wallet(user_id)
        return self._ok(user_id, messages.wallet_address(record.address))

    @command("export_private_key")
    async def export_private_key(
        self, user_id: int, reveal_fn: RevealFn, retract_fn: RetractFn
    ) -> CommandResult:
        """Show the secret key and schedule its deletion.

        ``reveal_fn(text)`` sends the secret and returns the sent message;
        ``retract_fn(message)`` deletes it.
        """
        record = self._require_wallet(user_id)
        delay = self.settings.reveal_delay_seconds
        payload = messages.private_key(
            secret_key_base58(record.keypair), secret_key_array(record.keypair), delay
        )

        try:
            await self.reveals.try_start(user_id, payload, reveal_fn, retract_fn, delay)
        except AlreadyPending:
            return self._rejected(
                user_id, messages.REVEAL_PENDING, parse_mode=None, error_kind=ErrorKind.ALREADY_PENDING
            )

        logger.info(f"Private key revealed to user {user_id}, deleting in {delay}s")
        return self._ok(user_id, None, keyboard=Keyboard.NONE)

    @command("check_balance")
    async def check_balance(self, user_id: int) -> CommandResult:
        record = self._require_wallet(user_id)
        try:
            info = await self.ledger.get_balance(record.address)
        except LedgerError as e:
            logger.warning(f"Balance check failed for user {user_id}: {e}")
            return self._rejected(
                user_id, messages.BALANCE_FAILED, error_kind=ErrorKind.BALANCE_UNAVAILABLE
            )
        return self._ok(user_id, messages.balance(info, self.settings.sol_cluster))

    @command("transaction_history")
    async def transaction_history(self, user_id: int) -> CommandResult:
        record = self._require_wallet(user_id)
        try:
            transactions = await self.ledger.get_transaction_history(
                record.address, self.settings.history_limit
            )
        except LedgerError as e:
            logger.warning(f"History lookup failed for user {user_id}: {e}")
            return self._rejected(user_id, messages.HISTORY_FAILED)
        return self._ok(user_id, messages.transaction_history(transactions))

    @command("request_airdrop")
    async def request_airdrop(self, user_id: int) -> CommandResult:
        record = self._require_wallet(user_id)
        amount = self.settings.airdrop_amount
        try:
            signature = await self.ledger.request_airdrop(record.address, amount)
        except LedgerError as e:
            logger.warning(f"Airdrop failed for user {user_id}: {e}")
            return self._rejected(user_id, messages.AIRDROP_FAILED)

        text = messages.airdrop_success(amount, signature, self.settings.explorer_tx_url(signature))
        return self._ok(user_id, text)

    @command("send_prompt")
    async def send_prompt(self, user_id: int) -> CommandResult:
        self._require_wallet(user_id)
        return self._ok(user_id, messages.SEND_PROMPT)

    @command("propose_transfer")
    async def propose_transfer(self, user_id: int, raw_args: str) -> CommandResult:
        """Parse ``<address> <amount>`` and record a transfer proposal."""
        self._require_wallet(user_id)

        parts = (raw_args or "").split()
        if len(parts) != 2:
            raise InvalidTransferFormat(raw_args)
        recipient, amount = parts

        proposal = await self.proposals.propose(user_id, recipient, amount)
        text = messages.confirm_transfer(
            proposal.recipient_address, proposal.amount, self.settings.proposal_max_age_seconds
        )
        return self._ok(
            user_id, text, keyboard=Keyboard.CONFIRM_TRANSFER, proposal_id=proposal.proposal_id
        )

    @command("confirm_transfer")
    async def confirm_transfer(
        self, user_id: int, proposal_id: Optional[str] = None
    ) -> CommandResult:
        pending = self.proposals.get(user_id)
        if pending is not None and proposal_id is None:
            proposal_id = pending.proposal_id

        signature = await self.proposals.confirm(user_id, proposal_id)

        # confirm() matched proposal_id, so ``pending`` is the proposal that was sent
        text = messages.transfer_sent(
            pending.recipient_address,
            pending.amount,
            signature,
            self.settings.explorer_tx_url(signature),
        )
        return self._ok(user_id, text, keyboard=Keyboard.NONE)

    @command("cancel_transfer")
    async def cancel_transfer(self, user_id: int) -> CommandResult:
        if await self.proposals.cancel(user_id):
            return self._ok(user_id, messages.TRANSFER_CANCELLED, keyboard=Keyboard.NONE)
        return self._rejected(user_id, messages.NOTHING_TO_CANCEL, keyboard=Keyboard.NONE)

    # ------------------------------------------------------------------
    # Background sweep and shutdown
    # ------------------------------------------------------------------

    async def sweep_once(self) -> int:
        return await self.proposals.sweep_expired(self.settings.proposal_max_age_seconds)

    async def _sweep_loop(self) -> None:
        interval = self.settings.sweep_interval_seconds
        logger.info(
            f"Starting transfer sweep (interval: {interval}s, "
            f"max age: {self.settings.proposal_max_age_seconds}s)"
        )
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Transfer sweep error: {e}")

    def start_background(self) -> None:
        """Start the periodic sweep. Safe to call more than once."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="transfer-sweep")

    async def shutdown(self) -> None:
        """Stop the sweep and cancel pending retractions without running them."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            await asyncio.gather(self._sweep_task, return_exceptions=True)
            self._sweep_task = None

        await self.reveals.cancel_all()
        logger.info("Session coordinator stopped")
