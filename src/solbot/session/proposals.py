"""Two-phase SOL transfers: propose, then confirm or cancel.

Proposing captures the intent and runs the cheap checks (amount, address
format, balance). Confirming re-checks the balance and submits. A proposal
is removed by exactly one of confirm, cancel or the expiry sweep, and a
confirm removes it before anything touches the network, so the same
proposal can never be submitted twice.

Balance lookups and submissions never run while a user lock is held.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal, DecimalException
from typing import Callable, Optional

from solbot.chain.base import BalanceOracle, LedgerError, LedgerSubmitter, sol_to_lamports
from solbot.session.errors import (
    AlreadyPending,
    BalanceUnavailable,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    NoPendingProposal,
    NoWallet,
    SubmissionFailed,
)
from solbot.utils.locks import KeyedLock
from solbot.wallet.registry import WalletRecord, WalletRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferProposal:
    """A transfer awaiting the user's confirmation."""

    proposal_id: str
    user_id: int
    recipient_address: str
    amount: Decimal
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at


def parse_amount(raw: object) -> Decimal:
    """Parse a user-supplied SOL amount.

    Raises:
        InvalidAmount: Not a number, not finite, not positive, or below one lamport
    """
    try:
        amount = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
        valid = amount.is_finite() and amount > 0 and sol_to_lamports(amount) > 0
    except (DecimalException, ValueError):
        # Includes Overflow for exponents like 1e999999999
        raise InvalidAmount(raw)

    if not valid:
        raise InvalidAmount(raw)
    return amount


class TransferProposalManager:
    """Owns at most one pending transfer proposal per user."""

    def __init__(
        self,
        wallets: WalletRegistry,
        oracle: BalanceOracle,
        submitter: LedgerSubmitter,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._wallets = wallets
        self._oracle = oracle
        self._submitter = submitter
        self._locks = locks or KeyedLock(name="transfer")
        self._clock = clock
        self._proposals: dict[int, TransferProposal] = {}
        # Users with a propose call between its pending check and its insert
        self._reserved: set[int] = set()

    def _wallet(self, user_id: int) -> WalletRecord:
        record = self._wallets.lookup(user_id)
        if record is None:
            raise NoWallet("No wallet for user")
        return record

    async def _fresh_balance(self, record: WalletRecord) -> Decimal:
        try:
            info = await self._oracle.get_balance(record.address)
        except LedgerError as e:
            logger.warning(f"Balance lookup failed for user {record.user_id}: {e}")
            raise BalanceUnavailable(e) from e
        return info.balance

    async def propose(self, user_id: int, recipient_address: str, amount: object) -> TransferProposal:
        """Record a transfer for later confirmation.

        Returns:
            The stored proposal; its ``proposal_id`` binds confirm buttons

        Raises:
            InvalidAmount: Amount is not a positive number (no balance query made)
            NoWallet: User has no wallet
            InvalidAddress: Recipient does not parse as an address
            AlreadyPending: A proposal already exists; it is left untouched
            BalanceUnavailable: Balance could not be fetched
            InsufficientBalance: Balance is below ``amount``; nothing stored
        """
        amount = parse_amount(amount)
        record = self._wallet(user_id)

        recipient_address = recipient_address.strip()
        if not await self._submitter.validate_address(recipient_address):
            raise InvalidAddress(recipient_address)

        async with self._locks.hold(user_id, operation="propose"):
            if user_id in self._proposals or user_id in self._reserved:
                raise AlreadyPending("A transfer is already awaiting confirmation")
            self._reserved.add(user_id)

        try:
            balance = await self._fresh_balance(record)
            if balance < amount:
                raise InsufficientBalance(observed=balance, requested=amount)

            async with self._locks.hold(user_id, operation="propose"):
                proposal = TransferProposal(
                    proposal_id=secrets.token_hex(8),
                    user_id=user_id,
                    recipient_address=recipient_address,
                    amount=amount,
                    created_at=self._clock(),
                )
                self._proposals[user_id] = proposal
        finally:
            self._reserved.discard(user_id)

        logger.info(
            f"Transfer proposed by user {user_id}: {amount} SOL to {recipient_address} "
            f"({proposal.proposal_id})"
        )
        return proposal

    async def confirm(self, user_id: int, proposal_id: Optional[str] = None) -> str:
        """Submit the user's pending transfer.

        The proposal is removed before the balance re-check, whatever the
        outcome. A failed confirm cannot be retried; the user proposes again.

        Args:
            user_id: Sender
            proposal_id: When given, must match the pending proposal. A stale
                id leaves the current proposal in place.

        Returns:
            Transaction signature

        Raises:
            NoPendingProposal: Nothing pending (or expired, or id mismatch)
            BalanceUnavailable: Balance re-check failed
            InsufficientBalance: Balance dropped below the amount since propose
            SubmissionFailed: The ledger rejected or lost the transfer
        """
        async with self._locks.hold(user_id, operation="confirm"):
            proposal = self._proposals.get(user_id)
            if proposal is None or (proposal_id is not None and proposal.proposal_id != proposal_id):
                raise NoPendingProposal("No transfer awaiting confirmation")
            del self._proposals[user_id]

        record = self._wallet(user_id)
        balance = await self._fresh_balance(record)
        if balance < proposal.amount:
            logger.info(
                f"Transfer {proposal.proposal_id} dropped: balance {balance} < {proposal.amount}"
            )
            raise InsufficientBalance(observed=balance, requested=proposal.amount)

        try:
            signature = await self._submitter.send_sol(
                record.keypair, proposal.recipient_address, proposal.amount
            )
        except Exception as e:
            logger.error(f"Transfer {proposal.proposal_id} for user {user_id} failed: {e}")
            raise SubmissionFailed(e) from e

        logger.info(f"Transfer {proposal.proposal_id} for user {user_id} confirmed: {signature}")
        return signature

    async def cancel(self, user_id: int) -> bool:
        """Drop the user's pending transfer. Returns whether one existed."""
        async with self._locks.hold(user_id, operation="cancel"):
            proposal = self._proposals.pop(user_id, None)

        if proposal is not None:
            logger.info(f"Transfer {proposal.proposal_id} cancelled by user {user_id}")
        return proposal is not None

    async def sweep_expired(self, max_age: float) -> int:
        """Silently drop proposals older than ``max_age`` seconds.

        Returns:
            Number of proposals removed
        """
        now = self._clock()
        expired = [p for p in list(self._proposals.values()) if p.age(now) > max_age]

        removed = 0
        for proposal in expired:
            async with self._locks.hold(proposal.user_id, operation="sweep"):
                if self._proposals.get(proposal.user_id) is proposal:
                    del self._proposals[proposal.user_id]
                    removed += 1

        if removed:
            logger.info(f"Swept {removed} expired transfer proposal(s)")
        return removed

    def get(self, user_id: int) -> Optional[TransferProposal]:
        return self._proposals.get(user_id)

    @property
    def pending_count(self) -> int:
        return len(self._proposals)
