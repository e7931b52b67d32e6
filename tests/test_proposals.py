"""Tests for the two-phase transfer proposal manager."""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from solbot.chain.base import LedgerError
from solbot.session.errors import (
    AlreadyPending,
    BalanceUnavailable,
    ErrorKind,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    NoPendingProposal,
    NoWallet,
    SubmissionFailed,
)
from solbot.session.proposals import TransferProposalManager, parse_amount
from solbot.wallet.registry import WalletRegistry

from conftest import FakeClock, FakeLedger, new_address

USER = 42
MAX_AGE = 300


@pytest_asyncio.fixture
async def funded_user(registry: WalletRegistry) -> int:
    await registry.provision(USER)
    return USER


class TestParseAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw", ["0.5", "1", "0.000000001", Decimal("2.25")])
    def test_valid(self, raw):
        assert parse_amount(raw) == Decimal(str(raw))

    @pytest.mark.parametrize(
        "raw", ["0", "-1", "abc", "", "nan", "inf", "0.0000000001", "1e999999999", "-1e999999999"]
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidAmount):
            parse_amount(raw)


class TestPropose:
    """Tests for propose()."""

    @pytest.mark.asyncio
    async def test_propose_stores_proposal(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger, clock: FakeClock
    ):
        recipient = new_address()

        proposal = await manager.propose(USER, recipient, "0.5")

        assert proposal.user_id == USER
        assert proposal.recipient_address == recipient
        assert proposal.amount == Decimal("0.5")
        assert proposal.created_at == clock.now
        assert len(proposal.proposal_id) == 16
        assert manager.get(USER) is proposal
        assert ledger.balance_calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-0.5", Decimal("0"), Decimal("-3")])
    async def test_non_positive_amount_skips_balance_query(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger, amount
    ):
        with pytest.raises(InvalidAmount) as exc_info:
            await manager.propose(USER, new_address(), amount)

        assert exc_info.value.kind == ErrorKind.INVALID_AMOUNT
        assert ledger.balance_calls == 0
        assert manager.get(USER) is None

    @pytest.mark.asyncio
    async def test_invalid_address(self, manager: TransferProposalManager, funded_user, ledger: FakeLedger):
        with pytest.raises(InvalidAddress):
            await manager.propose(USER, "ADDR1", "0.5")

        assert ledger.balance_calls == 0
        assert manager.get(USER) is None

    @pytest.mark.asyncio
    async def test_insufficient_balance_carries_observed(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        ledger.balance = Decimal("2.0")

        with pytest.raises(InsufficientBalance) as exc_info:
            await manager.propose(USER, new_address(), "3.0")

        assert exc_info.value.observed == Decimal("2.0")
        assert exc_info.value.requested == Decimal("3.0")
        assert manager.get(USER) is None

    @pytest.mark.asyncio
    async def test_exact_balance_is_enough(self, manager: TransferProposalManager, funded_user, ledger: FakeLedger):
        ledger.balance = Decimal("1.0")

        proposal = await manager.propose(USER, new_address(), "1.0")

        assert proposal.amount == Decimal("1.0")

    @pytest.mark.asyncio
    async def test_balance_failure_is_not_zero_balance(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        ledger.balance_error = LedgerError("connection refused")

        with pytest.raises(BalanceUnavailable):
            await manager.propose(USER, new_address(), "0.5")

        assert manager.get(USER) is None

        # Reservation released: a later propose goes through
        ledger.balance_error = None
        await manager.propose(USER, new_address(), "0.5")

    @pytest.mark.asyncio
    async def test_second_propose_rejected_without_mutation(
        self, manager: TransferProposalManager, funded_user
    ):
        first = await manager.propose(USER, new_address(), "0.5")

        with pytest.raises(AlreadyPending):
            await manager.propose(USER, new_address(), "0.1")

        assert manager.get(USER) is first
        assert manager.get(USER).amount == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_propose_without_wallet(self, manager: TransferProposalManager):
        with pytest.raises(NoWallet):
            await manager.propose(7, new_address(), "0.5")

    @pytest.mark.asyncio
    async def test_concurrent_propose_one_wins(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        ledger.balance_delay = 0.02

        results = await asyncio.gather(
            manager.propose(USER, new_address(), "0.5"),
            manager.propose(USER, new_address(), "0.25"),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, AlreadyPending)]
        assert len(succeeded) == 1
        assert len(rejected) == 1
        assert manager.get(USER) is succeeded[0]
        assert manager.pending_count == 1

    @pytest.mark.asyncio
    async def test_users_do_not_block_each_other(
        self, manager: TransferProposalManager, registry: WalletRegistry
    ):
        await registry.provision(1)
        await registry.provision(2)

        await manager.propose(1, new_address(), "0.5")
        await manager.propose(2, new_address(), "0.5")

        assert manager.pending_count == 2


class TestConfirm:
    """Tests for confirm()."""

    @pytest.mark.asyncio
    async def test_confirm_without_propose(self, manager: TransferProposalManager, funded_user):
        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER)

    @pytest.mark.asyncio
    async def test_propose_confirm_then_nothing_pending(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger, registry: WalletRegistry
    ):
        recipient = new_address()
        ledger.balance = Decimal("1.0")

        await manager.propose(USER, recipient, "0.5")
        signature = await manager.confirm(USER)

        assert signature.startswith("sig1")
        assert ledger.sent == [(registry.lookup(USER).address, recipient, Decimal("0.5"))]
        assert manager.get(USER) is None

        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER)
        assert len(ledger.sent) == 1

    @pytest.mark.asyncio
    async def test_balance_dropped_before_confirm(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        ledger.balance = Decimal("1.0")
        await manager.propose(USER, new_address(), "0.5")

        ledger.balance = Decimal("0.1")
        with pytest.raises(InsufficientBalance) as exc_info:
            await manager.confirm(USER)

        assert exc_info.value.observed == Decimal("0.1")
        assert manager.get(USER) is None
        assert ledger.sent == []

    @pytest.mark.asyncio
    async def test_balance_failure_at_confirm_removes_proposal(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        await manager.propose(USER, new_address(), "0.5")
        ledger.balance_error = LedgerError("timeout")

        with pytest.raises(BalanceUnavailable):
            await manager.confirm(USER)

        assert manager.get(USER) is None
        assert ledger.sent == []

    @pytest.mark.asyncio
    async def test_submission_failure_wraps_cause(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        await manager.propose(USER, new_address(), "0.5")
        cause = LedgerError("Transaction simulation failed")
        ledger.send_error = cause

        with pytest.raises(SubmissionFailed) as exc_info:
            await manager.confirm(USER)

        assert exc_info.value.cause is cause
        assert manager.get(USER) is None

        # No retry on a failed proposal
        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER)

    @pytest.mark.asyncio
    async def test_stale_proposal_id_keeps_current_proposal(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        proposal = await manager.propose(USER, new_address(), "0.5")

        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER, "0000000000000000")

        assert manager.get(USER) is proposal
        assert ledger.sent == []

        await manager.confirm(USER, proposal.proposal_id)
        assert len(ledger.sent) == 1

    @pytest.mark.asyncio
    async def test_concurrent_confirms_submit_once(
        self, manager: TransferProposalManager, funded_user, ledger: FakeLedger
    ):
        await manager.propose(USER, new_address(), "0.5")
        ledger.balance_delay = 0.02

        results = await asyncio.gather(
            manager.confirm(USER), manager.confirm(USER), return_exceptions=True
        )

        assert sum(1 for r in results if isinstance(r, str)) == 1
        assert sum(1 for r in results if isinstance(r, NoPendingProposal)) == 1
        assert len(ledger.sent) == 1


class TestCancel:
    """Tests for cancel()."""

    @pytest.mark.asyncio
    async def test_cancel_existing(self, manager: TransferProposalManager, funded_user):
        await manager.propose(USER, new_address(), "0.5")

        assert await manager.cancel(USER) is True
        assert manager.get(USER) is None

        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER)

    @pytest.mark.asyncio
    async def test_cancel_missing(self, manager: TransferProposalManager, registry: WalletRegistry):
        await registry.provision(1)
        await registry.provision(2)
        other = await manager.propose(2, new_address(), "0.5")

        assert await manager.cancel(1) is False
        assert manager.get(2) is other


class TestSweep:
    """Tests for sweep_expired()."""

    @pytest.mark.asyncio
    async def test_sweep_removes_expired(
        self, manager: TransferProposalManager, funded_user, clock: FakeClock
    ):
        await manager.propose(USER, new_address(), "0.5")

        clock.advance(MAX_AGE + 1)
        removed = await manager.sweep_expired(MAX_AGE)

        assert removed == 1
        assert manager.get(USER) is None
        with pytest.raises(NoPendingProposal):
            await manager.confirm(USER)

    @pytest.mark.asyncio
    async def test_sweep_keeps_fresh(
        self, manager: TransferProposalManager, funded_user, clock: FakeClock
    ):
        proposal = await manager.propose(USER, new_address(), "0.5")

        clock.advance(MAX_AGE)
        removed = await manager.sweep_expired(MAX_AGE)

        assert removed == 0
        assert manager.get(USER) is proposal

    @pytest.mark.asyncio
    async def test_sweep_only_touches_old_proposals(
        self, manager: TransferProposalManager, registry: WalletRegistry, clock: FakeClock
    ):
        await registry.provision(1)
        await registry.provision(2)
        await manager.propose(1, new_address(), "0.5")
        clock.advance(200)
        newer = await manager.propose(2, new_address(), "0.5")

        clock.advance(150)
        removed = await manager.sweep_expired(MAX_AGE)

        assert removed == 1
        assert manager.get(1) is None
        assert manager.get(2) is newer

    @pytest.mark.asyncio
    async def test_sweep_empty(self, manager: TransferProposalManager):
        assert await manager.sweep_expired(MAX_AGE) == 0
