"""Pytest configuration and fixtures."""

import asyncio
import os
from decimal import Decimal
from typing import Optional

import pytest
from solders.keypair import Keypair

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["TELEGRAM_BOT_TOKEN"] = ""

from solbot.chain.base import (
    LAMPORTS_PER_SOL,
    BalanceInfo,
    BalanceOracle,
    LedgerSubmitter,
    TransactionInfo,
)
from solbot.chain.client import parse_pubkey
from solbot.config import Settings
from solbot.session.coordinator import SessionCoordinator
from solbot.session.proposals import TransferProposalManager
from solbot.session.reveal import ExpiringRevealTracker
from solbot.utils.locks import KeyedLock
from solbot.wallet.registry import WalletRegistry


def new_address() -> str:
    """A fresh valid Solana address."""
    return str(Keypair().pubkey())


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLedger(BalanceOracle, LedgerSubmitter):
    """In-memory ledger: every address shares one configurable balance."""

    def __init__(self, balance: Decimal = Decimal("1.0")):
        self.balance = Decimal(balance)
        self.balance_error: Optional[Exception] = None
        self.balance_delay = 0.0
        self.send_error: Optional[Exception] = None
        self.airdrop_error: Optional[Exception] = None
        self.history: list[TransactionInfo] = []
        self.balance_calls = 0
        self.sent: list[tuple[str, str, Decimal]] = []

    async def get_balance(self, public_key: str) -> BalanceInfo:
        self.balance_calls += 1
        if self.balance_delay:
            await asyncio.sleep(self.balance_delay)
        if self.balance_error:
            raise self.balance_error
        return BalanceInfo(balance=self.balance, lamports=int(self.balance * LAMPORTS_PER_SOL))

    async def validate_address(self, address: str) -> bool:
        try:
            parse_pubkey(address)
        except ValueError:
            return False
        return True

    async def send_sol(self, sender: Keypair, recipient: str, amount: Decimal) -> str:
        if self.send_error:
            raise self.send_error
        self.sent.append((str(sender.pubkey()), recipient, amount))
        return f"sig{len(self.sent)}" + "x" * 80

    async def get_transaction_history(self, public_key: str, limit: int = 10) -> list[TransactionInfo]:
        return self.history[:limit]

    async def request_airdrop(self, public_key: str, amount: Decimal) -> str:
        if self.airdrop_error:
            raise self.airdrop_error
        return "airdrop" + "y" * 80


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def settings() -> Settings:
    """Settings with short timings for tests."""
    return Settings(
        _env_file=None,
        telegram_bot_token="",
        reveal_delay_seconds=0.05,
        proposal_max_age_seconds=300,
        sweep_interval_seconds=0.02,
        lock_timeout=1.0,
    )


@pytest.fixture
def registry() -> WalletRegistry:
    return WalletRegistry(locks=KeyedLock(timeout=1.0, name="wallet"))


@pytest.fixture
def tracker() -> ExpiringRevealTracker:
    return ExpiringRevealTracker(locks=KeyedLock(timeout=1.0, name="reveal"))


@pytest.fixture
def manager(registry: WalletRegistry, ledger: FakeLedger, clock: FakeClock) -> TransferProposalManager:
    return TransferProposalManager(
        registry,
        oracle=ledger,
        submitter=ledger,
        locks=KeyedLock(timeout=1.0, name="transfer"),
        clock=clock,
    )


@pytest.fixture
def coordinator(
    registry: WalletRegistry,
    tracker: ExpiringRevealTracker,
    manager: TransferProposalManager,
    ledger: FakeLedger,
    settings: Settings,
) -> SessionCoordinator:
    return SessionCoordinator(registry, tracker, manager, ledger, settings)


