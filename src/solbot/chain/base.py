"""Interfaces for the Solana ledger collaborator.

The session layer only needs two capabilities from the chain:
- a balance oracle, queried at propose time and again at confirm time
- a submitter, which validates addresses and sends signed transfers

Both are async because every call crosses the network.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from solders.keypair import Keypair

LAMPORTS_PER_SOL = 1_000_000_000


class LedgerError(Exception):
    """Raised when a ledger RPC call fails (network, RPC error or timeout)."""

    def __init__(self, message: str, method: Optional[str] = None):
        self.method = method
        super().__init__(message)


@dataclass
class BalanceInfo:
    """Account balance in SOL and lamports."""

    balance: Decimal
    lamports: int

    @classmethod
    def from_lamports(cls, lamports: int) -> "BalanceInfo":
        return cls(balance=Decimal(lamports) / Decimal(LAMPORTS_PER_SOL), lamports=lamports)


@dataclass
class TransactionInfo:
    """One entry of an address's signature history."""

    signature: str
    slot: int
    block_time: Optional[int] = None
    confirmation_status: str = "unknown"
    err: Any = None
    memo: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.err is None


def sol_to_lamports(amount: Decimal) -> int:
    """Convert a SOL amount to whole lamports, truncating sub-lamport dust."""
    return int(amount * LAMPORTS_PER_SOL)


class BalanceOracle(ABC):
    """Source of fresh account balances."""

    @abstractmethod
    async def get_balance(self, public_key: str) -> BalanceInfo:
        """Fetch the current balance.

        Raises:
            LedgerError: If the balance could not be fetched. Callers must
                never treat this as a zero balance.
        """
        pass


class LedgerSubmitter(ABC):
    """Validates destinations and submits signed SOL transfers."""

    @abstractmethod
    async def validate_address(self, address: str) -> bool:
        """Check that ``address`` parses as a Solana public key."""
        pass

    @abstractmethod
    async def send_sol(self, sender: Keypair, recipient: str, amount: Decimal) -> str:
        """Sign, submit and confirm a transfer.

        Returns:
            Transaction signature

        Raises:
            LedgerError: On any submission or confirmation failure
        """
        pass
