"""Solana ledger access."""

from solbot.chain.base import (
    LAMPORTS_PER_SOL,
    BalanceInfo,
    BalanceOracle,
    LedgerError,
    LedgerSubmitter,
    TransactionInfo,
)
from solbot.chain.client import SolanaClient

__all__ = [
    "LAMPORTS_PER_SOL",
    "BalanceInfo",
    "BalanceOracle",
    "LedgerError",
    "LedgerSubmitter",
    "SolanaClient",
    "TransactionInfo",
]
