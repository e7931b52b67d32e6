"""Wallet key management."""

from solbot.wallet.registry import WalletRecord, WalletRegistry

__all__ = ["WalletRecord", "WalletRegistry"]
