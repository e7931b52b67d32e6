"""Solbot - Telegram custodial Solana wallet."""

__version__ = "0.1.0"
