"""Telegram transport for the wallet bot."""
