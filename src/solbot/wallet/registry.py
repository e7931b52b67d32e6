"""In-memory registry of user wallets.

Records are write-once: a user's wallet is created on the first
provisioning request and is never replaced or deleted while the process
runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from solders.keypair import Keypair

from solbot.utils.locks import KeyedLock
from solbot.wallet.keys import generate_mnemonic, keypair_from_mnemonic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletRecord:
    """A user's custodial keypair."""

    user_id: int
    keypair: Keypair
    mnemonic: Optional[str] = field(default=None, repr=False)

    @property
    def address(self) -> str:
        return str(self.keypair.pubkey())


class WalletRegistry:
    """Maps user IDs to their wallet. Sole writer of WalletRecord values."""

    def __init__(
        self,
        locks: Optional[KeyedLock] = None,
        mnemonic_factory: Callable[[], str] = generate_mnemonic,
    ):
        self._locks = locks or KeyedLock(name="wallet")
        self._mnemonic_factory = mnemonic_factory
        self._wallets: dict[int, WalletRecord] = {}

    async def provision(self, user_id: int) -> tuple[WalletRecord, bool]:
        """Create the user's wallet unless one exists.

        Returns:
            Tuple of (record, created). ``created`` is False when the user
            already had a wallet; the existing record is returned untouched.

        Raises:
            Exception: Entropy or derivation failures propagate unchanged.
        """
        async with self._locks.hold(user_id, operation="provision"):
            existing = self._wallets.get(user_id)
            if existing is not None:
                return existing, False

            mnemonic = self._mnemonic_factory()
            record = WalletRecord(
                user_id=user_id,
                keypair=keypair_from_mnemonic(mnemonic),
                mnemonic=mnemonic,
            )
            self._wallets[user_id] = record

        logger.info(f"Wallet created for user {user_id}: {record.address}")
        return record, True

    def lookup(self, user_id: int) -> Optional[WalletRecord]:
        return self._wallets.get(user_id)

    def has_wallet(self, user_id: int) -> bool:
        return user_id in self._wallets

    def count(self) -> int:
        """Number of users with a wallet."""
        return len(self._wallets)
