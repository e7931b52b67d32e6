"""Keypair generation from a BIP39 recovery phrase.

The Solana keypair is the ed25519 key whose seed is the first 32 bytes of
the BIP39 seed (empty passphrase). This matches wallets that import a
phrase with ``Keypair.fromSeed(seed.slice(0, 32))``, not the BIP44
m/44'/501' derivation used by Phantom.
"""

from bip_utils import Bip39MnemonicGenerator, Bip39SeedGenerator, Bip39WordsNum
from solders.keypair import Keypair

MNEMONIC_WORDS = Bip39WordsNum.WORDS_NUM_12


def generate_mnemonic() -> str:
    """Generate a fresh 12 word English recovery phrase."""
    return Bip39MnemonicGenerator().FromWordsNumber(MNEMONIC_WORDS).ToStr()


def keypair_from_mnemonic(mnemonic: str) -> Keypair:
    """Derive the wallet keypair for a recovery phrase."""
    seed = Bip39SeedGenerator(mnemonic).Generate()
    return Keypair.from_seed(seed[:32])


def secret_key_base58(keypair: Keypair) -> str:
    """64 byte secret key (seed + public key) as base58."""
    return str(keypair)


def secret_key_array(keypair: Keypair) -> list[int]:
    """64 byte secret key as a list of ints, as written by ``solana-keygen``."""
    return list(bytes(keypair))
