"""Solana JSON-RPC client.

Talks to a Solana RPC node over HTTP with httpx. Transfers are built and
signed locally with solders and submitted as base64 wire transactions.
"""

import asyncio
import base64
import logging
from contextlib import contextmanager
from decimal import Decimal
from itertools import count
from typing import Any, Iterator, Optional

import httpx
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from solbot.chain.base import (
    BalanceInfo,
    BalanceOracle,
    LedgerError,
    LedgerSubmitter,
    TransactionInfo,
    sol_to_lamports,
)

logger = logging.getLogger(__name__)

COMMITMENT = "confirmed"
CONFIRMED_STATUSES = ("confirmed", "finalized")


def parse_pubkey(address: str) -> Pubkey:
    """Parse a base58 public key, raising ValueError when malformed."""
    return Pubkey.from_string(address.strip())


@contextmanager
def decoding(method: str) -> Iterator[None]:
    """Raise LedgerError when an RPC result does not have the expected shape."""
    try:
        yield
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        logger.error(f"RPC {method} returned a malformed result: {e!r}")
        raise LedgerError(f"Malformed {method} result", method=method) from e


def expect_signature(method: str, result: Any) -> str:
    if not isinstance(result, str) or not result:
        logger.error(f"RPC {method} returned a non-signature result: {result!r}")
        raise LedgerError(f"Malformed {method} result", method=method)
    return result


class SolanaClient(BalanceOracle, LedgerSubmitter):
    """Ledger client for balance queries, history, airdrops and transfers.

    Example:
        client = SolanaClient("https://api.devnet.solana.com")
        info = await client.get_balance("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM")
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        confirm_timeout: float = 30.0,
        poll_interval: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            rpc_url: JSON-RPC endpoint
            timeout: Per-request HTTP timeout
            confirm_timeout: How long to wait for a signature to confirm
            poll_interval: Delay between signature status polls
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self._transport = transport
        self._ids = count(1)

    async def _rpc(self, method: str, params: Optional[list] = None) -> Any:
        """Perform a JSON-RPC call and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC {method} failed: {e}")
            raise LedgerError(f"RPC request failed: {e}", method=method) from e
        except ValueError as e:
            logger.error(f"RPC {method} returned invalid JSON: {e}")
            raise LedgerError("RPC returned invalid JSON", method=method) from e

        if data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            logger.warning(f"RPC {method} error: {message}")
            raise LedgerError(message, method=method)

        if "result" not in data:
            raise LedgerError("RPC response has no result", method=method)

        return data["result"]

    async def get_balance(self, public_key: str) -> BalanceInfo:
        """Get account balance."""
        result = await self._rpc("getBalance", [public_key, {"commitment": COMMITMENT}])
        with decoding("getBalance"):
            return BalanceInfo.from_lamports(int(result["value"]))

    async def get_transaction_history(
        self, public_key: str, limit: int = 10
    ) -> list[TransactionInfo]:
        """Get the most recent signatures involving an address."""
        result = await self._rpc(
            "getSignaturesForAddress",
            [public_key, {"limit": limit, "commitment": COMMITMENT}],
        )

        with decoding("getSignaturesForAddress"):
            return [
                TransactionInfo(
                    signature=entry["signature"],
                    slot=entry.get("slot", 0),
                    block_time=entry.get("blockTime"),
                    confirmation_status=entry.get("confirmationStatus") or "unknown",
                    err=entry.get("err"),
                    memo=entry.get("memo"),
                )
                for entry in result or []
            ]

    async def request_airdrop(self, public_key: str, amount: Decimal) -> str:
        """Request a devnet/testnet airdrop and wait for it to confirm."""
        result = await self._rpc(
            "requestAirdrop",
            [public_key, sol_to_lamports(amount), {"commitment": COMMITMENT}],
        )
        signature = expect_signature("requestAirdrop", result)
        await self.wait_for_confirmation(signature)
        logger.info(f"Airdrop of {amount} SOL confirmed: {signature}")
        return signature

    async def validate_address(self, address: str) -> bool:
        """Validate a Solana address (base58, 32 bytes)."""
        try:
            parse_pubkey(address)
        except ValueError:
            return False
        return True

    async def get_latest_blockhash(self) -> Hash:
        result = await self._rpc("getLatestBlockhash", [{"commitment": COMMITMENT}])
        with decoding("getLatestBlockhash"):
            return Hash.from_string(result["value"]["blockhash"])

    async def send_sol(self, sender: Keypair, recipient: str, amount: Decimal) -> str:
        """Transfer SOL from ``sender`` to ``recipient`` and wait for confirmation."""
        try:
            to_pubkey = parse_pubkey(recipient)
        except ValueError as e:
            raise LedgerError(f"Invalid recipient address: {recipient}", method="sendTransaction") from e

        lamports = sol_to_lamports(amount)
        if lamports <= 0:
            raise LedgerError(f"Amount {amount} is below one lamport", method="sendTransaction")

        blockhash = await self.get_latest_blockhash()
        instruction = transfer(
            TransferParams(from_pubkey=sender.pubkey(), to_pubkey=to_pubkey, lamports=lamports)
        )
        message = Message([instruction], sender.pubkey())
        tx = Transaction([sender], message, blockhash)
        encoded = base64.b64encode(bytes(tx)).decode()

        result = await self._rpc(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": COMMITMENT}],
        )
        signature = expect_signature("sendTransaction", result)
        logger.info(f"Submitted transfer of {amount} SOL to {recipient}: {signature}")

        await self.wait_for_confirmation(signature)
        return signature

    async def wait_for_confirmation(self, signature: str) -> None:
        """Poll signature status until confirmed.

        Raises:
            LedgerError: If the transaction failed or did not confirm in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirm_timeout

        while True:
            result = await self._rpc("getSignatureStatuses", [[signature]])
            with decoding("getSignatureStatuses"):
                status = (result.get("value") or [None])[0]
                if status is not None:
                    err = status.get("err")
                    confirmed = status.get("confirmationStatus") in CONFIRMED_STATUSES

            if status is not None:
                if err is not None:
                    raise LedgerError(
                        f"Transaction {signature} failed: {err}",
                        method="getSignatureStatuses",
                    )
                if confirmed:
                    return

            if loop.time() >= deadline:
                raise LedgerError(
                    f"Transaction {signature} not confirmed within {self.confirm_timeout}s",
                    method="getSignatureStatuses",
                )
            await asyncio.sleep(self.poll_interval)
