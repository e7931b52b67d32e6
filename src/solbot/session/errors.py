"""Error kinds raised by session operations.

Every failure carries an ``ErrorKind``; the coordinator dispatches on the
kind and never on the message text.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of session failure kinds."""

    ALREADY_PENDING = "already_pending"
    NO_PENDING_PROPOSAL = "no_pending_proposal"
    INVALID_ADDRESS = "invalid_address"
    INVALID_FORMAT = "invalid_format"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    BALANCE_UNAVAILABLE = "balance_unavailable"
    SUBMISSION_FAILED = "submission_failed"
    NO_WALLET = "no_wallet"
    FATAL = "fatal"


class SessionError(Exception):
    """Base class for session failures."""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)


class AlreadyPending(SessionError):
    """A reveal or transfer is already pending for this user."""

    kind = ErrorKind.ALREADY_PENDING


class NoPendingProposal(SessionError):
    """No transfer is awaiting confirmation (never proposed, expired or finished)."""

    kind = ErrorKind.NO_PENDING_PROPOSAL


class InvalidAddress(SessionError):
    kind = ErrorKind.INVALID_ADDRESS

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid recipient address: {address!r}")


class InvalidTransferFormat(SessionError):
    """Transfer request is not exactly ``<address> <amount>``."""

    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, raw: object):
        self.raw = raw
        super().__init__(f"Expected '<address> <amount>', got {raw!r}")


class InvalidAmount(SessionError):
    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, raw: object):
        self.raw = raw
        super().__init__(f"Invalid amount: {raw!r}")


class InsufficientBalance(SessionError):
    """Balance is below the requested amount. Carries the observed balance."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, observed: Decimal, requested: Decimal):
        self.observed = observed
        self.requested = requested
        super().__init__(f"Balance {observed} is below requested {requested}")


class BalanceUnavailable(SessionError):
    """The balance oracle failed. Never interpreted as a zero balance."""

    kind = ErrorKind.BALANCE_UNAVAILABLE

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(f"Balance lookup failed: {cause}")


class SubmissionFailed(SessionError):
    """Ledger submission failed. The proposal has been discarded."""

    kind = ErrorKind.SUBMISSION_FAILED

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Transfer submission failed: {cause}")


class NoWallet(SessionError):
    kind = ErrorKind.NO_WALLET
