"""Per-user session state: secret reveals and transfer proposals.

The coordinator lives in ``solbot.session.coordinator`` and is not
re-exported here, since it depends on ``solbot.messages`` which in turn
imports the session error kinds.
"""

from solbot.session.errors import ErrorKind, SessionError
from solbot.session.proposals import TransferProposal, TransferProposalManager
from solbot.session.reveal import ExpiringRevealTracker, RevealSession

__all__ = [
    "ErrorKind",
    "ExpiringRevealTracker",
    "RevealSession",
    "SessionError",
    "TransferProposal",
    "TransferProposalManager",
]
