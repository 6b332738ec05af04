"""
Token-Weighted Governance

Provides:
  - ProposalState / Proposal / ProposalRegistry         (proposals.py)
  - VoterEntry / VoterLedger / power & quorum math       (voting.py)
  - WinnerRegistry / commitment helpers                  (winners.py)
  - AccessContext / PendingTransfer                      (access.py)
  - EventType / GovernanceEvent / EventLog               (events.py)
  - GovernanceEngine / ProposalView / VoterInfo          (engine.py)
"""

from .access import AccessContext, PendingTransfer
from .engine import GovernanceEngine, ProposalView, VoterInfo
from .events import EventLog, EventType, GovernanceEvent
from .proposals import Proposal, ProposalRegistry, ProposalState
from .voting import (
    VoterEntry,
    VoterLedger,
    compute_quorum,
    compute_voting_power,
)
from .winners import WinnerRegistry, commitment_of, normalize_commitment

__all__ = [
    # Access
    "AccessContext",
    "PendingTransfer",
    # Engine
    "GovernanceEngine",
    "ProposalView",
    "VoterInfo",
    # Events
    "EventLog",
    "EventType",
    "GovernanceEvent",
    # Proposals
    "Proposal",
    "ProposalRegistry",
    "ProposalState",
    # Voting
    "VoterEntry",
    "VoterLedger",
    "compute_quorum",
    "compute_voting_power",
    # Winners
    "WinnerRegistry",
    "commitment_of",
    "normalize_commitment",
]
