"""
Tokenvote Exceptions

Every failure is a precondition violation: the operation that raised it
left no trace in engine state.
"""


class GovernanceError(Exception):
    """Base exception for governance operations."""


class InvalidArgumentError(GovernanceError):
    """Malformed identity, commitment hash, name, duration or power."""


# ── Access gate ───────────────────────────────────────────────────────

class NotAuthorizedError(GovernanceError):
    """Caller lacks the owner / controller / pending-owner role."""


class VotingPausedError(GovernanceError):
    """Operation requires voting to be active."""


class AlreadyPausedError(GovernanceError):
    """pause_voting called while already paused."""


class NotPausedError(GovernanceError):
    """resume_voting called while voting is active."""


class InsufficientTokenBalanceError(GovernanceError):
    """Ownership handoff target holds no tokens."""


class NoPendingTransferError(GovernanceError):
    """No ownership transfer is in flight."""


# ── Lifecycle ─────────────────────────────────────────────────────────

class InvalidStateError(GovernanceError):
    """Wrong lifecycle state for the requested transition."""


class ProposalNotFoundError(InvalidStateError):
    """No proposal is stored under the given name."""


class ExpiredError(GovernanceError):
    """Voting deadline has passed."""


class NotYetExpiredError(GovernanceError):
    """Voting deadline has not been reached yet."""


class QuorumNotReachedError(GovernanceError):
    """Participating power is below the proposal's quorum."""


# ── Voter ledger ──────────────────────────────────────────────────────

class AlreadyVotedError(GovernanceError):
    """Identity already cast its vote on this proposal."""


class NotEligibleError(GovernanceError):
    """Identity is not in the proposal's eligible set."""


class PowerExceededError(GovernanceError):
    """Requested power is larger than the identity's snapshot."""


class TooManyVotersError(GovernanceError):
    """Allowed-voter list is too long."""


# ── Registry uniqueness ───────────────────────────────────────────────

class DuplicateCommitmentError(GovernanceError):
    """Commitment hash already belongs to a winning proposal."""


class NameInUseError(GovernanceError):
    """A proposal or voter ledger already exists under this name."""


class ReentrancyError(GovernanceError):
    """An engine operation was entered while another was in progress."""
