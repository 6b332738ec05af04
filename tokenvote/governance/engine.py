"""
Governance Engine

Orchestrates the proposal lifecycle over three exclusively owned stores
(ProposalRegistry, per-proposal VoterLedgers, WinnerRegistry) and the
AccessContext.

Every public mutating operation runs inside ``_transaction``: state is
snapshotted on entry, restored on any exception, and emitted log records
are only appended to the EventLog once the operation commits. Operations
never interleave; the only outbound call made mid-operation is the
balance read on the VotingPowerOracle, and re-entering the engine from
there raises ReentrancyError.
"""

import copy
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..config import GovernanceConfig
from ..exceptions import (
    DuplicateCommitmentError,
    ExpiredError,
    GovernanceError,
    InsufficientTokenBalanceError,
    InvalidArgumentError,
    NameInUseError,
    NotYetExpiredError,
    QuorumNotReachedError,
    ReentrancyError,
    TooManyVotersError,
)
from ..logger import get_logger
from ..tokens import VotingPowerOracle, normalize_identity
from .access import AccessContext, PendingTransfer
from .events import EventLog, EventType, GovernanceEvent
from .proposals import Proposal, ProposalRegistry, ProposalState
from .voting import VoterLedger, compute_quorum, compute_voting_power
from .winners import WinnerRegistry, normalize_commitment

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  READ-ONLY VIEWS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalView:
    """Snapshot of a proposal as returned by queries."""
    name: str
    description: str
    yes_votes: int
    no_votes: int
    end_time: int
    state: ProposalState
    quorum: int
    commitment_hash: str
    paused: bool

    @classmethod
    def of(cls, proposal: Proposal, paused: bool) -> "ProposalView":
        return cls(
            name=proposal.name,
            description=proposal.description,
            yes_votes=proposal.yes_votes,
            no_votes=proposal.no_votes,
            end_time=proposal.end_time,
            state=proposal.state,
            quorum=proposal.quorum,
            commitment_hash=proposal.commitment_hash,
            paused=paused,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "yesVotes": self.yes_votes,
            "noVotes": self.no_votes,
            "endTime": self.end_time,
            "state": self.state.name,
            "quorum": self.quorum,
            "commitmentHash": self.commitment_hash,
            "paused": self.paused,
        }


@dataclass(frozen=True)
class VoterInfo:
    voter_count: int
    snapshot_power: int
    power_used: int
    voters_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voterCount": self.voter_count,
            "snapshotPower": self.snapshot_power,
            "powerUsed": self.power_used,
            "votersRemaining": self.voters_remaining,
        }


# ══════════════════════════════════════════════════════════════════════
#  ENGINE
# ══════════════════════════════════════════════════════════════════════

class GovernanceEngine:
    """
    Token-weighted proposal engine.

    Args:
        owner:   Initial owner (also the initial controller)
        oracle:  Object exposing balance_of(identity) → base units
        config:  GovernanceConfig; defaults to protocol constants
        clock:   Callable() → int ledger seconds; defaults to wall clock
    """

    def __init__(
        self,
        owner: str,
        oracle: VotingPowerOracle,
        config: Optional[GovernanceConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._config = config or GovernanceConfig()
        self._config.validate()
        self._oracle = oracle
        self._clock = clock or (lambda: int(time.time()))

        self._access = AccessContext(owner=normalize_identity(owner))
        self._proposals = ProposalRegistry()
        self._ledgers: Dict[str, VoterLedger] = {}
        self._winners = WinnerRegistry()
        self._events = EventLog()

        self._pending: Optional[List[Tuple[EventType, Dict[str, Any], int]]] = None
        self._now = 0

    # ── Transaction boundary ──────────────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str):
        if self._pending is not None:
            raise ReentrancyError(f"{operation} called while another operation is in progress")
        snapshot = copy.deepcopy(
            (self._access, self._proposals, self._ledgers, self._winners)
        )
        self._pending = []
        self._now = int(self._clock())
        try:
            yield self._now
        except BaseException as exc:
            self._access, self._proposals, self._ledgers, self._winners = snapshot
            if isinstance(exc, GovernanceError):
                logger.debug(f"{operation} rejected: {type(exc).__name__}: {exc}")
            raise
        else:
            self._events.extend(self._pending)
        finally:
            self._pending = None

    def _emit(self, event_type: EventType, **data):
        self._pending.append((event_type, data, self._now))

    # ── Argument normalization ────────────────────────────────────────

    @staticmethod
    def _check_name(name: Any) -> str:
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError("Proposal name must be a non-empty string")
        return name

    @staticmethod
    def _check_amount(value: Any, what: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidArgumentError(f"{what} must be a non-negative integer, got {value!r}")
        return value

    # ── Voting power ──────────────────────────────────────────────────

    def get_voting_power(self, identity: str) -> int:
        """
        Current voting weight of *identity*.

        The owner receives the fixed authority override without a balance
        read; everyone else is floor(balance / token_unit) + 1.
        """
        voter = normalize_identity(identity)
        if self._access.is_owner(voter):
            return compute_voting_power(
                0, is_owner=True, owner_power=self._config.owner_voting_power,
            )
        return compute_voting_power(
            self._oracle.balance_of(voter),
            token_unit=self._config.token_unit,
        )

    def _require_tokens(self, identity: str):
        if self._oracle.balance_of(identity) <= 0:
            raise InsufficientTokenBalanceError(f"{identity} holds no tokens")

    # ══════════════════════════════════════════════════════════════════
    #  PROPOSAL LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def create_proposal(
        self,
        caller: str,
        name: str,
        description: str,
        duration_seconds: Optional[int] = None,
        allowed_voters: Iterable[str] = (),
        commitment_hash: Union[str, bytes, None] = None,
    ) -> ProposalView:
        """
        Register *name*, snapshot the power of every allowed voter and fix
        the quorum. The owner is always added to the eligible set.

        A *duration_seconds* of None uses the configured voting period.
        """
        with self._transaction("create_proposal") as now:
            proposer = normalize_identity(caller)
            self._check_name(name)
            if duration_seconds is None:
                duration = self._config.voting_period
            else:
                duration = self._check_amount(duration_seconds, "Duration")
            allowed = list(allowed_voters)

            self._access.require_active()
            commitment = normalize_commitment(commitment_hash)
            self._winners.require_unused(commitment)
            holder = self._proposals.find_by_commitment(commitment)
            if holder is not None:
                raise DuplicateCommitmentError(
                    f"Commitment {commitment} is already used by proposal '{holder.name}'"
                )
            if len(allowed) >= self._config.max_voters:
                raise TooManyVotersError(
                    f"{len(allowed)} allowed voters, must be fewer than {self._config.max_voters}"
                )
            if name in self._ledgers or name in self._proposals:
                raise NameInUseError(f"Proposal '{name}' already exists")

            voters = [normalize_identity(v) for v in allowed]
            if self._access.owner not in voters:
                voters.append(self._access.owner)

            ledger = VoterLedger()
            for voter in voters:
                if not ledger.can_vote(voter):
                    ledger.grant(voter, self.get_voting_power(voter))

            proposal = Proposal(
                name=name,
                description=description,
                commitment_hash=commitment,
                end_time=now + duration,
                quorum=compute_quorum(ledger.total_power, self._config.quorum_percent),
                proposer=proposer,
                created_at=now,
            )
            self._proposals.add(proposal)
            self._ledgers[name] = ledger

            self._emit(
                EventType.PROPOSAL_CREATED,
                name=name,
                description=description,
                proposer=proposer,
                endTime=proposal.end_time,
                quorum=proposal.quorum,
                voterCount=ledger.voter_count,
                totalPower=ledger.total_power,
                commitmentHash=commitment,
            )
            logger.info(
                f"Proposal '{name}' created by {proposer}: "
                f"{ledger.voter_count} voters, power={ledger.total_power}, "
                f"quorum={proposal.quorum}, ends at {proposal.end_time}"
            )
            return ProposalView.of(proposal, self._access.paused)

    def open_voting(self, caller: str, name: str) -> ProposalView:
        with self._transaction("open_voting"):
            normalize_identity(caller)
            self._access.require_active()
            proposal = self._proposals.require(name)
            proposal.require_state(ProposalState.INITIALIZED)
            proposal.transition_to(ProposalState.OPEN)
            self._emit(EventType.VOTING_OPENED, name=name, endTime=proposal.end_time)
            return ProposalView.of(proposal, self._access.paused)

    def vote(self, caller: str, name: str, support: bool, power: int) -> VoterInfo:
        """
        Cast *power* (≤ the caller's snapshot) for or against *name*.

        Power below the snapshot is allowed; the remainder is forfeited.
        """
        with self._transaction("vote") as now:
            voter = normalize_identity(caller)
            power = self._check_amount(power, "Voting power")

            self._access.require_active()
            proposal = self._proposals.require(name)
            proposal.require_state(ProposalState.OPEN)
            if now > proposal.end_time:
                raise ExpiredError(f"Voting on '{name}' ended at {proposal.end_time}")

            ledger = self._ledgers[name]
            ledger.consume(voter, power)
            proposal.record_vote(bool(support), power)

            self._emit(EventType.VOTE_CAST, name=name, voter=voter, support=bool(support), power=power)
            logger.info(
                f"Vote on '{name}': {voter} → {'YES' if support else 'NO'} "
                f"(power={power}/{ledger.snapshot_of(voter)})"
            )
            return self._voter_info(ledger, voter)

    def execute_proposal(self, caller: str, name: str) -> ProposalView:
        """
        Resolve an expired OPEN proposal whose participation reached quorum.

        yes > no → EXECUTED and the commitment becomes a winner;
        otherwise (ties included) → CLOSED.
        """
        with self._transaction("execute_proposal") as now:
            normalize_identity(caller)
            proposal = self._proposals.require(name)
            proposal.require_state(ProposalState.OPEN)
            if not proposal.is_expired(now):
                raise NotYetExpiredError(f"Voting on '{name}' ends at {proposal.end_time}")
            if not proposal.quorum_reached:
                logger.warning(
                    f"Proposal '{name}': quorum not reached "
                    f"({proposal.total_votes}/{proposal.quorum})"
                )
                raise QuorumNotReachedError(
                    f"'{name}' has {proposal.total_votes} votes, quorum is {proposal.quorum}"
                )

            passed = proposal.passed
            if passed:
                proposal.transition_to(ProposalState.EXECUTED)
                self._winners.add(proposal.commitment_hash)
                self._emit(
                    EventType.WINNER_ADDED,
                    name=name,
                    commitmentHash=proposal.commitment_hash,
                )
            else:
                proposal.transition_to(ProposalState.CLOSED)

            self._emit(
                EventType.PROPOSAL_EXECUTED,
                name=name,
                yesVotes=proposal.yes_votes,
                noVotes=proposal.no_votes,
            )
            self._emit(EventType.PROPOSAL_RESULT, name=name, passed=passed)
            logger.info(
                f"Proposal '{name}': {'PASSED' if passed else 'FAILED'} "
                f"(yes={proposal.yes_votes}, no={proposal.no_votes})"
            )
            return ProposalView.of(proposal, self._access.paused)

    def close_proposal(self, caller: str, name: str) -> ProposalView:
        """Force an expired OPEN proposal to CLOSED regardless of quorum."""
        with self._transaction("close_proposal") as now:
            normalize_identity(caller)
            proposal = self._proposals.require(name)
            proposal.require_state(ProposalState.OPEN)
            if not proposal.is_expired(now):
                raise NotYetExpiredError(f"Voting on '{name}' ends at {proposal.end_time}")
            proposal.transition_to(ProposalState.CLOSED)
            self._emit(EventType.PROPOSAL_CLOSED, name=name)
            return ProposalView.of(proposal, self._access.paused)

    def delete_proposal(self, caller: str, name: str):
        """Erase a CLOSED proposal and its ledger; the name becomes reusable."""
        with self._transaction("delete_proposal"):
            normalize_identity(caller)
            proposal = self._proposals.require(name)
            proposal.require_state(ProposalState.CLOSED)
            self._proposals.remove(name)
            del self._ledgers[name]
            self._emit(
                EventType.PROPOSAL_DELETED,
                name=name,
                description=proposal.description,
                commitmentHash=proposal.commitment_hash,
            )
            logger.info(f"Proposal '{name}' deleted")

    def rename_proposal(self, caller: str, old_name: str, new_name: str) -> ProposalView:
        """Move an INITIALIZED proposal, ledger included, to *new_name*."""
        with self._transaction("rename_proposal"):
            normalize_identity(caller)
            self._check_name(new_name)
            proposal = self._proposals.require(old_name)
            proposal.require_state(ProposalState.INITIALIZED)
            if new_name in self._proposals or new_name in self._ledgers:
                raise NameInUseError(f"Proposal '{new_name}' already exists")

            self._proposals.move(old_name, new_name)
            self._ledgers[new_name] = self._ledgers.pop(old_name)
            self._emit(EventType.PROPOSAL_RENAMED, oldName=old_name, newName=new_name)
            logger.info(f"Proposal '{old_name}' renamed → '{new_name}'")
            return ProposalView.of(proposal, self._access.paused)

    # ══════════════════════════════════════════════════════════════════
    #  ADMINISTRATION
    # ══════════════════════════════════════════════════════════════════

    def set_controller(self, caller: str, new_controller: str):
        with self._transaction("set_controller"):
            self._access.require_owner(normalize_identity(caller))
            controller = normalize_identity(new_controller)
            previous = self._access.controller
            self._access.controller = controller
            self._emit(EventType.CONTROLLER_CHANGED, previous=previous, controller=controller)
            logger.info(f"Controller changed: {previous} → {controller}")

    def pause_voting(self, caller: str):
        with self._transaction("pause_voting"):
            by = normalize_identity(caller)
            self._access.require_controller(by)
            self._access.pause()
            self._emit(EventType.VOTING_PAUSED, by=by)
            logger.warning(f"Voting paused by {by}")

    def resume_voting(self, caller: str):
        with self._transaction("resume_voting"):
            by = normalize_identity(caller)
            self._access.require_controller(by)
            self._access.resume()
            self._emit(EventType.VOTING_RESUMED, by=by)
            logger.info(f"Voting resumed by {by}")

    def transfer_ownership_with_token(self, caller: str, new_owner: str) -> PendingTransfer:
        """Offer ownership to a token holder; it takes effect on accept."""
        with self._transaction("transfer_ownership_with_token") as now:
            self._access.require_owner(normalize_identity(caller))
            candidate = normalize_identity(new_owner)
            self._require_tokens(candidate)
            pending = self._access.start_transfer(candidate, now)
            self._emit(
                EventType.OWNERSHIP_TRANSFER_STARTED,
                owner=self._access.owner,
                newOwner=candidate,
            )
            logger.info(f"Ownership transfer started: {self._access.owner} → {candidate}")
            return pending

    def accept_ownership(self, caller: str):
        with self._transaction("accept_ownership"):
            by = normalize_identity(caller)
            self._access.require_pending_owner(by)
            self._require_tokens(by)
            previous = self._access.complete_transfer()
            self._emit(EventType.OWNERSHIP_TRANSFERRED, previous=previous, owner=by)
            logger.info(f"Ownership transferred: {previous} → {by}")

    def cancel_ownership_transfer(self, caller: str):
        with self._transaction("cancel_ownership_transfer"):
            self._access.require_owner(normalize_identity(caller))
            pending = self._access.cancel_transfer()
            self._emit(
                EventType.OWNERSHIP_TRANSFER_CANCELED,
                owner=self._access.owner,
                newOwner=pending.new_owner,
            )

    # ══════════════════════════════════════════════════════════════════
    #  QUERIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def config(self) -> GovernanceConfig:
        return self._config

    @property
    def owner(self) -> str:
        return self._access.owner

    @property
    def controller(self) -> str:
        return self._access.controller

    @property
    def paused(self) -> bool:
        return self._access.paused

    @property
    def pending_transfer(self) -> Optional[PendingTransfer]:
        return self._access.pending_transfer

    @property
    def events(self) -> Tuple[GovernanceEvent, ...]:
        return tuple(self._events)

    def events_of(self, event_type: EventType) -> List[GovernanceEvent]:
        return self._events.filter(event_type)

    def get_state(self, name: str) -> ProposalState:
        return self._proposals.state_of(name)

    def get_proposal(self, name: str) -> ProposalView:
        return ProposalView.of(self._proposals.require(name), self._access.paused)

    def list_proposals(self) -> List[ProposalView]:
        return [
            ProposalView.of(self._proposals.get(n), self._access.paused)
            for n in self._proposals.names()
        ]

    def _voter_info(self, ledger: VoterLedger, voter: str) -> VoterInfo:
        return VoterInfo(
            voter_count=ledger.voter_count,
            snapshot_power=ledger.snapshot_of(voter),
            power_used=ledger.used_by(voter),
            voters_remaining=ledger.voters_remaining,
        )

    def get_voter_info(self, name: str, voter: str) -> VoterInfo:
        self._proposals.require(name)
        return self._voter_info(self._ledgers[name], normalize_identity(voter))

    def can_vote(self, name: str, voter: str) -> bool:
        ledger = self._ledgers.get(name)
        return ledger is not None and ledger.can_vote(normalize_identity(voter))

    def has_voted(self, name: str, voter: str) -> bool:
        ledger = self._ledgers.get(name)
        return ledger is not None and ledger.has_voted(normalize_identity(voter))

    def is_winner(self, commitment_hash: Union[str, bytes]) -> bool:
        return self._winners.is_winner(commitment_hash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access": self._access.to_dict(),
            "config": self._config.to_dict(),
            "proposals": self._proposals.to_dict(),
            "ledgers": {name: l.to_dict() for name, l in self._ledgers.items()},
            "winners": sorted(self._winners),
            "events": len(self._events),
        }

    def __repr__(self) -> str:
        return (
            f"<GovernanceEngine proposals={len(self._proposals)} "
            f"winners={len(self._winners)} paused={self._access.paused}>"
        )
