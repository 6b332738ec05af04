"""
Governance Proposals

Defines the proposal lifecycle states and the Proposal record, plus the
ProposalRegistry that stores records under their (renameable) name.

    INITIALIZED ──open──▶ OPEN ──execute (pass)──▶ EXECUTED
                           │
                           ├──execute (fail)──▶ CLOSED ──delete──▶ NONEXISTENT
                           └──close──────────▶ CLOSED
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional

from ..exceptions import InvalidStateError, ProposalNotFoundError
from ..logger import get_logger

logger = get_logger(__name__)


class ProposalState(IntEnum):
    """Lifecycle stage. NONEXISTENT is never stored, only reported."""
    NONEXISTENT = -1
    INITIALIZED = 0
    OPEN = 1
    EXECUTED = 2
    CLOSED = 3


# Valid forward transitions
_VALID_TRANSITIONS: Dict[ProposalState, set] = {
    ProposalState.INITIALIZED: {ProposalState.OPEN},
    ProposalState.OPEN:        {ProposalState.EXECUTED, ProposalState.CLOSED},
    # Terminal states; CLOSED may additionally be deleted
    ProposalState.EXECUTED:    set(),
    ProposalState.CLOSED:      set(),
}


@dataclass
class Proposal:
    """
    A named yes/no governance question.

    Fields:
        name:             Primary key, changes on rename
        description:      Opaque text
        commitment_hash:  0x-hex 32-byte commitment of the real-world payload
        end_time:         Voting deadline (ledger seconds)
        quorum:           Minimum yes+no power to resolve, fixed at creation
        proposer:         Identity that created the proposal
        created_at:       Ledger time of creation
    """
    name: str
    description: str
    commitment_hash: str
    end_time: int
    quorum: int
    proposer: str
    created_at: int
    yes_votes: int = 0
    no_votes: int = 0
    state: ProposalState = ProposalState.INITIALIZED

    @property
    def total_votes(self) -> int:
        return self.yes_votes + self.no_votes

    @property
    def quorum_reached(self) -> bool:
        return self.total_votes >= self.quorum

    @property
    def passed(self) -> bool:
        """Strict majority; ties fail."""
        return self.yes_votes > self.no_votes

    def is_expired(self, now: int) -> bool:
        return now >= self.end_time

    def require_state(self, expected: ProposalState):
        if self.state != expected:
            raise InvalidStateError(
                f"Proposal '{self.name}' is {self.state.name}, "
                f"expected {expected.name}"
            )

    def transition_to(self, new_state: ProposalState):
        allowed = _VALID_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidStateError(
                f"Cannot transition '{self.name}' from {self.state.name} → {new_state.name}"
            )
        old = self.state
        self.state = new_state
        logger.info(f"Proposal '{self.name}': {old.name} → {new_state.name}")

    def record_vote(self, support: bool, power: int):
        if self.state != ProposalState.OPEN:
            raise InvalidStateError(f"Proposal '{self.name}' is not open")
        if support:
            self.yes_votes += power
        else:
            self.no_votes += power

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "commitmentHash": self.commitment_hash,
            "yesVotes": self.yes_votes,
            "noVotes": self.no_votes,
            "endTime": self.end_time,
            "quorum": self.quorum,
            "state": self.state.name,
            "proposer": self.proposer,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        return cls(
            name=data["name"],
            description=data["description"],
            commitment_hash=data["commitmentHash"],
            end_time=int(data["endTime"]),
            quorum=int(data["quorum"]),
            proposer=data["proposer"],
            created_at=int(data["createdAt"]),
            yes_votes=int(data.get("yesVotes", 0)),
            no_votes=int(data.get("noVotes", 0)),
            state=ProposalState[data.get("state", "INITIALIZED")],
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal '{self.name}' state={self.state.name} "
            f"yes={self.yes_votes} no={self.no_votes} quorum={self.quorum}>"
        )


class ProposalRegistry:
    """Proposal records keyed by name."""

    def __init__(self):
        self._proposals: Dict[str, Proposal] = {}

    def get(self, name: str) -> Optional[Proposal]:
        return self._proposals.get(name)

    def require(self, name: str) -> Proposal:
        proposal = self._proposals.get(name)
        if proposal is None:
            raise ProposalNotFoundError(f"No proposal named '{name}'")
        return proposal

    def state_of(self, name: str) -> ProposalState:
        proposal = self._proposals.get(name)
        return proposal.state if proposal else ProposalState.NONEXISTENT

    def __contains__(self, name: str) -> bool:
        return name in self._proposals

    def find_by_commitment(self, commitment_hash: str) -> Optional[Proposal]:
        for proposal in self._proposals.values():
            if proposal.commitment_hash == commitment_hash:
                return proposal
        return None

    def add(self, proposal: Proposal):
        if proposal.name in self._proposals:
            raise InvalidStateError(f"Proposal '{proposal.name}' already stored")
        self._proposals[proposal.name] = proposal

    def remove(self, name: str) -> Proposal:
        return self._proposals.pop(name)

    def move(self, old_name: str, new_name: str) -> Proposal:
        proposal = self._proposals.pop(old_name)
        proposal.name = new_name
        self._proposals[new_name] = proposal
        return proposal

    def names(self) -> List[str]:
        return sorted(self._proposals)

    def __iter__(self) -> Iterator[Proposal]:
        return iter(list(self._proposals.values()))

    def __len__(self) -> int:
        return len(self._proposals)

    def to_dict(self) -> Dict[str, Any]:
        return {name: p.to_dict() for name, p in self._proposals.items()}
