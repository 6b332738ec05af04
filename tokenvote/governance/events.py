"""
Governance log records.

Every committed engine operation appends one or more immutable
``GovernanceEvent`` records to the engine's ``EventLog``. Records are
numbered in commit order and never removed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class EventType(str, Enum):
    PROPOSAL_CREATED = "ProposalCreated"
    VOTING_OPENED = "VotingOpened"
    VOTE_CAST = "VoteCast"
    WINNER_ADDED = "WinnerAdded"
    PROPOSAL_EXECUTED = "ProposalExecuted"
    PROPOSAL_RESULT = "ProposalResult"
    PROPOSAL_CLOSED = "ProposalClosed"
    PROPOSAL_DELETED = "ProposalDeleted"
    PROPOSAL_RENAMED = "ProposalRenamed"
    CONTROLLER_CHANGED = "ControllerChanged"
    VOTING_PAUSED = "VotingPaused"
    VOTING_RESUMED = "VotingResumed"
    OWNERSHIP_TRANSFER_STARTED = "OwnershipTransferStarted"
    OWNERSHIP_TRANSFER_CANCELED = "OwnershipTransferCanceled"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass(frozen=True)
class GovernanceEvent:
    """A single emitted log record."""
    event_type: EventType
    data: Dict[str, Any]
    timestamp: int
    sequence: int = 0

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            **self.data,
        }


@dataclass
class EventLog:
    """Append-only record list."""
    _records: List[GovernanceEvent] = field(default_factory=list)

    def extend(self, pending: List[Tuple[EventType, Dict[str, Any], int]]):
        for event_type, data, timestamp in pending:
            self._records.append(GovernanceEvent(
                event_type=event_type,
                data=dict(data),
                timestamp=timestamp,
                sequence=len(self._records),
            ))

    def filter(self, event_type: Optional[EventType] = None) -> List[GovernanceEvent]:
        if event_type is None:
            return list(self._records)
        return [e for e in self._records if e.event_type == event_type]

    @property
    def last(self) -> Optional[GovernanceEvent]:
        return self._records[-1] if self._records else None

    def __iter__(self) -> Iterator[GovernanceEvent]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
