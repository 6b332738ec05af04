"""
Snapshot-Weighted Voter Ledger

Implements:
  - 1 whole token = 1 vote, plus one base vote per eligible identity
  - Authority override: the owner always votes with a fixed weight
  - Power snapshotted once at proposal creation, immutable afterwards
  - Partial voting: an identity may cast less than its snapshot; the
    remainder is forfeited
  - Quorum: floor(total snapshot power * percent / 100)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..constants import (
    GOVERNANCE_OWNER_VOTING_POWER,
    GOVERNANCE_QUORUM_PERCENT,
    TOKEN_UNIT,
)
from ..exceptions import (
    AlreadyVotedError,
    InvalidArgumentError,
    NotEligibleError,
    PowerExceededError,
)


# ══════════════════════════════════════════════════════════════════════
#  POWER & QUORUM
# ══════════════════════════════════════════════════════════════════════

def compute_voting_power(
    balance: int,
    is_owner: bool = False,
    token_unit: int = TOKEN_UNIT,
    owner_power: int = GOVERNANCE_OWNER_VOTING_POWER,
) -> int:
    """
    Voting weight for a holder of *balance* base units.

    Authority override: the owner's weight is *owner_power* regardless of
    balance, so the governing authority is never starved by a low
    holding. Everyone else gets floor(balance / token_unit) + 1.
    """
    if is_owner:
        return owner_power
    if balance < 0:
        raise InvalidArgumentError("Balance cannot be negative")
    return int(balance) // token_unit + 1


def compute_quorum(total_power: int, percent: int = GOVERNANCE_QUORUM_PERCENT) -> int:
    """Integer floor of *percent* of *total_power*."""
    return total_power * percent // 100


# ══════════════════════════════════════════════════════════════════════
#  LEDGER
# ══════════════════════════════════════════════════════════════════════

@dataclass
class VoterEntry:
    """One eligible identity within a proposal."""
    snapshot_power: int
    power_used: int = 0
    has_voted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshotPower": self.snapshot_power,
            "powerUsed": self.power_used,
            "hasVoted": self.has_voted,
        }


@dataclass
class VoterLedger:
    """
    Per-proposal eligibility and power accounting.

    ``entries`` is filled only by ``grant`` while the proposal is being
    created; eligibility is never revoked and snapshots never change.
    """
    entries: Dict[str, VoterEntry] = field(default_factory=dict)
    voters_remaining: int = 0

    @property
    def voter_count(self) -> int:
        return len(self.entries)

    @property
    def total_power(self) -> int:
        return sum(e.snapshot_power for e in self.entries.values())

    @property
    def voted(self) -> List[str]:
        return [voter for voter, e in self.entries.items() if e.has_voted]

    def grant(self, identity: str, power: int) -> bool:
        """Make *identity* eligible with *power*. Returns False for repeats."""
        if identity in self.entries:
            return False
        self.entries[identity] = VoterEntry(snapshot_power=power)
        self.voters_remaining += 1
        return True

    def can_vote(self, identity: str) -> bool:
        return identity in self.entries

    def has_voted(self, identity: str) -> bool:
        entry = self.entries.get(identity)
        return entry is not None and entry.has_voted

    def snapshot_of(self, identity: str) -> int:
        entry = self.entries.get(identity)
        return entry.snapshot_power if entry else 0

    def used_by(self, identity: str) -> int:
        entry = self.entries.get(identity)
        return entry.power_used if entry else 0

    def check_vote(self, identity: str, power: int) -> VoterEntry:
        """Raise unless *identity* may cast *power* now."""
        if self.has_voted(identity):
            raise AlreadyVotedError(f"{identity} has already voted")
        entry = self.entries.get(identity)
        if entry is None:
            raise NotEligibleError(f"{identity} is not eligible to vote")
        if power > entry.snapshot_power:
            raise PowerExceededError(
                f"{identity} requested {power} but holds {entry.snapshot_power}"
            )
        return entry

    def consume(self, identity: str, power: int):
        entry = self.check_vote(identity, power)
        entry.has_voted = True
        entry.power_used = power
        self.voters_remaining -= 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voterCount": self.voter_count,
            "votersRemaining": self.voters_remaining,
            "voters": {voter: e.to_dict() for voter, e in self.entries.items()},
        }
