"""
Access gate: owner / controller roles, the pause flag and the two-step
ownership handoff.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import (
    AlreadyPausedError,
    InvalidArgumentError,
    NoPendingTransferError,
    NotAuthorizedError,
    NotPausedError,
    VotingPausedError,
)


@dataclass(frozen=True)
class PendingTransfer:
    """Ownership offered to *new_owner*, awaiting acceptance."""
    new_owner: str
    initiated_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"newOwner": self.new_owner, "initiatedAt": self.initiated_at}


@dataclass
class AccessContext:
    owner: str
    controller: Optional[str] = None
    paused: bool = False
    pending_transfer: Optional[PendingTransfer] = None

    def __post_init__(self):
        if self.controller is None:
            self.controller = self.owner

    # ── Predicates ────────────────────────────────────────────────────

    def is_owner(self, caller: str) -> bool:
        return caller == self.owner

    @property
    def voting_active(self) -> bool:
        return not self.paused

    def require_owner(self, caller: str):
        if caller != self.owner:
            raise NotAuthorizedError(f"{caller} is not the owner")

    def require_controller(self, caller: str):
        if caller != self.controller:
            raise NotAuthorizedError(f"{caller} is not the controller")

    def require_active(self):
        if self.paused:
            raise VotingPausedError("Voting is paused")

    def require_pending_owner(self, caller: str) -> PendingTransfer:
        if self.pending_transfer is None:
            raise NoPendingTransferError("No ownership transfer in progress")
        if caller != self.pending_transfer.new_owner:
            raise NotAuthorizedError(f"{caller} is not the pending owner")
        return self.pending_transfer

    # ── Transitions ───────────────────────────────────────────────────

    def pause(self):
        if self.paused:
            raise AlreadyPausedError("Voting is already paused")
        self.paused = True

    def resume(self):
        if not self.paused:
            raise NotPausedError("Voting is not paused")
        self.paused = False

    def start_transfer(self, new_owner: str, now: int) -> PendingTransfer:
        if new_owner == self.owner:
            raise InvalidArgumentError("New owner is already the owner")
        self.pending_transfer = PendingTransfer(new_owner=new_owner, initiated_at=now)
        return self.pending_transfer

    def cancel_transfer(self) -> PendingTransfer:
        if self.pending_transfer is None:
            raise NoPendingTransferError("No ownership transfer in progress")
        pending, self.pending_transfer = self.pending_transfer, None
        return pending

    def complete_transfer(self) -> str:
        previous = self.owner
        self.owner = self.pending_transfer.new_owner
        self.pending_transfer = None
        return previous

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "controller": self.controller,
            "paused": self.paused,
            "pendingTransfer": self.pending_transfer.to_dict() if self.pending_transfer else None,
        }
