"""
Access Gate Test Suite

Coverage:
  - Controller reassignment (owner only)
  - Pause / resume (controller only, non-idempotent)
  - Two-step ownership handoff gated by token holdings
  - Authority override follows the current owner
"""

import os
import sys

import pytest
from eth_utils import to_checksum_address

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokenvote.constants import TOKEN_UNIT
from tokenvote.exceptions import (
    AlreadyPausedError,
    InsufficientTokenBalanceError,
    InvalidArgumentError,
    NoPendingTransferError,
    NotAuthorizedError,
    NotPausedError,
)
from tokenvote.governance import (
    AccessContext,
    EventType,
    GovernanceEngine,
    commitment_of,
)
from tokenvote.tokens import TokenBalances


OWNER = "0x" + "0f" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20


def make_engine():
    ledger = TokenBalances({ALICE: 5 * TOKEN_UNIT, BOB: 0})
    return GovernanceEngine(OWNER, ledger, clock=lambda: 1000), ledger


class TestAccessContext:

    def test_controller_defaults_to_owner(self):
        ctx = AccessContext(owner="x")
        assert ctx.controller == "x"
        assert ctx.voting_active

    def test_pause_resume_cycle(self):
        ctx = AccessContext(owner="x")
        ctx.pause()
        with pytest.raises(AlreadyPausedError):
            ctx.pause()
        ctx.resume()
        with pytest.raises(NotPausedError):
            ctx.resume()

    def test_to_dict(self):
        ctx = AccessContext(owner="x")
        assert ctx.to_dict() == {
            "owner": "x", "controller": "x", "paused": False, "pendingTransfer": None,
        }


class TestControllerAndPause:

    def test_set_controller_owner_only(self):
        engine, _ = make_engine()
        with pytest.raises(NotAuthorizedError):
            engine.set_controller(ALICE, ALICE)
        engine.set_controller(OWNER, CAROL)
        assert engine.controller == to_checksum_address(CAROL)
        event = engine.events[-1]
        assert event.event_type == EventType.CONTROLLER_CHANGED
        assert event["controller"] == to_checksum_address(CAROL)

    def test_only_controller_pauses(self):
        engine, _ = make_engine()
        engine.set_controller(OWNER, CAROL)
        with pytest.raises(NotAuthorizedError):
            engine.pause_voting(OWNER)
        engine.pause_voting(CAROL)
        assert engine.paused
        with pytest.raises(NotAuthorizedError):
            engine.resume_voting(OWNER)
        engine.resume_voting(CAROL)
        assert not engine.paused

    def test_double_pause_fails(self):
        engine, _ = make_engine()
        engine.pause_voting(OWNER)
        with pytest.raises(AlreadyPausedError):
            engine.pause_voting(OWNER)
        assert engine.paused

    def test_resume_unpaused_fails(self):
        engine, _ = make_engine()
        with pytest.raises(NotPausedError):
            engine.resume_voting(OWNER)

    def test_pause_events(self):
        engine, _ = make_engine()
        engine.pause_voting(OWNER)
        engine.resume_voting(OWNER)
        assert [e.event_type for e in engine.events] == [
            EventType.VOTING_PAUSED,
            EventType.VOTING_RESUMED,
        ]


class TestOwnershipTransfer:

    def test_full_handoff(self):
        engine, _ = make_engine()
        pending = engine.transfer_ownership_with_token(OWNER, ALICE)
        assert pending.new_owner == to_checksum_address(ALICE)
        assert pending.initiated_at == 1000
        assert engine.owner == to_checksum_address(OWNER)
        engine.accept_ownership(ALICE)
        assert engine.owner == to_checksum_address(ALICE)
        assert engine.pending_transfer is None
        assert [e.event_type for e in engine.events] == [
            EventType.OWNERSHIP_TRANSFER_STARTED,
            EventType.OWNERSHIP_TRANSFERRED,
        ]

    def test_only_owner_starts(self):
        engine, _ = make_engine()
        with pytest.raises(NotAuthorizedError):
            engine.transfer_ownership_with_token(ALICE, ALICE)

    def test_target_must_hold_tokens(self):
        engine, _ = make_engine()
        with pytest.raises(InsufficientTokenBalanceError):
            engine.transfer_ownership_with_token(OWNER, BOB)
        assert engine.pending_transfer is None

    def test_transfer_to_self_rejected(self):
        engine, ledger = make_engine()
        ledger.set_balance(OWNER, TOKEN_UNIT)
        with pytest.raises(InvalidArgumentError):
            engine.transfer_ownership_with_token(OWNER, OWNER)

    def test_accept_by_other_rejected(self):
        engine, _ = make_engine()
        engine.transfer_ownership_with_token(OWNER, ALICE)
        with pytest.raises(NotAuthorizedError):
            engine.accept_ownership(CAROL)

    def test_accept_without_pending(self):
        engine, _ = make_engine()
        with pytest.raises(NoPendingTransferError):
            engine.accept_ownership(ALICE)

    def test_accept_rechecks_balance(self):
        engine, ledger = make_engine()
        engine.transfer_ownership_with_token(OWNER, ALICE)
        ledger.set_balance(ALICE, 0)
        with pytest.raises(InsufficientTokenBalanceError):
            engine.accept_ownership(ALICE)
        assert engine.owner == to_checksum_address(OWNER)
        assert engine.pending_transfer is not None

    def test_cancel(self):
        engine, _ = make_engine()
        engine.transfer_ownership_with_token(OWNER, ALICE)
        with pytest.raises(NotAuthorizedError):
            engine.cancel_ownership_transfer(ALICE)
        engine.cancel_ownership_transfer(OWNER)
        assert engine.pending_transfer is None
        assert engine.events[-1].event_type == EventType.OWNERSHIP_TRANSFER_CANCELED
        with pytest.raises(NoPendingTransferError):
            engine.accept_ownership(ALICE)

    def test_cancel_without_pending(self):
        engine, _ = make_engine()
        with pytest.raises(NoPendingTransferError):
            engine.cancel_ownership_transfer(OWNER)

    def test_new_transfer_replaces_pending(self):
        engine, ledger = make_engine()
        ledger.set_balance(CAROL, TOKEN_UNIT)
        engine.transfer_ownership_with_token(OWNER, ALICE)
        engine.transfer_ownership_with_token(OWNER, CAROL)
        with pytest.raises(NotAuthorizedError):
            engine.accept_ownership(ALICE)
        engine.accept_ownership(CAROL)
        assert engine.owner == to_checksum_address(CAROL)

    def test_authority_override_follows_owner(self):
        engine, _ = make_engine()
        engine.transfer_ownership_with_token(OWNER, ALICE)
        engine.accept_ownership(ALICE)
        assert engine.get_voting_power(ALICE) == 20
        assert engine.get_voting_power(OWNER) == 1

        engine.create_proposal(ALICE, "P1", "d", 100, [OWNER], commitment_of("p1"))
        assert engine.get_voter_info("P1", ALICE).snapshot_power == 20
        assert engine.get_voter_info("P1", OWNER).snapshot_power == 1
        assert engine.get_voter_info("P1", ALICE).voter_count == 2
