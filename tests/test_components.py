"""
Component Test Suite

Coverage:
  - Voting power and quorum arithmetic
  - VoterLedger accounting
  - Proposal record transitions and ProposalRegistry
  - WinnerRegistry and commitment helpers
  - EventLog
  - TokenBalances oracle
  - GovernanceConfig loader
  - Logging formatter
"""

import os
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokenvote.config import GovernanceConfig, load_config
from tokenvote.constants import (
    GOVERNANCE_MAX_VOTERS,
    GOVERNANCE_OWNER_VOTING_POWER,
    GOVERNANCE_QUORUM_PERCENT,
    TOKEN_UNIT,
)
from tokenvote.exceptions import (
    AlreadyVotedError,
    DuplicateCommitmentError,
    InvalidArgumentError,
    InvalidStateError,
    NotEligibleError,
    PowerExceededError,
    ProposalNotFoundError,
)
from tokenvote.governance import (
    EventLog,
    EventType,
    Proposal,
    ProposalRegistry,
    ProposalState,
    VoterLedger,
    WinnerRegistry,
    commitment_of,
    compute_quorum,
    compute_voting_power,
    normalize_commitment,
)
from tokenvote.logger import LogManager, TerminalSafeFormatter
from tokenvote.tokens import TokenBalances, VotingPowerOracle, normalize_identity


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


def make_proposal(name="P1", **kwargs) -> Proposal:
    fields = dict(
        name=name,
        description="d",
        commitment_hash=commitment_of(name),
        end_time=100,
        quorum=12,
        proposer=ALICE,
        created_at=0,
    )
    fields.update(kwargs)
    return Proposal(**fields)


# ══════════════════════════════════════════════════════════════════════
#  ARITHMETIC
# ══════════════════════════════════════════════════════════════════════


class TestVotingPower:

    def test_zero_balance_has_base_vote(self):
        assert compute_voting_power(0) == 1

    def test_whole_tokens_floor(self):
        assert compute_voting_power(2 * TOKEN_UNIT) == 3
        assert compute_voting_power(TOKEN_UNIT - 1) == 1
        assert compute_voting_power(TOKEN_UNIT) == 2

    def test_authority_override(self):
        assert compute_voting_power(10**30, is_owner=True) == GOVERNANCE_OWNER_VOTING_POWER
        assert compute_voting_power(0, is_owner=True, owner_power=7) == 7

    def test_custom_unit(self):
        assert compute_voting_power(250, token_unit=100) == 3

    def test_negative_balance(self):
        with pytest.raises(InvalidArgumentError):
            compute_voting_power(-1)


class TestQuorum:

    def test_floor_of_51_percent(self):
        assert GOVERNANCE_QUORUM_PERCENT == 51
        assert compute_quorum(24) == 12
        assert compute_quorum(100) == 51
        assert compute_quorum(1) == 0
        assert compute_quorum(0) == 0

    def test_custom_percent(self):
        assert compute_quorum(10, percent=100) == 10


# ══════════════════════════════════════════════════════════════════════
#  VOTER LEDGER
# ══════════════════════════════════════════════════════════════════════


class TestVoterLedger:

    def test_grant(self):
        ledger = VoterLedger()
        assert ledger.grant(ALICE, 3)
        assert not ledger.grant(ALICE, 9)
        assert ledger.voter_count == 1
        assert ledger.voters_remaining == 1
        assert ledger.snapshot_of(ALICE) == 3
        assert ledger.total_power == 3

    def test_consume(self):
        ledger = VoterLedger()
        ledger.grant(ALICE, 3)
        ledger.grant(BOB, 1)
        ledger.consume(ALICE, 2)
        assert ledger.has_voted(ALICE)
        assert ledger.used_by(ALICE) == 2
        assert ledger.voters_remaining == 1
        assert ledger.voted == [ALICE]

    def test_consume_errors(self):
        ledger = VoterLedger()
        ledger.grant(ALICE, 3)
        with pytest.raises(NotEligibleError):
            ledger.consume(BOB, 1)
        with pytest.raises(PowerExceededError):
            ledger.consume(ALICE, 4)
        ledger.consume(ALICE, 3)
        with pytest.raises(AlreadyVotedError):
            ledger.consume(ALICE, 1)
        assert ledger.voters_remaining == 0

    def test_unknown_identity_reads_zero(self):
        ledger = VoterLedger()
        assert ledger.snapshot_of(BOB) == 0
        assert ledger.used_by(BOB) == 0
        assert not ledger.can_vote(BOB)

    def test_to_dict(self):
        ledger = VoterLedger()
        ledger.grant(ALICE, 3)
        d = ledger.to_dict()
        assert d["voterCount"] == 1
        assert d["voters"][ALICE] == {"snapshotPower": 3, "powerUsed": 0, "hasVoted": False}


# ══════════════════════════════════════════════════════════════════════
#  PROPOSALS
# ══════════════════════════════════════════════════════════════════════


class TestProposal:

    def test_defaults(self):
        p = make_proposal()
        assert p.state == ProposalState.INITIALIZED
        assert p.total_votes == 0
        assert not p.quorum_reached

    def test_forward_transitions(self):
        p = make_proposal()
        p.transition_to(ProposalState.OPEN)
        p.transition_to(ProposalState.CLOSED)
        assert p.state == ProposalState.CLOSED

    def test_invalid_transitions(self):
        p = make_proposal()
        with pytest.raises(InvalidStateError):
            p.transition_to(ProposalState.EXECUTED)
        p.transition_to(ProposalState.OPEN)
        p.transition_to(ProposalState.EXECUTED)
        with pytest.raises(InvalidStateError):
            p.transition_to(ProposalState.OPEN)
        with pytest.raises(InvalidStateError):
            p.transition_to(ProposalState.CLOSED)

    def test_record_vote_requires_open(self):
        p = make_proposal()
        with pytest.raises(InvalidStateError):
            p.record_vote(True, 1)
        p.transition_to(ProposalState.OPEN)
        p.record_vote(True, 5)
        p.record_vote(False, 5)
        assert p.quorum_reached is False
        assert p.passed is False

    def test_expiry(self):
        p = make_proposal(end_time=100)
        assert not p.is_expired(99)
        assert p.is_expired(100)

    def test_to_dict_from_dict(self):
        p = make_proposal(yes_votes=4, state=ProposalState.OPEN)
        d = p.to_dict()
        assert d["state"] == "OPEN"
        p2 = Proposal.from_dict(d)
        assert p2 == p

    def test_repr(self):
        assert "P1" in repr(make_proposal())


class TestProposalRegistry:

    def test_add_get_require(self):
        reg = ProposalRegistry()
        reg.add(make_proposal())
        assert "P1" in reg
        assert reg.require("P1").name == "P1"
        assert reg.state_of("P1") == ProposalState.INITIALIZED
        with pytest.raises(InvalidStateError):
            reg.add(make_proposal())

    def test_missing(self):
        reg = ProposalRegistry()
        assert reg.get("x") is None
        assert reg.state_of("x") == ProposalState.NONEXISTENT
        with pytest.raises(ProposalNotFoundError):
            reg.require("x")

    def test_find_by_commitment(self):
        reg = ProposalRegistry()
        reg.add(make_proposal())
        assert reg.find_by_commitment(commitment_of("P1")).name == "P1"
        assert reg.find_by_commitment(commitment_of("P2")) is None

    def test_move_and_remove(self):
        reg = ProposalRegistry()
        reg.add(make_proposal())
        moved = reg.move("P1", "P2")
        assert moved.name == "P2"
        assert "P1" not in reg
        assert reg.names() == ["P2"]
        reg.remove("P2")
        assert len(reg) == 0


# ══════════════════════════════════════════════════════════════════════
#  WINNERS
# ══════════════════════════════════════════════════════════════════════


class TestWinnerRegistry:

    def test_normalize_commitment(self):
        h = commitment_of("hello")
        assert len(h) == 66
        assert normalize_commitment(h.upper().replace("0X", "0x")) == h
        assert normalize_commitment(bytes.fromhex(h[2:])) == h
        assert normalize_commitment(h[2:]) == h

    def test_normalize_rejects_bad_input(self):
        with pytest.raises(InvalidArgumentError):
            normalize_commitment("0x" + "ab" * 31)
        with pytest.raises(InvalidArgumentError):
            normalize_commitment("not hex")
        with pytest.raises(InvalidArgumentError):
            normalize_commitment(123)

    def test_commitment_of_text_matches_bytes(self):
        assert commitment_of("abc") == commitment_of(b"abc")

    def test_add_once(self):
        reg = WinnerRegistry()
        h = commitment_of("a")
        assert not reg.is_winner(h)
        reg.add(h)
        assert reg.is_winner(h)
        with pytest.raises(DuplicateCommitmentError):
            reg.add(h)
        assert len(reg) == 1
        assert reg.to_dict() == {"winners": [h]}


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════


class TestEventLog:

    def test_extend_numbers_records(self):
        log = EventLog()
        log.extend([
            (EventType.VOTING_PAUSED, {"by": ALICE}, 5),
            (EventType.VOTING_RESUMED, {"by": ALICE}, 6),
        ])
        assert len(log) == 2
        assert log.last.sequence == 1
        assert log.last.to_dict() == {
            "event": "VotingResumed", "sequence": 1, "timestamp": 6, "by": ALICE,
        }
        assert [e.event_type for e in log.filter(EventType.VOTING_PAUSED)] == [
            EventType.VOTING_PAUSED,
        ]

    def test_empty(self):
        log = EventLog()
        assert log.last is None
        assert list(log) == []


# ══════════════════════════════════════════════════════════════════════
#  TOKEN BALANCES
# ══════════════════════════════════════════════════════════════════════


class TestTokenBalances:

    def test_balance_lookup_is_case_insensitive(self):
        ledger = TokenBalances({ALICE: 7})
        assert ledger.balance_of(ALICE.upper().replace("0X", "0x")) == 7
        assert ledger.balance_of(BOB) == 0
        assert ledger.holders == 1

    def test_from_tokens(self):
        ledger = TokenBalances.from_tokens([(ALICE, 2)])
        assert ledger.balance_of(ALICE) == 2 * TOKEN_UNIT

    def test_rejects_invalid(self):
        with pytest.raises(InvalidArgumentError):
            TokenBalances({"bogus": 1})
        with pytest.raises(InvalidArgumentError):
            TokenBalances({ALICE: -1})

    def test_is_oracle(self):
        assert isinstance(TokenBalances(), VotingPowerOracle)

    def test_normalize_identity(self):
        assert normalize_identity(ALICE).startswith("0x")
        with pytest.raises(InvalidArgumentError):
            normalize_identity(None)


# ══════════════════════════════════════════════════════════════════════
#  CONFIG
# ══════════════════════════════════════════════════════════════════════


class TestGovernanceConfig:

    def test_defaults(self):
        cfg = GovernanceConfig()
        assert cfg.max_voters == GOVERNANCE_MAX_VOTERS
        assert cfg.owner_voting_power == 20
        assert cfg.validate()

    def test_from_dict(self):
        cfg = GovernanceConfig.from_dict({"max_voters": 5, "quorum_percent": 60})
        assert cfg.max_voters == 5
        assert cfg.quorum_percent == 60
        assert cfg.token_unit == TOKEN_UNIT

    def test_validate_rejects(self):
        with pytest.raises(ValueError, match="quorum_percent"):
            GovernanceConfig(quorum_percent=0).validate()
        with pytest.raises(ValueError, match="max_voters"):
            GovernanceConfig(max_voters=0).validate()
        with pytest.raises(ValueError, match="token_unit"):
            GovernanceConfig(token_unit=0).validate()

    def test_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TOKENVOTE_MAX_VOTERS", raising=False)
        path = tmp_path / "governance.toml"
        path.write_text("[governance]\nmax_voters = 4\nowner_voting_power = 50\n")
        cfg = GovernanceConfig.from_file(str(path))
        assert cfg.max_voters == 4
        assert cfg.owner_voting_power == 50

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.quorum_percent == GOVERNANCE_QUORUM_PERCENT

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TOKENVOTE_QUORUM_PERCENT", "75")
        cfg = load_config()
        assert cfg.quorum_percent == 75

    def test_env_override_validated(self, monkeypatch):
        monkeypatch.setenv("TOKENVOTE_QUORUM_PERCENT", "101")
        with pytest.raises(ValueError):
            load_config()


# ══════════════════════════════════════════════════════════════════════
#  LOGGING
# ══════════════════════════════════════════════════════════════════════


class TestLogging:

    def test_sanitize_strips_escape_sequences(self):
        assert TerminalSafeFormatter.sanitize("\x1b[31mP1\x1b[0m\r\x07") == "P1"

    def test_invalid_date_format_falls_back(self):
        assert LogManager.validate_date_format("not a date") == "%Y-%m-%dT%H:%M:%S"

    def test_manager_is_singleton(self):
        assert LogManager() is LogManager()
        assert LogManager().is_configured
