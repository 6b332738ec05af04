"""
Token holdings consumed by governance.

Provides:
  - VotingPowerOracle : protocol for anything exposing balance_of()
  - TokenBalances     : in-memory balance table
"""

from .balances import (
    TokenBalances,
    VotingPowerOracle,
    normalize_identity,
)

__all__ = [
    "TokenBalances",
    "VotingPowerOracle",
    "normalize_identity",
]
