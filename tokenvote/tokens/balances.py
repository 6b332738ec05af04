"""
Token balance oracle.

The governance engine only ever reads holdings: ``balance_of(identity)``
in base units (``TOKEN_UNIT`` per whole token). ``TokenBalances`` is the
in-memory ledger used by the CLI and the tests; any object exposing the
same method can be plugged into the engine instead.
"""

from typing import Any, Dict, Iterable, Optional, Protocol, Tuple, runtime_checkable

from eth_utils import is_address, to_checksum_address

from ..constants import TOKEN_UNIT
from ..exceptions import InvalidArgumentError
from ..logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class VotingPowerOracle(Protocol):
    """Read-only view of token holdings at call time."""

    def balance_of(self, identity: str) -> int:
        ...


def normalize_identity(identity: Any) -> str:
    """Validate an EVM-style address and return its checksummed form."""
    if not isinstance(identity, (str, bytes)) or not is_address(identity):
        raise InvalidArgumentError(f"Invalid identity: {identity!r}")
    return to_checksum_address(identity)


class TokenBalances:
    """
    In-memory balance table.

    Mirrors the read side of an ERC-20 ledger: unknown holders read as
    zero. Balances are set directly; there is no transfer logic.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = {}
        for holder, amount in (balances or {}).items():
            self.set_balance(holder, amount)

    @classmethod
    def from_tokens(cls, holdings: Iterable[Tuple[str, Any]]) -> "TokenBalances":
        """Build from (identity, whole-token amount) pairs."""
        ledger = cls()
        for holder, tokens in holdings:
            ledger.set_balance(holder, int(tokens * TOKEN_UNIT))
        return ledger

    def set_balance(self, identity: str, amount: int):
        if amount < 0:
            raise InvalidArgumentError("Balance cannot be negative")
        holder = normalize_identity(identity)
        self._balances[holder] = int(amount)
        logger.debug(f"Balance set: {holder} = {amount}")

    def balance_of(self, identity: str) -> int:
        return self._balances.get(normalize_identity(identity), 0)

    @property
    def holders(self) -> int:
        return sum(1 for v in self._balances.values() if v > 0)

    def to_dict(self) -> Dict[str, Any]:
        return {holder: str(amount) for holder, amount in self._balances.items()}

    def __repr__(self) -> str:
        return f"<TokenBalances holders={self.holders}>"
