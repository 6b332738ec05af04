"""
Winner registry: append-only set of commitment hashes of passed proposals.
"""

from typing import Any, Dict, Iterator, Set, Union

from eth_utils import decode_hex, encode_hex, is_hex, keccak

from ..constants import COMMITMENT_HASH_SIZE
from ..exceptions import DuplicateCommitmentError, InvalidArgumentError


def normalize_commitment(value: Union[str, bytes]) -> str:
    """Return a 32-byte commitment as lowercase 0x-hex."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str) and is_hex(value):
        raw = decode_hex(value)
    else:
        raise InvalidArgumentError(f"Commitment hash must be hex or bytes, got {value!r}")
    if len(raw) != COMMITMENT_HASH_SIZE:
        raise InvalidArgumentError(
            f"Commitment hash must be {COMMITMENT_HASH_SIZE} bytes, got {len(raw)}"
        )
    return encode_hex(raw)


def commitment_of(payload: Union[str, bytes]) -> str:
    """keccak-256 commitment of a text or byte payload."""
    if isinstance(payload, str):
        return encode_hex(keccak(text=payload))
    return encode_hex(keccak(primitive=payload))


class WinnerRegistry:
    """Hashes are only ever added; membership never reverts."""

    def __init__(self):
        self._hashes: Set[str] = set()

    def is_winner(self, commitment_hash: Union[str, bytes]) -> bool:
        return normalize_commitment(commitment_hash) in self._hashes

    def require_unused(self, commitment_hash: str):
        if commitment_hash in self._hashes:
            raise DuplicateCommitmentError(
                f"Commitment {commitment_hash} already belongs to a winning proposal"
            )

    def add(self, commitment_hash: str):
        self.require_unused(commitment_hash)
        self._hashes.add(commitment_hash)

    def __contains__(self, commitment_hash: str) -> bool:
        return commitment_hash in self._hashes

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._hashes))

    def __len__(self) -> int:
        return len(self._hashes)

    def to_dict(self) -> Dict[str, Any]:
        return {"winners": sorted(self._hashes)}
