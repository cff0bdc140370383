import time
import json
from dataclasses import dataclass, field
from typing import Optional

from nacl.hash import sha256
from nacl.encoding import HexEncoder


def calculate_hash(previous_hash: str, timestamp: int, nonce: int) -> str:
    """SHA256 hex digest of a block's (previous_hash, timestamp, nonce)."""
    header_string = json.dumps(
        {
            "previous_hash": previous_hash,
            "timestamp": timestamp,
            "nonce": nonce,
        },
        sort_keys=True,
    )
    return sha256(header_string.encode("utf-8"), encoder=HexEncoder).decode()


@dataclass(frozen=True)
class Block:
    """
    Immutable, content-addressed unit of the chain.

    The hash is computed once at construction and stored; calculated_hash()
    re-derives it from the current fields so corruption can be detected.
    """
    previous_hash: str
    timestamp: int
    nonce: int = 0
    hash: str = field(init=False)

    def __post_init__(self):
        if self.nonce < 0:
            raise ValueError("Nonce must be a non-negative integer.")
        # Canonical ms integer; 1 and 1.0 would otherwise encode differently
        object.__setattr__(self, "timestamp", int(self.timestamp))
        object.__setattr__(self, "hash", self.calculated_hash())

    @classmethod
    def compose(cls, previous_hash: str, timestamp: Optional[int] = None) -> "Block":
        """Fresh candidate with nonce 0, stamped with the current time (ms) by default."""
        if timestamp is None:
            timestamp = round(time.time() * 1000)
        return cls(previous_hash, int(timestamp), 0)

    def calculated_hash(self) -> str:
        return calculate_hash(self.previous_hash, self.timestamp, self.nonce)

    def to_dict(self):
        return {
            "previous_hash": self.previous_hash,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
            "hash": self.hash,
        }

    @staticmethod
    def from_dict(data: dict) -> "Block":
        """
        Create block from dictionary.

        A stored hash is kept as-is so a corrupted record stays detectable
        through calculated_hash(); without one the hash is derived.
        """
        block = Block(
            previous_hash=data["previous_hash"],
            timestamp=data["timestamp"],
            nonce=data.get("nonce", 0),
        )
        stored_hash = data.get("hash")
        if stored_hash is not None:
            object.__setattr__(block, "hash", stored_hash)
        return block

    def __repr__(self):
        return f"Block(nonce={self.nonce}, hash={self.hash[:8]}, prev={self.previous_hash[:8]})"
