from .block import Block
from .pow import is_mined
from .config import GENESIS_PREVIOUS_HASH
import logging
import threading

logger = logging.getLogger(__name__)


class ChainError(Exception):
    """Base class for chain admission errors."""


class InvalidBlockError(ChainError):
    """Raised when a block fails the admission rule (linkage, proof-of-work or hash integrity)."""


class InvalidArgumentError(ChainError, ValueError):
    """Raised when no block is passed to Blockchain.add."""


class Blockchain:
    """
    Append-only chain of mined blocks.

    Every block admitted through add() keeps three invariants over the
    contents: each block links to its predecessor's hash, each stored hash
    matches its recomputed hash, and each block meets the proof-of-work
    target. is_valid() re-checks the whole contents independently.
    """

    def __init__(self):
        self.chain = []
        self._lock = threading.RLock()

    @property
    def last_block(self):
        """
        Returns the most recent block in the chain, or None when empty.
        """
        with self._lock:
            return self.chain[-1] if self.chain else None

    @property
    def blocks(self):
        """Snapshot of the chain contents."""
        with self._lock:
            return tuple(self.chain)

    def is_empty(self):
        with self._lock:
            return not self.chain

    def size(self):
        with self._lock:
            return len(self.chain)

    def __len__(self):
        return self.size()

    def add(self, block):
        """
        Appends a block if it preserves linkage, integrity and proof-of-work.

        The admission check and the append happen under one lock, so two
        concurrent adds cannot both link to the same last block.

        Raises:
            InvalidArgumentError: block is None
            InvalidBlockError: block fails admission; the chain is unchanged
        """
        if block is None:
            raise InvalidArgumentError("No block given")

        with self._lock:
            if self.chain:
                expected_previous = self.chain[-1].hash
            else:
                expected_previous = GENESIS_PREVIOUS_HASH

            # Check previous hash linkage
            if block.previous_hash != expected_previous:
                logger.warning("Block %s rejected: Invalid previous hash %s != %s",
                               block.hash[:8], block.previous_hash, expected_previous)
                raise InvalidBlockError(
                    f"previous_hash {block.previous_hash!r} does not match {expected_previous!r}"
                )

            # Verify proof-of-work meets difficulty target
            if not is_mined(block):
                logger.warning("Block %s rejected: Hash does not meet difficulty", block.hash[:8])
                raise InvalidBlockError(f"block {block.hash} is not mined")

            # Verify block hash
            if block.hash != block.calculated_hash():
                logger.warning("Block %s rejected: Invalid hash", block.hash[:8])
                raise InvalidBlockError(f"block {block.hash} does not match its contents")

            self.chain.append(block)
            logger.info("Block #%d added: %s", len(self.chain) - 1, block.hash)

    def is_valid(self):
        """
        Re-verifies the entire chain without trusting earlier admission.

        Adjacent pairs pass when at least one of the two blocks is mined,
        the pair is linked, and both hashes match their contents.
        """
        with self._lock:
            if not self.chain:
                return True

            if len(self.chain) == 1:
                curr = self.chain[0]
                return is_mined(curr) and curr.hash == curr.calculated_hash()

            for i in range(1, len(self.chain)):
                prev = self.chain[i - 1]
                curr = self.chain[i]

                if not (is_mined(prev) or is_mined(curr)):
                    logger.warning("Chain validation failed: No proof-of-work at blocks %d/%d", i - 1, i)
                    return False

                if curr.previous_hash != prev.hash:
                    logger.warning("Chain validation failed: Invalid previous_hash at block %d", i)
                    return False

                if curr.hash != curr.calculated_hash():
                    logger.warning("Chain validation failed: Invalid hash at block %d", i)
                    return False

                if prev.hash != prev.calculated_hash():
                    logger.warning("Chain validation failed: Invalid hash at block %d", i - 1)
                    return False

            return True

    def to_dict_list(self) -> list:
        """Export chain as list of block dictionaries."""
        with self._lock:
            return [block.to_dict() for block in self.chain]

    @classmethod
    def from_dict_list(cls, chain_data: list) -> "Blockchain":
        """
        Rebuild a chain from exported block dictionaries.

        Admission is not re-run here: restored data is taken as stored, and
        is_valid() is the check to run before trusting it.
        """
        restored = cls()
        restored.chain = [Block.from_dict(data) for data in chain_data]
        logger.info("Restored chain with %d blocks", len(restored.chain))
        return restored
