# Core modules
from .block import Block, calculate_hash
from .chain import Blockchain, ChainError, InvalidBlockError, InvalidArgumentError

# Consensus
from .pow import mine, mine_parallel, is_mined, MiningAbortedError

__all__ = [
    # Core
    "Block",
    "calculate_hash",
    "Blockchain",
    "ChainError",
    "InvalidBlockError",
    "InvalidArgumentError",
    # Consensus
    "mine",
    "mine_parallel",
    "is_mined",
    "MiningAbortedError",
]
