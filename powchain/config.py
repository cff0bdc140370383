"""
config.py - powchain configuration constants.
Fixed settings for the chain and the miner.
"""

# Proof-of-Work difficulty (number of leading zero hex digits required)
DIFFICULTY = 2

# previous_hash carried by the first block of a chain
GENESIS_PREVIOUS_HASH = "0"

# Log mining progress every N nonces
PROGRESS_LOG_INTERVAL = 50000

# Worker processes used by mine_parallel when none are given
DEFAULT_WORKERS = 4

# Seconds between cancel/timeout checks while mine_parallel waits on workers
PARALLEL_POLL_INTERVAL = 0.05
