#!/usr/bin/env python3
"""
powchain demo CLI

Mines a short chain, adds every block through the admission rule and
re-verifies the result.

Usage:
    # Genesis block plus 3 more
    python main.py --blocks 3

    # Race 4 worker processes per block
    python main.py --blocks 3 --workers 4

    # Show that editing a stored block is detected
    python main.py --blocks 2 --tamper

    # Dump the chain as JSON
    python main.py --json
"""

import argparse
import json
import logging
import sys

from powchain import (
    Block,
    Blockchain,
    ChainError,
    MiningAbortedError,
    mine,
    mine_parallel,
)
from powchain.config import GENESIS_PREVIOUS_HASH

logger = logging.getLogger(__name__)


def mine_next_block(chain, workers=1, timeout_seconds=None, max_nonce=None):
    """Compose a candidate on top of the chain, mine it and add it."""
    last = chain.last_block
    previous_hash = last.hash if last is not None else GENESIS_PREVIOUS_HASH
    candidate = Block.compose(previous_hash)

    if workers > 1:
        mined = mine_parallel(candidate, workers=workers, timeout_seconds=timeout_seconds)
    else:
        mined = mine(candidate, max_nonce=max_nonce, timeout_seconds=timeout_seconds)

    chain.add(mined)
    return mined


def build_chain(blocks, workers=1, timeout_seconds=None, max_nonce=None):
    """Mine a genesis block plus `blocks` more into a new chain."""
    chain = Blockchain()
    for _ in range(blocks + 1):
        mined = mine_next_block(chain, workers, timeout_seconds, max_nonce)
        logger.info("Chain height %d, nonce %d", chain.size(), mined.nonce)
    return chain


def tamper(chain):
    """Copy of the chain whose last stored record carries a forged hash."""
    records = chain.to_dict_list()
    records[-1]["hash"] = "00" + "f" * 62
    logger.info("Tampered with block #%d", len(records) - 1)
    return Blockchain.from_dict_list(records)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="powchain proof-of-work chain demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --blocks 3                 # Mine genesis + 3 blocks
  python main.py --blocks 3 --workers 4     # Parallel mining
  python main.py --tamper                   # Tamper detection
        """
    )

    parser.add_argument(
        "--blocks", "-n",
        type=int,
        default=3,
        help="Number of blocks to mine after genesis (default: 3)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Worker processes per block (default: 1, single process)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up mining a block after this many seconds"
    )

    parser.add_argument(
        "--max-nonce",
        type=int,
        default=None,
        help="Give up mining a block after this many attempts (single process only)"
    )

    parser.add_argument(
        "--tamper",
        action="store_true",
        help="Corrupt the last block after mining and re-validate"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the chain as JSON"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    if args.blocks < 0:
        parser.error("--blocks must be zero or more")
    if args.workers < 1:
        parser.error("--workers must be at least 1")
    return args


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )

    try:
        chain = build_chain(args.blocks, args.workers, args.timeout, args.max_nonce)
    except MiningAbortedError as e:
        logger.error("Mining aborted: %s", e)
        return 1
    except ChainError as e:
        logger.error("Block rejected by chain: %s", e)
        return 1

    if args.tamper:
        chain = tamper(chain)

    valid = chain.is_valid()
    logger.info("Chain height: %d, valid: %s", chain.size(), valid)

    if args.json:
        print(json.dumps(chain.to_dict_list(), indent=2))

    return 0 if valid else 2


if __name__ == "__main__":
    sys.exit(main())
