import time
import logging
import multiprocessing
import queue

from .block import Block
from .config import DIFFICULTY, DEFAULT_WORKERS, PARALLEL_POLL_INTERVAL, PROGRESS_LOG_INTERVAL

logger = logging.getLogger(__name__)

TARGET = "0" * DIFFICULTY


class MiningAbortedError(Exception):
    """Raised when max_nonce, timeout, or cancellation stops mining before a solution is found."""


def is_mined(block):
    """True if the block's stored hash meets the fixed difficulty target."""
    return block.hash.startswith(TARGET)


def mine(
    candidate,
    max_nonce=None,
    timeout_seconds=None,
    cancel_event=None,
    progress_callback=None
):
    """
    Mines a block using Proof-of-Work.

    Starts at the candidate's own nonce and counts up by one, keeping
    previous_hash and timestamp fixed, until the hash meets the target.
    The candidate is left untouched; a new Block is returned.

    With every bound left as None this is an unbounded blocking call.
    Termination is only probabilistic (about 16 ** DIFFICULTY attempts
    expected), so long-running callers should pass one of:

    Args:
        max_nonce: Give up after this many attempts
        timeout_seconds: Give up after this much wall-clock time
        cancel_event: Object with is_set() (e.g. threading.Event), checked every attempt
        progress_callback: Called as progress_callback(nonce, hash); returning False cancels

    Raises:
        MiningAbortedError: A bound stopped the search
        ValueError: No candidate given
    """

    if candidate is None:
        raise ValueError("Cannot mine a missing block.")

    previous_hash = candidate.previous_hash
    timestamp = candidate.timestamp
    nonce = candidate.nonce
    attempts = 0
    start_time = time.monotonic()

    logger.info("Mining block on %s (Difficulty: %s)", previous_hash[:16], DIFFICULTY)

    while True:

        if max_nonce is not None and attempts >= max_nonce:
            logger.warning("Max nonce exceeded during mining.")
            raise MiningAbortedError("Mining failed: max_nonce exceeded")

        if timeout_seconds is not None and (time.monotonic() - start_time) > timeout_seconds:
            logger.warning("Mining timeout exceeded.")
            raise MiningAbortedError("Mining failed: timeout exceeded")

        if cancel_event is not None and cancel_event.is_set():
            logger.info("Mining cancelled via cancel_event.")
            raise MiningAbortedError("Mining cancelled")

        block = Block(previous_hash, timestamp, nonce)

        if is_mined(block):
            logger.info("Success! Hash: %s (nonce %d)", block.hash, block.nonce)
            return block

        if progress_callback is not None:
            if progress_callback(nonce, block.hash) is False:
                logger.info("Mining cancelled via progress_callback.")
                raise MiningAbortedError("Mining cancelled")

        attempts += 1
        nonce += 1

        if attempts % PROGRESS_LOG_INTERVAL == 0:
            logger.debug("Trying nonce %d...", nonce)


def _search_partition(previous_hash, timestamp, start, step, found, results):
    # Worker body for mine_parallel; must stay module-level to be picklable.
    nonce = start
    while not found.is_set():
        block = Block(previous_hash, timestamp, nonce)
        if is_mined(block):
            found.set()
            results.put(nonce)
            return
        nonce += step


def mine_parallel(candidate, workers=DEFAULT_WORKERS, timeout_seconds=None, cancel_event=None):
    """
    Mines a block with several processes racing over disjoint nonce ranges.

    Worker k tries candidate.nonce + k, + k + workers, ... The first
    solution reported wins and the remaining workers are stopped. The
    winner is not necessarily the smallest qualifying nonce.

    Raises:
        MiningAbortedError: timeout_seconds elapsed or cancel_event was set before a solution
        ValueError: No candidate given, or workers < 1
    """

    if candidate is None:
        raise ValueError("Cannot mine a missing block.")

    if not isinstance(workers, int) or workers < 1:
        raise ValueError("Workers must be a positive integer.")

    found = multiprocessing.Event()
    results = multiprocessing.Queue()
    processes = [
        multiprocessing.Process(
            target=_search_partition,
            args=(candidate.previous_hash, candidate.timestamp,
                  candidate.nonce + k, workers, found, results),
            daemon=True,
        )
        for k in range(workers)
    ]

    logger.info("Mining block on %s with %d workers", candidate.previous_hash[:16], workers)

    for p in processes:
        p.start()

    deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds

    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Mining cancelled via cancel_event.")
                raise MiningAbortedError("Mining cancelled")

            wait = PARALLEL_POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("Mining timeout exceeded.")
                    raise MiningAbortedError("Mining failed: timeout exceeded")
                wait = min(wait, remaining)

            try:
                nonce = results.get(timeout=wait)
                break
            except queue.Empty:
                continue
    finally:
        found.set()
        for p in processes:
            p.join(timeout=1)
            if p.is_alive():
                p.terminate()
                p.join()

    block = Block(candidate.previous_hash, candidate.timestamp, nonce)
    logger.info("Success! Hash: %s (nonce %d)", block.hash, block.nonce)
    return block
