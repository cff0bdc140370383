import itertools
import multiprocessing
import threading
import unittest
from unittest import mock

from powchain import Block, mine, mine_parallel, is_mined, MiningAbortedError
from powchain.config import DIFFICULTY

TIMESTAMP = 1704067200000


def unmined_candidate(previous_hash="0", timestamp=TIMESTAMP):
    """First block at or after nonce 0 that does not meet the target."""
    nonce = 0
    while is_mined(Block(previous_hash, timestamp, nonce)):
        nonce += 1
    return Block(previous_hash, timestamp, nonce)


class TestIsMined(unittest.TestCase):

    def test_leading_zeros_required(self):
        block = Block("0", TIMESTAMP, 0)
        object.__setattr__(block, "hash", "0" * DIFFICULTY + "f" * (64 - DIFFICULTY))
        self.assertTrue(is_mined(block))

        object.__setattr__(block, "hash", "0" * (DIFFICULTY - 1) + "f" * (65 - DIFFICULTY))
        self.assertFalse(is_mined(block))

    def test_depends_only_on_stored_hash(self):
        block = unmined_candidate()
        self.assertFalse(is_mined(block))
        object.__setattr__(block, "hash", "00" + "1" * 62)
        self.assertTrue(is_mined(block))


class TestMine(unittest.TestCase):

    def test_mined_block_properties(self):
        candidate = Block.compose("0", timestamp=TIMESTAMP)
        mined = mine(candidate)

        self.assertTrue(is_mined(mined))
        self.assertEqual(mined.previous_hash, candidate.previous_hash)
        self.assertEqual(mined.timestamp, candidate.timestamp)
        self.assertGreaterEqual(mined.nonce, candidate.nonce)
        self.assertEqual(mined.hash, mined.calculated_hash())

    def test_returns_first_qualifying_nonce(self):
        candidate = Block("abc", TIMESTAMP, 5)
        mined = mine(candidate)

        self.assertGreaterEqual(mined.nonce, 5)
        for nonce in range(5, mined.nonce):
            self.assertFalse(is_mined(Block("abc", TIMESTAMP, nonce)))

    def test_search_is_reproducible(self):
        candidate = Block("abc", TIMESTAMP, 0)
        self.assertEqual(mine(candidate), mine(candidate))

    def test_candidate_not_modified(self):
        candidate = unmined_candidate()
        before = candidate.to_dict()
        mine(candidate)
        self.assertEqual(candidate.to_dict(), before)

    def test_already_mined_candidate_returned_as_is(self):
        mined = mine(Block("0", TIMESTAMP, 0))
        self.assertEqual(mine(mined), mined)

    def test_none_candidate(self):
        with self.assertRaises(ValueError):
            mine(None)

    def test_max_nonce_exceeded(self):
        with self.assertRaises(MiningAbortedError):
            mine(unmined_candidate(), max_nonce=0)

    def test_timeout_exceeded(self):
        clock = itertools.count(0, 10)
        with mock.patch("powchain.pow.time.monotonic", side_effect=lambda: next(clock)):
            with self.assertRaises(MiningAbortedError):
                mine(unmined_candidate(), timeout_seconds=1)

    def test_cancel_event(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(MiningAbortedError):
            mine(unmined_candidate(), cancel_event=cancel)

    def test_progress_callback_cancels(self):
        seen = []

        def stop(nonce, block_hash):
            seen.append((nonce, block_hash))
            return False

        candidate = unmined_candidate()
        with self.assertRaises(MiningAbortedError):
            mine(candidate, progress_callback=stop)
        self.assertEqual(seen, [(candidate.nonce, candidate.hash)])

    def test_progress_callback_sees_every_failed_attempt(self):
        seen = []
        candidate = Block("xyz", TIMESTAMP, 0)
        mined = mine(candidate, progress_callback=lambda nonce, h: seen.append(nonce))
        self.assertEqual(seen, list(range(0, mined.nonce)))


class TestMineParallel(unittest.TestCase):

    def test_parallel_result_is_mined(self):
        candidate = Block("abc", TIMESTAMP, 3)
        mined = mine_parallel(candidate, workers=2, timeout_seconds=60)

        self.assertTrue(is_mined(mined))
        self.assertEqual(mined.previous_hash, candidate.previous_hash)
        self.assertEqual(mined.timestamp, candidate.timestamp)
        self.assertGreaterEqual(mined.nonce, candidate.nonce)

    def test_workers_stopped_after_result(self):
        mine_parallel(Block("abc", TIMESTAMP, 0), workers=3, timeout_seconds=60)
        self.assertEqual(multiprocessing.active_children(), [])

    def test_parallel_timeout(self):
        with self.assertRaises(MiningAbortedError):
            mine_parallel(Block("abc", TIMESTAMP, 0), workers=2, timeout_seconds=0)
        self.assertEqual(multiprocessing.active_children(), [])

    def test_parallel_cancel_event(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(MiningAbortedError):
            mine_parallel(Block("abc", TIMESTAMP, 0), workers=2, cancel_event=cancel)
        self.assertEqual(multiprocessing.active_children(), [])

    def test_invalid_workers(self):
        with self.assertRaises(ValueError):
            mine_parallel(Block("0", TIMESTAMP, 0), workers=0)

    def test_none_candidate(self):
        with self.assertRaises(ValueError):
            mine_parallel(None)


if __name__ == '__main__':
    unittest.main()
