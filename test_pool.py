#!/usr/bin/env python3
"""
Unit tests for the bounded task runner.

Covers result completeness, the concurrency ceiling and worker-count
resolution.
"""

import sys
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from tugboat import pool


class TestResolveWorkers(unittest.TestCase):
    """Worker count resolution."""

    def test_explicit_count_clamped_to_items(self):
        self.assertEqual(pool.resolve_workers(16, 3), 3)
        self.assertEqual(pool.resolve_workers(2, 10), 2)
        print("  ✓ Worker count clamped to item count")

    def test_zero_means_cpu_count(self):
        with patch("tugboat.pool.os.cpu_count", return_value=4):
            self.assertEqual(pool.resolve_workers(0, 100), 4)
            self.assertEqual(pool.resolve_workers(-1, 100), 4)
            self.assertEqual(pool.resolve_workers(0, 2), 2)
        print("  ✓ Non-positive worker count falls back to CPU count")

    def test_unknown_cpu_count(self):
        with patch("tugboat.pool.os.cpu_count", return_value=None):
            self.assertEqual(pool.resolve_workers(0, 5), 1)


class TestRun(unittest.TestCase):
    """Fan-out/fan-in behaviour."""

    def test_every_item_produces_one_result(self):
        results = pool.run(list(range(50)), 8, lambda x: x * 2)
        self.assertEqual(len(results), 50)
        self.assertEqual(sorted(results), [x * 2 for x in range(50)])
        print("  ✓ N items produce exactly N results")

    def test_empty_input_starts_no_threads(self):
        with patch("tugboat.pool.ThreadPoolExecutor") as executor:
            self.assertEqual(pool.run([], 4, lambda x: x), [])
            executor.assert_not_called()
        print("  ✓ Empty input returns immediately")

    def test_concurrency_never_exceeds_worker_count(self):
        active = 0
        peak = 0
        lock = threading.Lock()

        def job(_):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1
            return True

        results = pool.run(list(range(20)), 3, job)
        self.assertEqual(len(results), 20)
        self.assertLessEqual(peak, 3)
        print(f"  ✓ Peak concurrency {peak} <= 3")

    def test_single_worker_runs_sequentially(self):
        threads = set()

        def job(_):
            threads.add(threading.current_thread().name)
            return 1

        pool.run(list(range(5)), 1, job)
        self.assertEqual(len(threads), 1)

    def test_failures_are_values(self):
        def job(x):
            return ("error", x) if x % 2 else ("ok", x)

        results = pool.run(list(range(6)), 2, job)
        self.assertEqual(sum(1 for state, _ in results if state == "error"), 3)


if __name__ == "__main__":
    unittest.main(verbosity=2)
