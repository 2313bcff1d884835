import threading
import unittest
from dataclasses import dataclass, replace

from milestone_vault.errors import StaleRecord
from milestone_vault.ledger import Ledger, milestone_address


@dataclass(frozen=True)
class Counter:
    value: int
    version: int = 0


class TestLedger(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.ledger = Ledger()

    def test_commit(self):
        """Test writes become visible with a bumped version"""
        with self.ledger.transaction("a") as txn:
            self.assertIsNone(txn.read("a"))
            txn.write("a", Counter(1))
            # Staged writes are visible inside the transaction only
            self.assertEqual(txn.read("a").value, 1)
            self.assertIsNone(self.ledger.get("a"))

        self.assertEqual(self.ledger.get("a"), Counter(1, version=1))
        self.assertIn("a", self.ledger)
        self.assertEqual(self.ledger.commit_count, 1)

    def test_abort_discards_all_writes(self):
        """Test an exception leaves every record untouched"""
        with self.ledger.transaction("a", "b") as txn:
            txn.write("a", Counter(1))
            txn.write("b", Counter(1))

        with self.assertRaises(RuntimeError):
            with self.ledger.transaction("a", "b") as txn:
                txn.write("a", replace(txn.read("a"), value=2))
                txn.write("b", replace(txn.read("b"), value=2))
                raise RuntimeError("boom")

        self.assertEqual(self.ledger.get("a").value, 1)
        self.assertEqual(self.ledger.get("b").value, 1)
        self.assertEqual(self.ledger.commit_count, 1)

    def test_unlocked_address(self):
        """Test transactions only touch the addresses they locked"""
        with self.assertRaises(KeyError):
            with self.ledger.transaction("a") as txn:
                txn.write("b", Counter(1))

        self.assertIsNone(self.ledger.get("b"))

    def test_stale_write(self):
        """Test writes based on an outdated version are rejected"""
        with self.ledger.transaction("a") as txn:
            txn.write("a", Counter(1))
        stale = self.ledger.get("a")

        with self.ledger.transaction("a") as txn:
            txn.write("a", replace(stale, value=2))

        with self.assertRaises(StaleRecord):
            with self.ledger.transaction("a") as txn:
                txn.write("a", replace(stale, value=3))

        self.assertEqual(self.ledger.get("a").value, 2)

    def test_validate_before_commit(self):
        """Test staged writes can be checked before the body finishes"""
        with self.ledger.transaction("a") as txn:
            txn.write("a", Counter(1))
            txn.validate()
        stale = self.ledger.get("a")

        with self.ledger.transaction("a") as txn:
            txn.write("a", replace(stale, value=2))

        reached = []
        with self.assertRaises(StaleRecord):
            with self.ledger.transaction("a") as txn:
                txn.write("a", replace(stale, value=3))
                txn.validate()
                reached.append("after validate")

        self.assertEqual(reached, [])
        self.assertEqual(self.ledger.get("a").value, 2)

    def test_after_commit_callbacks(self):
        """Test callbacks run only after a successful commit"""
        calls = []

        with self.ledger.transaction("a") as txn:
            txn.write("a", Counter(1))
            txn.after_commit(lambda: calls.append("ok"))

        with self.assertRaises(RuntimeError):
            with self.ledger.transaction("a") as txn:
                txn.after_commit(lambda: calls.append("aborted"))
                raise RuntimeError("boom")

        self.assertEqual(calls, ["ok"])

    def test_serialized_read_modify_write(self):
        """Test concurrent increments are never lost"""
        with self.ledger.transaction("counter") as txn:
            txn.write("counter", Counter(0))

        def increment():
            for _ in range(50):
                with self.ledger.transaction("counter") as txn:
                    current = txn.read("counter")
                    txn.write("counter", replace(current, value=current.value + 1))

        threads = [threading.Thread(target=increment) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(self.ledger.get("counter").value, 400)

    def test_milestone_address(self):
        """Test milestone addresses are bound to vault and index"""
        self.assertEqual(milestone_address("v", 0), milestone_address("v", 0))
        self.assertNotEqual(milestone_address("v", 0), milestone_address("v", 1))
        self.assertNotEqual(milestone_address("v", 0), milestone_address("w", 0))


if __name__ == '__main__':
    unittest.main()
