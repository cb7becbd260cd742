import threading
import time
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from school_records.field_update_service import update_field
from school_records.record_codec import FieldKey
from school_records.record_lock_service import RecordLocks, check_guard
from school_records.record_store import find_value, read_lines


class RecordLocksTest(unittest.TestCase):
    def test_hold_is_exclusive_per_path(self):
        with TemporaryDirectory() as td:
            path = Path(td) / "output_1.txt"
            locks = RecordLocks()
            order = []

            def _second():
                with locks.hold(path):
                    order.append("second")

            with locks.hold(path) as guard:
                self.assertTrue(guard.covers(path))
                worker = threading.Thread(target=_second)
                worker.start()
                time.sleep(0.05)
                order.append("first")
            worker.join(timeout=2)
            self.assertEqual(order, ["first", "second"])

    def test_different_paths_do_not_block(self):
        with TemporaryDirectory() as td:
            locks = RecordLocks()
            acquired = threading.Event()

            def _other():
                with locks.hold(Path(td) / "output_2.txt"):
                    acquired.set()

            with locks.hold(Path(td) / "output_1.txt"):
                worker = threading.Thread(target=_other)
                worker.start()
                self.assertTrue(acquired.wait(timeout=2))
            worker.join(timeout=2)

    def test_guard_stops_covering_after_release(self):
        with TemporaryDirectory() as td:
            path = Path(td) / "output_1.txt"
            locks = RecordLocks()
            with locks.hold(path) as guard:
                check_guard(path, guard)
                check_guard(Path(td) / "." / "output_1.txt", guard)
            self.assertFalse(guard.covers(path))
            with self.assertRaises(ValueError):
                check_guard(path, guard)
            check_guard(path, None)

    def test_locked_read_modify_write_cycles_do_not_lose_updates(self):
        with TemporaryDirectory() as td:
            path = Path(td) / "output_1.txt"
            path.write_text("GRADE = 0\n", encoding="utf-8")
            locks = RecordLocks()
            errors = []

            def _bump():
                try:
                    for _ in range(20):
                        with locks.hold(path) as guard:
                            current = int(find_value(read_lines(path), FieldKey.GRADE))
                            update_field(path, FieldKey.GRADE, current + 1, guard=guard)
                except Exception as exc:  # pragma: no cover - asserted below
                    errors.append(exc)

            workers = [threading.Thread(target=_bump) for _ in range(4)]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

            self.assertEqual(errors, [])
            self.assertEqual(path.read_text(encoding="utf-8"), "GRADE = 80\n")
            self.assertEqual(locks.active_paths(), 0)

    def test_released_paths_are_forgotten(self):
        with TemporaryDirectory() as td:
            locks = RecordLocks()
            for idx in range(50):
                with locks.hold(Path(td) / f"output_{idx}.txt"):
                    self.assertEqual(locks.active_paths(), 1)
            self.assertEqual(locks.active_paths(), 0)

            path = Path(td) / "output_1.txt"
            with locks.hold(path):
                with self.assertRaises(RuntimeError):
                    with locks.hold(Path(td) / "output_2.txt"):
                        self.assertEqual(locks.active_paths(), 2)
                        raise RuntimeError("boom")
                self.assertEqual(locks.active_paths(), 1)
            self.assertEqual(locks.active_paths(), 0)

    def test_waiting_holder_keeps_lock_alive(self):
        with TemporaryDirectory() as td:
            path = Path(td) / "output_1.txt"
            locks = RecordLocks()
            waiting = threading.Event()
            seen = []

            def _second():
                waiting.set()
                with locks.hold(path) as guard:
                    seen.append(guard.covers(path))

            with locks.hold(path):
                worker = threading.Thread(target=_second)
                worker.start()
                self.assertTrue(waiting.wait(timeout=2))
                time.sleep(0.05)
                self.assertEqual(locks.active_paths(), 1)
            worker.join(timeout=2)

            self.assertEqual(seen, [True])
            self.assertEqual(locks.active_paths(), 0)


if __name__ == "__main__":
    unittest.main()
