import os
import sys
import tempfile
import time
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from card_cleanup import CleanupReport, cleanup_all_cards, cleanup_old_cards, main


class CleanupTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name) / "generated"
        self.output_dir.mkdir()
        self.now = time.time()

        self.old = self.output_dir / "old.png"
        self.fresh = self.output_dir / "fresh.png"
        self.old.write_bytes(b"old")
        self.fresh.write_bytes(b"fresh")
        two_hours_ago = self.now - 2 * 60 * 60
        os.utime(self.old, (two_hours_ago, two_hours_ago))
        os.utime(self.fresh, (self.now - 60, self.now - 60))

    def tearDown(self):
        self._tmp.cleanup()

    def test_only_old_files_are_removed(self):
        report = cleanup_old_cards(self.output_dir, 60, now=self.now)
        self.assertEqual(report, CleanupReport(deleted=1, errors=0, total=2))
        self.assertFalse(self.old.exists())
        self.assertTrue(self.fresh.exists())

    def test_subdirectories_are_left_alone(self):
        (self.output_dir / "nested").mkdir()
        report = cleanup_old_cards(self.output_dir, 60, now=self.now)
        self.assertEqual(report.total, 2)
        self.assertTrue((self.output_dir / "nested").is_dir())

    def test_missing_directory_is_a_no_op(self):
        report = cleanup_old_cards(self.output_dir / "absent", 60)
        self.assertEqual(report, CleanupReport(0, 0, 0))
        self.assertEqual(cleanup_all_cards(self.output_dir / "absent"), CleanupReport(0, 0, 0))

    def test_cleanup_all_removes_everything(self):
        report = cleanup_all_cards(self.output_dir)
        self.assertEqual(report, CleanupReport(2, 0, 2))
        self.assertEqual(list(self.output_dir.iterdir()), [])

    def test_command_line(self):
        self.assertEqual(main(["--output-dir", str(self.output_dir), "--log-level", "WARNING"]), 0)
        self.assertFalse(self.old.exists())
        self.assertTrue(self.fresh.exists())
        self.assertEqual(main(["--output-dir", str(self.output_dir), "--all"]), 0)
        self.assertFalse(self.fresh.exists())


if __name__ == "__main__":
    unittest.main()
