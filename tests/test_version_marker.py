import os
import tempfile
import unittest

from errors import BadVersionFormat
from kernel_version import parse_version
from version_marker import VersionMarker, UpgradeJournal


class VersionMarkerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tempdir.name, "linux-5.4.version")
        self.marker = VersionMarker(self.path, parse_version, lambda v: v.render())

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _write(self, text: str) -> None:
        with open(self.path, "w") as f:
            f.write(text)

    def test_write_has_no_trailing_newline(self) -> None:
        self.marker.write(parse_version("5.4.2"))

        with open(self.path) as f:
            self.assertEqual("5.4.2", f.read())

    def test_write_then_read(self) -> None:
        self.assertFalse(self.marker.exists())

        self.marker.write(parse_version("5.4"))

        self.assertTrue(self.marker.exists())
        self.assertEqual(parse_version("5.4.0"), self.marker.read())

    def test_trailing_whitespace_is_ignored(self) -> None:
        self._write("5.4.38\n \n")

        self.assertEqual(parse_version("5.4.38"), self.marker.read())

    def test_empty_file_is_rejected(self) -> None:
        self._write("\n")

        with self.assertRaises(BadVersionFormat):
            self.marker.read()

    def test_truncated_file_is_rejected(self) -> None:
        self._write("5.")

        with self.assertRaises(BadVersionFormat):
            self.marker.read()

    def test_write_truncates_previous_contents(self) -> None:
        self._write("5.4.100")

        self.marker.write(parse_version("5.4.1"))

        self.assertEqual(parse_version("5.4.1"), self.marker.read())


class UpgradeJournalTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tempdir.name, "linux-5.4.journal")
        self.journal = UpgradeJournal(self.path)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def test_begin_read_clear(self) -> None:
        self.journal.begin("5.4.0", "5.4.1")

        self.assertTrue(self.journal.exists())
        self.assertEqual(("5.4.0", "5.4.1"), self.journal.read())

        self.journal.clear()

        self.assertFalse(self.journal.exists())

    def test_clear_without_journal(self) -> None:
        self.journal.clear()

        self.assertFalse(self.journal.exists())

    def test_ill_formed_journal(self) -> None:
        with open(self.path, "w") as f:
            f.write("begin-upgr")

        self.assertEqual(("", ""), self.journal.read())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
