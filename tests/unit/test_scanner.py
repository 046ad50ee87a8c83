import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fix_lfp.errors import InvalidTarget, PermissionDenied
from fix_lfp.scanner import (
    ScanEntry,
    filter_long_paths,
    is_long_path,
    path_length,
    read_listing,
    scan_tree,
    validate_target,
    write_listing,
)


class TestValidateTarget(unittest.TestCase):
    def test_missing_target(self):
        with self.assertRaises(InvalidTarget):
            validate_target("/definitely/not/here/fix_lfp")

    def test_target_is_a_file(self):
        with tempfile.NamedTemporaryFile() as f:
            with self.assertRaises(InvalidTarget):
                validate_target(f.name)

    def test_empty_target(self):
        with self.assertRaises(InvalidTarget):
            validate_target("")

    def test_trailing_separator_is_stripped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(validate_target(tmpdir + os.sep), os.path.abspath(tmpdir))


class TestScanTree(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_scan_yields_files_dirs_and_hidden_entries(self):
        (self.root / "folder" / "nested").mkdir(parents=True)
        (self.root / "folder" / "nested" / "file.txt").write_text("content")
        (self.root / ".hidden").write_text("secret")

        entries = list(scan_tree(self.root))
        paths = {e.path for e in entries}

        self.assertIn(str(self.root / "folder"), paths)
        self.assertIn(str(self.root / "folder" / "nested"), paths)
        self.assertIn(str(self.root / "folder" / "nested" / "file.txt"), paths)
        self.assertIn(str(self.root / ".hidden"), paths)
        # The target itself is never an entry
        self.assertNotIn(str(self.root), paths)

        by_path = {e.path: e for e in entries}
        self.assertTrue(by_path[str(self.root / "folder")].is_dir)
        self.assertFalse(by_path[str(self.root / ".hidden")].is_dir)
        self.assertEqual(by_path[str(self.root / ".hidden")].length, len(str(self.root / ".hidden")))

    def test_parents_are_discovered_before_children(self):
        (self.root / "a" / "b").mkdir(parents=True)
        (self.root / "a" / "b" / "c.txt").touch()

        entries = list(scan_tree(self.root))
        order = {e.path: e.index for e in entries}

        self.assertLess(order[str(self.root / "a")], order[str(self.root / "a" / "b")])
        self.assertLess(order[str(self.root / "a" / "b")], order[str(self.root / "a" / "b" / "c.txt")])
        self.assertEqual(sorted(order.values()), list(range(len(entries))))

    def test_symlinks_are_listed_but_not_followed(self):
        real = self.root / "real"
        real.mkdir()
        (real / "inside.txt").touch()
        link = self.root / "link"
        link.symlink_to(real, target_is_directory=True)

        entries = {e.path: e for e in scan_tree(self.root)}

        self.assertIn(str(link), entries)
        self.assertFalse(entries[str(link)].is_dir)
        self.assertNotIn(str(link / "inside.txt"), entries)
        self.assertIn(str(real / "inside.txt"), entries)

    def test_invalid_target_raises_before_scanning(self):
        with self.assertRaises(InvalidTarget):
            list(scan_tree(self.root / "missing"))

    def test_unreadable_subtree_is_reported_and_skipped(self):
        root = str(self.root)
        locked = os.path.join(root, "locked")

        def fake_walk(top, onerror=None, followlinks=False):
            yield top, ["locked", "open"], ["a.txt"]
            onerror(PermissionError(13, "Permission denied", locked))
            yield os.path.join(top, "open"), [], ["b.txt"]

        errors = []
        with patch("fix_lfp.scanner.os.walk", side_effect=fake_walk), \
             patch("fix_lfp.scanner.os.path.islink", return_value=False):
            entries = list(scan_tree(root, on_error=errors.append))

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], PermissionDenied)
        self.assertEqual(errors[0].path, locked)
        # The scan kept going after the error
        self.assertIn(os.path.join(root, "open", "b.txt"), {e.path for e in entries})

    @unittest.skipIf(hasattr(os, "geteuid") and os.geteuid() == 0, "root ignores directory permissions")
    def test_real_permission_error_does_not_abort(self):
        locked = self.root / "locked"
        locked.mkdir()
        (locked / "hidden.txt").touch()
        (self.root / "visible.txt").touch()
        locked.chmod(0)
        try:
            errors = []
            paths = {e.path for e in scan_tree(self.root, on_error=errors.append)}
        finally:
            locked.chmod(0o755)

        self.assertIn(str(self.root / "visible.txt"), paths)
        self.assertEqual(len(errors), 1)

    def test_progress_callback_is_called(self):
        (self.root / "a").mkdir()
        (self.root / "a" / "f.txt").touch()
        calls = []
        list(scan_tree(self.root, progress_callback=lambda count, path: calls.append((count, path))))
        self.assertTrue(calls)
        self.assertEqual(calls[-1][0], 2)


class TestLengthFilter(unittest.TestCase):
    def test_boundary_is_strict(self):
        self.assertFalse(is_long_path(ScanEntry("x", 376)))
        self.assertTrue(is_long_path(ScanEntry("x", 377)))

    def test_custom_threshold(self):
        self.assertTrue(is_long_path(ScanEntry("x", 11), threshold=10))
        self.assertFalse(is_long_path(ScanEntry("x", 10), threshold=10))

    def test_filter_keeps_only_long_entries(self):
        entries = [
            ScanEntry("/" + "a" * 375, 376, index=0),
            ScanEntry("/" + "b" * 376, 377, index=1),
            ScanEntry("/short", 6, index=2),
            ScanEntry("/" + "c" * 499, 500, index=3),
        ]
        kept = list(filter_long_paths(entries))
        self.assertEqual([e.index for e in kept], [1, 3])

    def test_length_units(self):
        path = "/café/\U0001F600"
        self.assertEqual(path_length(path, "chars"), 7)
        self.assertEqual(path_length(path, "utf8"), 11)
        self.assertEqual(path_length(path, "utf16"), 8)
        with self.assertRaises(ValueError):
            path_length(path, "bytes")


class TestListing(unittest.TestCase):
    def test_listing_preserves_entries_and_odd_names(self):
        entries = [
            ScanEntry("/t/dir", 6, True, 0),
            ScanEntry("/t/dir/line\nbreak.txt", 21, False, 1),
            ScanEntry("/t/café.txt", 12, False, 2),
        ]
        with tempfile.TemporaryFile("w+", encoding="utf-8", newline="") as handle:
            self.assertEqual(write_listing(entries, handle), 3)
            loaded = list(read_listing(handle, chunk_size=7))

        self.assertEqual([e.path for e in loaded], [e.path for e in entries])
        self.assertEqual([e.is_dir for e in loaded], [True, False, False])
        self.assertEqual([e.length for e in loaded], [len(e.path) for e in entries])


if __name__ == "__main__":
    unittest.main()
