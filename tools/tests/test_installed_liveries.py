import unittest
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import installed_liveries
from livery_common import InstallScanError
from logsetup import TRACE


class TestScanInstalledLiveries(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = self.tmp.name

    def mkdir(self, *parts):
        path = os.path.join(self.root, *parts)
        os.makedirs(path, exist_ok=True)
        return path

    def touch(self, *parts):
        path = os.path.join(self.root, *parts)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        open(path, "w").close()

    def test_livery_under_nested_liveries_dir(self):
        self.mkdir("CoreMods", "aircraft", "F-16C", "Liveries", "f-16c_50", "aggressor")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {"f-16c_50": {"aggressor"}})

    def test_names_are_lower_cased(self):
        self.mkdir("Bazar", "LIVERIES", "F-16C_50", "Aggressor")
        self.mkdir("Bazar", "LIVERIES", "F-16C_50", "AGGRESSOR")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {"f-16c_50": {"aggressor"}})

    def test_liveries_grouped_by_vehicle_type(self):
        self.mkdir("Mods", "aircraft", "A", "Liveries", "a-10c", "wolfhound")
        self.mkdir("Mods", "aircraft", "A", "Liveries", "a-10c", "default")
        self.mkdir("Bazar", "Liveries", "mi-8mt", "russia_vvs_grey")
        self.mkdir("Bazar", "Liveries", "a-10c", "grey")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {
            "a-10c": {"wolfhound", "default", "grey"},
            "mi-8mt": {"russia_vvs_grey"},
        })

    def test_only_exact_marker_name_counts(self):
        self.mkdir("Liveries_backup", "f-16c_50", "aggressor")
        self.mkdir("old-liveries", "f-16c_50", "aggressor")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {})

    def test_vehicle_dir_without_liveries_is_still_recorded(self):
        self.mkdir("Liveries", "mig-29a")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {"mig-29a": set()})

    def test_files_are_skipped(self):
        self.touch("Liveries", "readme.txt")
        self.touch("Liveries", "f-16c_50", "notes.txt")
        self.touch("Liveries", "f-16c_50", "aggressor", "description.lua")
        self.touch("stray.txt")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {"f-16c_50": {"aggressor"}})

    def test_no_recursion_below_liveries_dir(self):
        self.mkdir("Liveries", "f-16c_50", "aggressor", "Liveries", "a-10c", "hidden")
        self.assertEqual(installed_liveries.scan_installed_liveries(self.root), {"f-16c_50": {"aggressor"}})

    def test_root_itself_can_be_liveries_dir(self):
        liveries_dir = self.mkdir("Liveries")
        self.mkdir("Liveries", "f-16c_50", "aggressor")
        self.assertEqual(installed_liveries.scan_installed_liveries(liveries_dir), {"f-16c_50": {"aggressor"}})

    def test_missing_root_is_empty(self):
        self.assertEqual(installed_liveries.scan_installed_liveries(os.path.join(self.root, "nope")), {})

    def test_file_root_is_empty(self):
        self.touch("file.txt")
        self.assertEqual(installed_liveries.scan_installed_liveries(os.path.join(self.root, "file.txt")), {})

    def test_scan_is_repeatable(self):
        self.mkdir("Liveries", "f-16c_50", "aggressor")
        first = installed_liveries.scan_installed_liveries(self.root)
        self.assertEqual(first, installed_liveries.scan_installed_liveries(self.root))

    def test_trace_logs_stock_liveries(self):
        self.mkdir("Liveries", "f-16c_50", "aggressor")
        with self.assertLogs("installed_liveries", level=TRACE) as cm:
            installed_liveries.scan_installed_liveries(self.root)
        self.assertTrue(any("Found stock livery" in line and "aggressor" in line for line in cm.output))

    def test_listing_failure_aborts_scan(self):
        self.mkdir("Liveries", "f-16c_50", "aggressor")
        with patch("installed_liveries.os.scandir", side_effect=PermissionError("denied")):
            with self.assertRaises(InstallScanError) as cm:
                installed_liveries.scan_installed_liveries(self.root)
        self.assertTrue(str(cm.exception).startswith("couldn't read "))
        self.assertIsInstance(cm.exception.__cause__, PermissionError)

    def test_unreadable_child_aborts_scan(self):
        self.mkdir("Mods", "locked", "inner", "Liveries", "f-16c_50", "aggressor")
        real_is_dir = Path.is_dir

        def is_dir(path, *args, **kwargs):
            if path.name == "inner":
                raise PermissionError(13, "Permission denied", str(path))
            return real_is_dir(path, *args, **kwargs)

        with patch.object(Path, "is_dir", autospec=True, side_effect=is_dir):
            with self.assertRaises(InstallScanError) as cm:
                installed_liveries.scan_installed_liveries(self.root)
        self.assertEqual(str(cm.exception), f"couldn't read {os.path.join(self.root, 'Mods', 'locked', 'inner')}")
        self.assertIsInstance(cm.exception.__cause__, PermissionError)

    def test_unsearchable_install_root_aborts_scan(self):
        root = os.path.join(self.root, "DCS")
        with patch.object(Path, "is_dir", side_effect=PermissionError(13, "Permission denied")):
            with self.assertRaises(InstallScanError):
                installed_liveries.scan_install_roots([root])


class TestScanInstallRoots(unittest.TestCase):

    def test_roots_are_merged(self):
        with tempfile.TemporaryDirectory() as game, tempfile.TemporaryDirectory() as saved_games:
            os.makedirs(os.path.join(game, "Bazar", "Liveries", "f-16c_50", "default"))
            os.makedirs(os.path.join(saved_games, "Liveries", "f-16c_50", "aggressor"))
            os.makedirs(os.path.join(saved_games, "Liveries", "a-10c", "grey"))
            merged = installed_liveries.scan_install_roots([game, saved_games, os.path.join(game, "missing")])
        self.assertEqual(merged, {"f-16c_50": {"default", "aggressor"}, "a-10c": {"grey"}})


if __name__ == "__main__":
    unittest.main()
