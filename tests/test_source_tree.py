import lzma
import os
import signal
import tempfile
import unittest
from unittest import mock

import source_tree
from config import ComponentConfig
from constants import EXIT_INTERRUPTED
from errors import BadVersionFormat, ConsistencyError, CorruptedSourceDir, InterruptedUpgrade, NotFetched, PatchFailed
from interrupt import Interrupt
from linux import LinuxComponent
from uboot import UbootComponent

MIRROR = "https://cdn.kernel.org/pub/linux/kernel/v5.x/"
BASE_ARCHIVE = MIRROR + "linux-5.4.tar.xz"
PATCH_1 = MIRROR + "patch-5.4.1.xz"
PATCH_2 = MIRROR + "incr/patch-5.4.1-2.xz"
PATCH_3 = MIRROR + "incr/patch-5.4.2-3.xz"


class FakeMirror:
    """Stands for the upstream mirror: only the published URLs can be found."""

    def __init__(self, published=()):
        self.published = set(published)
        self.probed = []
        self.downloaded = []

    def probe(self, url):
        self.probed.append(url)
        return url in self.published

    def download(self, url, path):
        self.downloaded.append(url)
        with open(path, "wb") as f:
            f.write(lzma.compress(url.encode()))

    def download_and_unpack(self, url, download_dir, expected_dir):
        self.downloaded.append(url)
        os.makedirs(expected_dir)
        with open(os.path.join(expected_dir, "Makefile"), "w") as f:
            f.write("VERSION = 5\n")
        return expected_dir


def snapshot(root):
    state = {}
    for dirpath, _, filenames in os.walk(root):
        for name in filenames:
            path = os.path.join(dirpath, name)
            with open(path, "rb") as f:
                state[os.path.relpath(path, root)] = f.read()
    return state


class TreeTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.root = self._tempdir.name
        self.download_dir = os.path.join(self.root, "download")
        self.build_root = os.path.join(self.root, "build")
        self.lib_dir = os.path.join(self.root, "library")
        os.makedirs(self.lib_dir)

        self.interrupt = Interrupt()
        self.applied = []
        self.patch_sets = []

        apply_patch = mock.patch("source_tree.apply_patch", side_effect=self._apply_patch)
        apply_patch_set = mock.patch("source_tree.apply_patch_set", side_effect=self._apply_patch_set)
        self.apply_patch_mock = apply_patch.start()
        self.apply_patch_set_mock = apply_patch_set.start()
        self.addCleanup(mock.patch.stopall)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _apply_patch(self, source_dir, diff):
        self.applied.append(os.path.basename(diff))

    def _apply_patch_set(self, patches_dir, source_dir):
        self.patch_sets.append(os.path.relpath(patches_dir, self.lib_dir))
        return []

    def linux_tree(self, mirror, config=None):
        component = LinuxComponent(ComponentConfig("5.4", config=config), "bbb")
        return source_tree.SourceTree(component, self.download_dir, self.build_root, self.lib_dir,
                                      self.interrupt, mirror)

    def materialize(self, version):
        source_dir = os.path.join(self.download_dir, "linux-5.4")
        os.makedirs(source_dir)
        with open(source_dir + ".version", "w") as f:
            f.write(version)

    def read_marker(self):
        with open(os.path.join(self.download_dir, "linux-5.4.version")) as f:
            return f.read()


class FreshFetchTests(TreeTestCase):
    def test_fresh_fetch_without_point_release(self) -> None:
        mirror = FakeMirror([BASE_ARCHIVE])
        tree = self.linux_tree(mirror)

        version = tree.fetch()

        self.assertTrue(os.path.isdir(os.path.join(self.download_dir, "linux-5.4")))
        self.assertEqual("5.4.0", self.read_marker())
        self.assertEqual("5.4.0", version.render())
        self.assertEqual([BASE_ARCHIVE], mirror.downloaded)
        self.assertEqual([PATCH_1], mirror.probed)
        self.assertEqual([os.path.join("patches", "linux", "5.4")], self.patch_sets)
        self.assertTrue(os.path.isdir(os.path.join(self.build_root, "linux-5.4-bbb")))

    def test_fresh_fetch_then_point_releases(self) -> None:
        mirror = FakeMirror([BASE_ARCHIVE, PATCH_1, PATCH_2])
        tree = self.linux_tree(mirror)

        tree.fetch()

        self.assertEqual("5.4.2", self.read_marker())
        self.assertEqual(["patch-5.4.1", "patch-5.4.1-2"], self.applied)
        self.assertEqual(
            [os.path.join("patches", "linux", v) for v in ("5.4", "5.4.1", "5.4.2")],
            self.patch_sets,
        )

    def test_corrupted_source_dir_is_refused(self) -> None:
        os.makedirs(os.path.join(self.download_dir, "linux-5.4"))
        mirror = FakeMirror([BASE_ARCHIVE, PATCH_1])
        tree = self.linux_tree(mirror)

        with self.assertRaises(CorruptedSourceDir):
            tree.fetch()

        self.assertEqual([], mirror.probed)
        self.assertEqual([], mirror.downloaded)

    def test_failed_local_patch_leaves_tree_corrupted(self) -> None:
        mirror = FakeMirror([BASE_ARCHIVE])
        tree = self.linux_tree(mirror)
        self.apply_patch_set_mock.side_effect = PatchFailed("0001-board.patch", tree.source_dir)

        with self.assertRaises(PatchFailed):
            tree.fetch()

        self.assertFalse(os.path.exists(tree.marker.path))
        with self.assertRaises(CorruptedSourceDir):
            self.linux_tree(mirror).fetch()

    def test_interrupt_during_fresh_fetch_is_serviced_after_marker(self) -> None:
        mirror = FakeMirror([BASE_ARCHIVE, PATCH_1])
        tree = self.linux_tree(mirror)

        def _interrupted(patches_dir, source_dir):
            self.interrupt.handle(signal.SIGINT)
            return []

        self.apply_patch_set_mock.side_effect = _interrupted

        with self.assertRaises(SystemExit) as ctx:
            tree.fetch()

        self.assertEqual(EXIT_INTERRUPTED, ctx.exception.code)
        self.assertEqual("5.4.0", self.read_marker())
        self.assertEqual([BASE_ARCHIVE], mirror.downloaded)
        self.assertEqual([], mirror.probed)
        self.assertFalse(self.interrupt.locked)

    def test_configuration_copied_on_fetch(self) -> None:
        config = os.path.join(self.lib_dir, "bbb.config")
        with open(config, "w") as f:
            f.write("CONFIG_ARM=y\n")
        tree = self.linux_tree(FakeMirror([BASE_ARCHIVE]), config=config)

        tree.fetch()

        with open(os.path.join(self.build_root, "linux-5.4-bbb", ".config")) as f:
            self.assertEqual("CONFIG_ARM=y\n", f.read())


class IncrementalFetchTests(TreeTestCase):
    def test_upgrade_from_base_to_second_point_release(self) -> None:
        self.materialize("5.4.0")
        mirror = FakeMirror([PATCH_1, PATCH_2])
        tree = self.linux_tree(mirror)

        tree.fetch()

        self.assertEqual("5.4.2", self.read_marker())
        self.assertEqual(["patch-5.4.1", "patch-5.4.1-2"], self.applied)
        self.assertEqual([PATCH_1, PATCH_2], mirror.downloaded)
        self.assertEqual([PATCH_1, PATCH_2, PATCH_3], mirror.probed)
        self.assertFalse(os.path.exists(tree.journal.path))
        self.assertTrue(os.path.isfile(os.path.join(self.download_dir, "patch-5.4.1")))

    def test_upstream_patch_applied_before_local_patches(self) -> None:
        self.materialize("5.4.0")
        calls = mock.Mock()
        self.apply_patch_mock.side_effect = lambda source, diff: calls.upstream(os.path.basename(diff))
        self.apply_patch_set_mock.side_effect = lambda d, s: calls.local(os.path.basename(d))

        self.linux_tree(FakeMirror([PATCH_1])).fetch()

        self.assertEqual([mock.call.upstream("patch-5.4.1"), mock.call.local("5.4.1")], calls.mock_calls)

    def test_second_fetch_is_a_no_op(self) -> None:
        self.materialize("5.4.0")
        tree = self.linux_tree(FakeMirror([PATCH_1]))
        tree.fetch()
        before = snapshot(self.root)

        mirror = FakeMirror([PATCH_1])
        self.linux_tree(mirror).fetch()

        self.assertEqual(before, snapshot(self.root))
        self.assertEqual([], mirror.downloaded)
        self.assertEqual([MIRROR + "incr/patch-5.4.1-2.xz"], mirror.probed)

    def test_failed_upgrade_keeps_previous_version(self) -> None:
        self.materialize("5.4.0")
        mirror = FakeMirror([PATCH_1, PATCH_2])
        tree = self.linux_tree(mirror)
        self.apply_patch_mock.side_effect = PatchFailed("patch-5.4.1", tree.source_dir)

        with self.assertRaises(PatchFailed):
            tree.fetch()

        self.assertEqual("5.4.0", self.read_marker())
        self.assertTrue(os.path.exists(tree.journal.path))

        retry = FakeMirror([PATCH_1, PATCH_2])
        with self.assertRaises(InterruptedUpgrade):
            self.linux_tree(retry).fetch()
        self.assertEqual([], retry.probed)

    def test_interrupt_during_upgrade_is_serviced_after_marker(self) -> None:
        self.materialize("5.4.0")
        mirror = FakeMirror([PATCH_1, PATCH_2])
        tree = self.linux_tree(mirror)

        def _interrupted(source, diff):
            self.interrupt.handle(signal.SIGINT)

        self.apply_patch_mock.side_effect = _interrupted

        with self.assertRaises(SystemExit) as ctx:
            tree.fetch()

        self.assertEqual(EXIT_INTERRUPTED, ctx.exception.code)
        self.assertEqual("5.4.1", self.read_marker())
        self.assertFalse(os.path.exists(tree.journal.path))
        self.assertEqual([PATCH_1], mirror.downloaded)

    def test_stale_journal_of_completed_upgrade_is_removed(self) -> None:
        self.materialize("5.4.1")
        with open(os.path.join(self.download_dir, "linux-5.4.journal"), "w") as f:
            f.write("begin-upgrade 5.4.0 5.4.1")
        tree = self.linux_tree(FakeMirror())

        tree.fetch()

        self.assertFalse(os.path.exists(tree.journal.path))
        self.assertEqual("5.4.1", self.read_marker())

    def test_marker_of_another_series_is_rejected(self) -> None:
        self.materialize("5.5.3")

        with self.assertRaises(ConsistencyError):
            self.linux_tree(FakeMirror()).fetch()

    def test_marker_without_point_release_is_rejected(self) -> None:
        self.materialize("5.4")
        mirror = FakeMirror([PATCH_1])

        with self.assertRaises(BadVersionFormat):
            self.linux_tree(mirror).fetch()
        self.assertEqual([], mirror.probed)

    def test_ill_formed_marker_is_rejected(self) -> None:
        self.materialize("5.4.")
        mirror = FakeMirror([PATCH_1])

        with self.assertRaises(ConsistencyError):
            self.linux_tree(mirror).fetch()
        self.assertEqual([], mirror.probed)


class CheckUpdateTests(TreeTestCase):
    def test_never_fetched_can_be_updated(self) -> None:
        mirror = FakeMirror()

        self.assertTrue(self.linux_tree(mirror).check_update())
        self.assertFalse(os.path.exists(self.download_dir))
        self.assertEqual([], mirror.probed)

    def test_update_available(self) -> None:
        self.materialize("5.4.0")

        self.assertTrue(self.linux_tree(FakeMirror([PATCH_1])).check_update())

    def test_nothing_to_do_touches_nothing(self) -> None:
        self.materialize("5.4.2")
        before = snapshot(self.root)
        mirror = FakeMirror()

        self.assertFalse(self.linux_tree(mirror).check_update())

        self.assertEqual([PATCH_3], mirror.probed)
        self.assertEqual(before, snapshot(self.root))

    def test_stale_journal_is_left_in_place(self) -> None:
        self.materialize("5.4.1")
        journal = os.path.join(self.download_dir, "linux-5.4.journal")
        with open(journal, "w") as f:
            f.write("begin-upgrade 5.4.0 5.4.1")

        self.assertFalse(self.linux_tree(FakeMirror()).check_update())
        self.assertTrue(os.path.exists(journal))


class ReconfigureTests(TreeTestCase):
    def test_reconfigure_is_idempotent(self) -> None:
        config = os.path.join(self.lib_dir, "bbb.config")
        with open(config, "w") as f:
            f.write("CONFIG_ARM=y\n")
        tree = self.linux_tree(FakeMirror(), config=config)
        destination = os.path.join(self.build_root, "linux-5.4-bbb", ".config")

        tree.reconfigure()
        with open(destination) as f:
            once = f.read()
        for _ in range(3):
            tree.reconfigure()

        with open(destination) as f:
            self.assertEqual(once, f.read())

    def test_no_configuration(self) -> None:
        tree = self.linux_tree(FakeMirror())

        tree.reconfigure()

        self.assertEqual([], os.listdir(tree.build_dir))

    def test_load_version_requires_fetch(self) -> None:
        with self.assertRaises(NotFetched):
            self.linux_tree(FakeMirror()).load_version()


class UbootTreeTests(TreeTestCase):
    ARCHIVE = "https://ftp.denx.de/pub/u-boot/u-boot-2020.04.tar.bz2"

    def uboot_tree(self, mirror):
        component = UbootComponent(ComponentConfig("2020.04"), "bbb")
        return source_tree.SourceTree(component, self.download_dir, self.build_root, self.lib_dir,
                                      self.interrupt, mirror)

    def test_fetch_downloads_release_once(self) -> None:
        mirror = FakeMirror([self.ARCHIVE])

        self.uboot_tree(mirror).fetch()
        self.uboot_tree(mirror).fetch()

        self.assertEqual([self.ARCHIVE], mirror.downloaded)
        self.assertEqual([], mirror.probed)
        with open(os.path.join(self.download_dir, "u-boot-2020.04.version")) as f:
            self.assertEqual("2020.04", f.read())
        self.assertEqual([os.path.join("patches", "uboot", "2020.04")], self.patch_sets)

    def test_no_update_once_fetched(self) -> None:
        mirror = FakeMirror([self.ARCHIVE])
        tree = self.uboot_tree(mirror)
        tree.fetch()

        self.assertFalse(tree.check_update())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
