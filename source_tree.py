# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
source_tree.py

Lifecycle of a source tree in the download directory.

A source tree is fetched once from an upstream base archive, then kept up to
date by applying the upstream point-release patches one after the other. After
each upstream patch, the local patches of the library for the reached version
are applied. The version the tree was brought to is recorded in a version file,
always written last, and only after the tree has been fully patched:

    no version file, no sources     the tree was never fetched
    version file                    the tree matches the recorded version
    sources without version file    a previous run died while preparing the
                                    tree; nothing can be trusted any more

Every mutation of the sources happens inside an interrupt guard, so CTRL-C can
only stop the program between two complete versions. Upstream upgrades are also
journaled, so that a run that died during an upgrade is detected next time.
"""

import os

from color_logger import logger
from decompress import xz
from errors import CorruptedSourceDir, InterruptedUpgrade, NotFetched
from helpers import copy_file, create_new_directory
from patches import apply_patch, apply_patch_set
from version_marker import VersionMarker, UpgradeJournal

class Component:
    """
    What the lifecycle of a source tree needs to know about the sources it manages.
    """

    name = None

    @property
    def source_dirname(self) -> str:
        """Name of the source tree, and stem of its version and journal files."""
        raise NotImplementedError

    @property
    def build_dirname(self) -> str:
        raise NotImplementedError

    @property
    def config_file(self):
        """Pre-canned build configuration to copy in the build tree, or None."""
        return None

    def base_archive_url(self) -> str:
        raise NotImplementedError

    def initial_version(self):
        """Version of the tree right after the base archive is extracted."""
        raise NotImplementedError

    def parse_version(self, text):
        raise NotImplementedError

    def render_version(self, version) -> str:
        return str(version)

    def next_patch(self, version):
        """
        Returns (url, filename) of the upstream patch that upgrades 'version',
        or None if the component is never upgraded.
        """
        return None

    def next_version(self, version):
        raise NotImplementedError

    def patches_dir(self, library, version) -> str:
        """Directory of the local patches to apply once 'version' is reached."""
        raise NotImplementedError

class SourceTree:
    def __init__(self, component, download_dir, build_root, lib_dir, interrupt, fetcher):
        """
        Args:
        -----
        - component (Component): The sources to manage.
        - download_dir (str): Where archives are downloaded and sources extracted.
        - build_root (str): The build directory. The build tree of the component is created in it.
        - lib_dir (str): The TCB library, holding the local patches.
        - interrupt (interrupt.Interrupt): Guards the mutations of the sources.
        - fetcher (download.Fetcher): Access to the upstream mirrors.
        """
        self.component = component
        self.download_dir = download_dir
        self.lib_dir = lib_dir
        self.interrupt = interrupt
        self.fetcher = fetcher

        self.source_dir = os.path.join(download_dir, component.source_dirname)
        self.build_dir = os.path.join(build_root, component.build_dirname)
        self.marker = VersionMarker(self.source_dir + ".version",
                                    component.parse_version, component.render_version)
        self.journal = UpgradeJournal(self.source_dir + ".journal")
        self.version = component.initial_version()

    def _render(self, version) -> str:
        return self.component.render_version(version)

    def load_version(self):
        """
        Loads the version the sources were brought to. The sources must have been fetched.

        Raises:
        -------
        - NotFetched: If there is no version file.
        - BadVersionFormat: If the version file is not valid.
        """
        if not self.marker.exists():
            raise NotFetched(self.source_dir)
        self.version = self.marker.read()
        return self.version

    def _check_journal(self, read_only=False):
        """
        Makes sure no upstream upgrade was left unfinished by a previous run.

        A journal whose target version is the recorded version is a leftover of a
        run that stopped right after completing its upgrade: it is removed, unless
        'read_only' is set.

        Raises:
        -------
        - InterruptedUpgrade: If an upgrade was started and never completed.
        """
        if not self.journal.exists():
            return

        from_version, to_version = self.journal.read()
        if to_version and self.marker.exists() and self._render(self.marker.read()) == to_version:
            if not read_only:
                logger.debug(f"Upgrade to {to_version} was completed. Removing {self.journal.path}")
                self.journal.clear()
            return

        raise InterruptedUpgrade(self.source_dir, self.journal.path,
                                 f"upgrade from {from_version or '?'} to {to_version or '?'}")

    def check_update(self) -> bool:
        """
        Checks whether the sources can be upgraded. Never modifies anything.

        If the sources were never fetched, they can technically be updated (from
        nothing to something).
        """
        if not self.marker.exists():
            return True

        self._check_journal(read_only=True)
        version = self.load_version()
        patch = self.component.next_patch(version)
        if patch is None:
            return False

        url, _ = patch
        return self.fetcher.probe(url)

    def reconfigure(self):
        """
        Copies the build configuration of the target (if any) in the build tree,
        which is created if needed.
        """
        create_new_directory(self.build_dir)
        config_file = self.component.config_file
        if config_file is None:
            logger.debug("No configuration selected")
            return

        destination = os.path.join(self.build_dir, ".config")
        logger.info(f"Copying configuration {config_file} to {destination}")
        copy_file(config_file, destination)

    def fetch(self):
        """
        Brings the sources to the latest published version, then returns it.

        Raises:
        -------
        - CorruptedSourceDir: If the sources exist without a version file.
        - InterruptedUpgrade: If a previous upgrade did not complete.
        - MktcbError: On any download, extraction or patch failure.
        """
        self._check_journal()

        if not self.marker.exists():
            if os.path.exists(self.source_dir):
                raise CorruptedSourceDir(self.source_dir, self.marker.path)
            logger.info(f"File {self.marker.path} not found. Downloading {self.component.name} archive...")
            self._download_archive()
        else:
            self.load_version()

        while True:
            patch = self.component.next_patch(self.version)
            if patch is None:
                break

            url, filename = patch
            if not self.fetcher.probe(url):
                break
            self._upgrade(url, filename)

        logger.info(f"Last version: {self._render(self.version)}")
        return self.version

    def _download_archive(self):
        create_new_directory(self.download_dir)
        self.fetcher.download_and_unpack(self.component.base_archive_url(),
                                         self.download_dir, self.source_dir)

        # From here, the sources are modified. An interruption before the version
        # file is written would leave them in a state nobody can tell.
        version = self.component.initial_version()
        with self.interrupt.lock():
            self.reconfigure()
            apply_patch_set(self.component.patches_dir(self.lib_dir, version), self.source_dir)
            self.marker.write(version)
        self.version = version

    def _upgrade(self, url, filename):
        current = self.version
        target = self.component.next_version(current)
        logger.info(f"Upgrading from version {self._render(current)}")

        path = os.path.join(self.download_dir, filename)
        self.fetcher.download(url, path)
        diff = xz(path)

        with self.interrupt.lock():
            self.journal.begin(self._render(current), self._render(target))
            apply_patch(self.source_dir, diff)
            apply_patch_set(self.component.patches_dir(self.lib_dir, target), self.source_dir)
            self.marker.write(target)
            self.journal.clear()
        self.version = target
