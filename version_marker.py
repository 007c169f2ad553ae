# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
version_marker.py

Persistence of the state of a source tree.

The version file (e.g. download/linux-5.4.version) records the version the
source tree was fully patched to. It exists if and only if the tree was
completely materialized, and it is always written after the tree itself.

The journal file (e.g. download/linux-5.4.journal) records an upgrade that is in
progress. It is written before an upstream diff is applied and removed once the
version file has been updated, so that a run that died in the middle of an
upgrade can be told apart from a clean tree.
"""

import os

from color_logger import logger
from errors import BadVersionFormat, FilesystemError

JOURNAL_VERB = "begin-upgrade"

def _read_text(path) -> str:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError("read", path, e)

def _write_text(path, text):
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
    except OSError as e:
        raise FilesystemError("write", path, e)

class VersionMarker:
    def __init__(self, path, parse, render):
        """
        Args:
        -----
        - path (str): The path to the version file.
        - parse (callable): Turns the file contents into a version. Raises BadVersionFormat.
        - render (callable): Turns a version into the file contents.
        """
        self.path = path
        self.parse = parse
        self.render = render

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def read(self):
        """
        Loads the recorded version. Trailing whitespace is ignored.

        Raises:
        -------
        - BadVersionFormat: If the file is empty or does not hold a valid version.
        - FilesystemError: If the file cannot be read.
        """
        text = _read_text(self.path).rstrip()
        if not text:
            raise BadVersionFormat(text)
        version = self.parse(text)
        logger.debug(f"Version file {self.path} records version {self.render(version)}")
        return version

    def write(self, version):
        """
        Records 'version', without trailing newline.
        """
        logger.debug(f"Writing version {self.render(version)} to {self.path}")
        _write_text(self.path, self.render(version))

class UpgradeJournal:
    def __init__(self, path):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def begin(self, from_version: str, to_version: str):
        logger.trace(f"Journaling upgrade {from_version} -> {to_version} in {self.path}")
        _write_text(self.path, f"{JOURNAL_VERB} {from_version} {to_version}")

    def read(self):
        """
        Returns the (from, to) versions of the recorded upgrade, as strings.

        A journal that cannot be understood is reported with empty versions: it
        still proves that an upgrade was started.
        """
        fields = _read_text(self.path).split()
        if len(fields) != 3 or fields[0] != JOURNAL_VERB:
            logger.warning(f"Journal {self.path} is ill-formed")
            return "", ""
        return fields[1], fields[2]

    def clear(self):
        try:
            if os.path.exists(self.path):
                os.remove(self.path)
        except OSError as e:
            raise FilesystemError("remove", self.path, e)
