# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
patches.py

Application of diffs to source trees with the patch utility.
"""

import os

from color_logger import logger
from errors import CommandFailed, PatchFailed
from helpers import run_command, list_directory

def apply_patch(source_dir, diff):
    """
    Applies a single diff (-p1) to a source tree.

    Raises:
    -------
    - PatchFailed: If patch cannot be run or reports an error.
    """
    logger.debug(f"Applying patch {diff} on {source_dir}")
    try:
        run_command(["patch", "-s", "-p1", "-i", os.path.abspath(diff)], cwd=source_dir)
    except CommandFailed as e:
        logger.debug(str(e))
        raise PatchFailed(diff, source_dir)

def apply_patch_set(patches_dir, source_dir):
    """
    Applies every diff of a directory to a source tree, in lexical order.

    A missing directory is an empty set of patches. Entries that are not regular
    files are ignored.

    Args:
    -----
    - patches_dir (str): The directory containing the diffs.
    - source_dir (str): The source tree to patch.

    Returns:
    --------
    - list: The paths of the diffs that were applied.

    Raises:
    -------
    - PatchFailed: As soon as one diff does not apply. The remaining ones are not tried.
    """
    if not os.path.isdir(patches_dir):
        logger.trace(f"No patches directory {patches_dir}")
        return []

    applied = []
    for entry in list_directory(patches_dir):
        path = os.path.join(patches_dir, entry)
        if not os.path.isfile(path):
            continue
        logger.info(f"Applying local patch {entry}")
        apply_patch(source_dir, path)
        applied.append(path)

    return applied
