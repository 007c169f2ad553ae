# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
decompress.py

Decompression of the downloaded files: tarballs are extracted with tar, xz
compressed diffs are decoded with lzma.
"""

import os
import lzma
import shutil

from color_logger import logger
from constants import ARCHIVE_SUFFIXES
from errors import CommandFailed, ArchiveError, DecompressionFailed, FilesystemError, UnexpectedExtraction
from helpers import run_command

def strip_archive_suffix(name: str) -> str:
    """
    Returns 'name' without its archive extension (linux-5.4.tar.xz -> linux-5.4).
    """
    for suffix in ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return name

def untar(path, expected_dir=None) -> str:
    """
    Extracts a tarball next to it.

    Upstream tarballs (Linux, U-Boot, toolchains) contain a single top-level
    directory named after the archive, which is what this function relies on.

    Args:
    -----
    - path (str): The path to the tarball.
    - expected_dir (str): The directory the extraction must produce. Defaults to
                          the path of the archive stripped from its extensions.

    Returns:
    --------
    - str: The extracted directory.

    Raises:
    -------
    - ArchiveError: If tar fails.
    - UnexpectedExtraction: If the expected directory was not produced.
    """
    if not os.path.isfile(path):
        raise FilesystemError("open", path, "no such file")

    if expected_dir is None:
        expected_dir = strip_archive_suffix(path)

    logger.info(f"Decompressing {path}")
    try:
        run_command(["tar", "-C", os.path.dirname(path) or ".", "-xf", path])
    except CommandFailed as e:
        raise ArchiveError(f"Failed to extract '{path}': {e}")

    if not os.path.isdir(expected_dir):
        raise UnexpectedExtraction(path, expected_dir)
    return expected_dir

def xz(path) -> str:
    """
    Decodes an xz file into a sibling file stripped from the .xz extension.

    Returns:
    --------
    - str: The path to the decompressed file.

    Raises:
    -------
    - DecompressionFailed: If the file is not valid xz data.
    - FilesystemError: If a file cannot be opened or written.
    """
    out_path, _ = os.path.splitext(path)
    logger.debug(f"Decompressing {path} to {out_path}")

    try:
        source = lzma.open(path, 'rb')
    except OSError as e:
        raise FilesystemError("open", path, e)

    with source:
        try:
            with open(out_path, 'wb') as out:
                shutil.copyfileobj(source, out)
        except lzma.LZMAError as e:
            raise DecompressionFailed(path, e)
        except EOFError:
            raise DecompressionFailed(path, "truncated data")
        except OSError as e:
            raise FilesystemError("write", out_path, e)

    return out_path
