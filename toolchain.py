# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
toolchain.py

The cross-compilation toolchain of a target. It is distributed as a tarball,
downloaded and extracted in the download directory the first time it is needed.
"""

import os

from color_logger import logger
from decompress import strip_archive_suffix
from download import url_filename
from helpers import create_new_directory

class Toolchain:
    def __init__(self, url, cross_compile, download_dir, fetcher):
        """
        Args:
        -----
        - url (str): Where the toolchain tarball is published.
        - cross_compile (str): The prefix of the tools, relative to the extracted toolchain
                               (e.g. bin/arm-linux-gnueabihf-).
        - download_dir (str): Where the toolchain is downloaded and extracted.
        - fetcher (download.Fetcher): Access to the mirrors.
        """
        self.url = url
        self.download_dir = download_dir
        self.fetcher = fetcher
        self.target_dir = os.path.join(download_dir, strip_archive_suffix(url_filename(url)))
        self.cross_compile = os.path.join(self.target_dir, cross_compile)

    def fetch(self):
        """
        Downloads and extracts the toolchain, unless it already was.
        """
        if os.path.isdir(self.target_dir):
            logger.trace(f"Toolchain found at {self.target_dir}")
            return

        logger.info(f"Downloading toolchain from {self.url}")
        create_new_directory(self.download_dir)
        self.fetcher.download_and_unpack(self.url, self.download_dir, self.target_dir)

def new(config, fetcher) -> Toolchain:
    return Toolchain(config.toolchain.url, config.toolchain.cross_compile,
                     config.download_dir, fetcher)
