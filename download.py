# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
download.py

HTTP access to the upstream mirrors: probing whether a file is published, and
downloading files with a progress indicator.
"""

import os
import time
from urllib.parse import urlparse

import requests

from color_logger import logger
from constants import SUCCESS_CODES, HTTP_TIMEOUT, DOWNLOAD_CHUNK_SIZE
from decompress import untar
from errors import DownloadFailed, FilesystemError, NetworkError

def url_filename(url: str) -> str:
    """
    Returns the last path component of 'url'.

    Raises:
    -------
    - NetworkError: If the URL has no path component to name a file after.
    """
    name = os.path.basename(urlparse(url).path)
    if not name:
        raise NetworkError(f"Cannot extract a file name from URL '{url}'")
    return name

def format_bytes(value) -> str:
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    if value >= 10 or unit_index == 0:
        return f"{value:.0f} {units[unit_index]}"
    return f"{value:.1f} {units[unit_index]}"

def format_duration(seconds) -> str:
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

def format_progress(downloaded, total, elapsed) -> str:
    """
    Renders a progress line: bytes so far / total bytes, and the estimated time left.
    """
    if not total:
        return f"{format_bytes(downloaded)} ({format_duration(elapsed)} elapsed)"

    percent = downloaded * 100 // total
    if downloaded and elapsed > 0:
        speed = downloaded / elapsed
        eta = format_duration(max(total - downloaded, 0) / speed)
    else:
        eta = "--:--:--"
    return f"{format_bytes(downloaded)}/{format_bytes(total)} {percent}% (eta {eta})"

class Fetcher:
    def __init__(self, session=None, timeout=HTTP_TIMEOUT):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def probe(self, url: str) -> bool:
        """
        Checks whether a file is available at 'url'.

        Only a hit (200, or 226 for FTP mirrors) counts as available. Anything
        else, including network errors, is considered as "not available": a probe
        must never make up an update. Actual failures will be reported when
        downloading.
        """
        logger.debug(f"Checking if a file is available at {url}")
        try:
            response = self.session.head(url, allow_redirects=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"Request to {url} failed: {e}")
            return False

        logger.trace(f"{url} answered {response.status_code}")
        return response.status_code in SUCCESS_CODES

    def download(self, url: str, path):
        """
        Downloads 'url' to 'path', creating or truncating it.

        Raises:
        -------
        - DownloadFailed: If the server does not answer with a success code.
        - NetworkError: If the transfer fails.
        - FilesystemError: If the destination cannot be written.
        """
        logger.info(f"Downloading file from {url}")
        try:
            out = open(path, 'wb')
        except OSError as e:
            raise FilesystemError("create", path, e)

        with out:
            try:
                with self.session.get(url, stream=True, timeout=self.timeout) as response:
                    if response.status_code not in SUCCESS_CODES:
                        raise DownloadFailed(url, response.status_code)
                    self._write_body(response, out, path)
            except requests.RequestException as e:
                raise NetworkError(f"Request to '{url}' failed: {e}")

    def _write_body(self, response, out, path):
        try:
            total = int(response.headers.get("Content-Length", 0))
        except ValueError:
            total = 0

        start_time = time.monotonic()
        last_report = start_time
        downloaded = 0

        for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
            try:
                out.write(chunk)
            except OSError as e:
                raise FilesystemError("write", path, e)
            downloaded += len(chunk)

            now = time.monotonic()
            if now - last_report >= 1.0:
                logger.info(format_progress(downloaded, total, now - start_time))
                last_report = now

        logger.info(format_progress(downloaded, total, time.monotonic() - start_time))

    def download_and_unpack(self, url: str, download_dir, expected_dir) -> str:
        """
        Downloads a tarball into 'download_dir' and extracts it there.

        Returns:
        --------
        - str: The extracted directory, which is 'expected_dir'.
        """
        path = os.path.join(download_dir, url_filename(url))
        self.download(url, path)
        return untar(path, expected_dir)
