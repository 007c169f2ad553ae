# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
kernel_version.py

Parsing and rendering of Linux kernel versions (MAJOR.MINOR[.MICRO]), and the
naming rules that derive from them: source directories, local patch
directories and the URLs of the incremental patches published on kernel.org.
"""

from dataclasses import dataclass

from errors import BadVersionFormat

@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int
    micro: int = 0

    def __str__(self):
        return self.render()

    @property
    def series(self) -> str:
        """
        The MAJOR.MINOR form, which names the source tree and the base archive.
        """
        return f"{self.major}.{self.minor}"

    def render(self, full=True) -> str:
        """
        Renders the version.

        Args:
        -----
        - full (bool): If True, always renders three fields. Otherwise the micro
                       field is omitted when it is zero.
        """
        if full or self.micro:
            return f"{self.major}.{self.minor}.{self.micro}"
        return self.series

    def bump(self) -> "Version":
        """
        Returns the next point release of the same series.
        """
        return Version(self.major, self.minor, self.micro + 1)

def parse_version(text: str) -> Version:
    """
    Parses a version as found in target descriptions (X.Y) or in version files (X.Y.Z).

    Args:
    -----
    - text (str): The version string.

    Returns:
    --------
    - Version: The parsed version. The micro field defaults to 0.

    Raises:
    -------
    - BadVersionFormat: If a field is missing, empty or not a decimal number, or if the major is 0.
    """
    fields = text.split('.')
    if len(fields) not in (2, 3):
        raise BadVersionFormat(text)

    numbers = []
    for field in fields:
        if not field.isdigit() or not field.isascii():
            raise BadVersionFormat(text)
        numbers.append(int(field))

    if numbers[0] < 1:
        raise BadVersionFormat(text)

    return Version(*numbers)

def next_patch(version: Version, base_url: str):
    """
    Computes where the patch bumping 'version' to the next point release is published.

    The first point release of a series is a patch against the base release
    (patch-X.Y.1.xz). The following ones are incremental patches between two
    point releases (incr/patch-X.Y.Z-Z+1.xz).

    Args:
    -----
    - version (Version): The version currently materialized.
    - base_url (str): The directory of the series on the mirror, ending with a slash.

    Returns:
    --------
    - tuple: (url, filename). The filename is also the name of the downloaded file.
    """
    if not base_url.endswith('/'):
        base_url += '/'

    if version.micro == 0:
        filename = f"patch-{version.series}.1.xz"
        return base_url + filename, filename

    filename = f"patch-{version.render()}-{version.micro + 1}.xz"
    return base_url + "incr/" + filename, filename
