# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
pack_deb.py

Debian packaging of the Linux kernel.

The kernel build system produces the linux-image-<version> package. On top of
it, a meta-package named after the kernel series and the target
(linux-image-<major>.<minor>-<target>) is generated. It depends on the exact
kernel image, so that upgrading the meta-package rolls the target to the latest
point release of its series.
"""

import os
import shutil

from color_logger import logger
from errors import CommandFailed, DebFailed, FilesystemError, PackageNotProduced
from helpers import run_command, create_new_directory

CONTROL_TEMPLATE = """Package: {package}
Architecture: {arch}
Maintainer: {maintainer}
Description: Linux kernel, version {series}.z for {target_name}
 This is a meta-package allowing to manage updates of the Linux kernel
 for the {target_name}
Depends: linux-image-{version}
Version: {version}
Section: custom/kernel
Priority: required
"""

def image_package_name(version, revision, debian_arch) -> str:
    """
    Returns the file name of the kernel image package built by make bindeb-pkg,
    e.g. linux-image-5.4.38_1_armhf.deb.
    """
    return f"linux-image-{version}_{revision}_{debian_arch}.deb"

def meta_package_name(series, target) -> str:
    return f"linux-image-{series}-{target}"

def render_control(package, arch, maintainer, version, series, target_name) -> str:
    """
    Renders the DEBIAN/control file of the meta-package.

    Args:
    -----
    - package (str): The name of the meta-package.
    - arch (str): The Debian architecture.
    - maintainer (str): The maintainer of the package.
    - version (str): The full kernel version (X.Y.Z). The meta-package has the same version.
    - series (str): The kernel series (X.Y).
    - target_name (str): The human readable name of the target.
    """
    return CONTROL_TEMPLATE.format(package=package, arch=arch, maintainer=maintainer,
                                   version=version, series=series, target_name=target_name)

def collect_image_package(build_dir, file_name, pkg_dir) -> str:
    """
    Moves the kernel image package into the packages directory.

    make bindeb-pkg writes the packages in the parent of the build tree.

    Returns:
    --------
    - str: The new path of the package.

    Raises:
    -------
    - PackageNotProduced: If the package cannot be found.
    """
    source = os.path.join(os.path.dirname(os.path.normpath(build_dir)), file_name)
    destination = os.path.join(pkg_dir, file_name)

    if not os.path.isfile(source):
        if os.path.isfile(destination):
            return destination
        raise PackageNotProduced(source)

    create_new_directory(pkg_dir)
    try:
        shutil.move(source, destination)
    except OSError as e:
        raise FilesystemError("move", source, e)
    logger.debug(f"Moved {source} to {destination}")
    return destination

def build_meta_package(pkg_dir, package, control) -> str:
    """
    Creates the meta-package in 'pkg_dir' with dpkg-deb.

    Args:
    -----
    - pkg_dir (str): The packaging directory.
    - package (str): The name of the package. Its staging directory is <pkg_dir>/<package>.
    - control (str): The contents of DEBIAN/control.

    Returns:
    --------
    - str: The path to the created .deb file.

    Raises:
    -------
    - DebFailed: If dpkg-deb fails.
    - PackageNotProduced: If dpkg-deb did not create the expected file.
    """
    deb_dir = os.path.join(pkg_dir, package, "DEBIAN")
    create_new_directory(deb_dir)

    control_path = os.path.join(deb_dir, "control")
    try:
        with open(control_path, 'w', encoding='utf-8') as f:
            f.write(control)
    except OSError as e:
        raise FilesystemError("write", control_path, e)

    try:
        run_command(["dpkg-deb", "--build", package], cwd=pkg_dir, capture_output=True)
    except CommandFailed as e:
        if e.returncode is None:
            raise
        raise DebFailed(package, e.returncode)

    result = os.path.join(pkg_dir, f"{package}.deb")
    if not os.path.isfile(result):
        raise PackageNotProduced(result)

    logger.info(f"Package {result} created")
    return result
