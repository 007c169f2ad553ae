# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
linux.py

Management of the Linux kernel: fetching the sources of a kernel series from
kernel.org and keeping them at the latest point release, building them, and
packaging the result for Debian.
"""

import os

import toolchain as toolchain_mod
from builder import ComponentBuilder, run_make
from color_logger import logger
from constants import LINUX_MIRROR, LINUX_ARCHIVE_SUFFIX, KDEB_PKGVERSION, DEB_MAKE_TARGET, PACKAGES_DIR, MAINTAINER_ENV
from errors import BadVersionFormat, ConsistencyError, MissingComponent
from helpers import create_new_directory, get_maintainer
from kernel_version import Version, parse_version, next_patch
from pack_deb import image_package_name, meta_package_name, render_control, collect_image_package, build_meta_package
from source_tree import Component, SourceTree

class LinuxComponent(Component):
    name = "linux"

    def __init__(self, settings, target):
        """
        Args:
        -----
        - settings (config.ComponentConfig): The [linux] section of the target description.
        - target (str): The stem of the target.
        """
        parsed = parse_version(settings.version)
        if parsed.micro:
            logger.warning(f"Linux version {settings.version} names a point release. "
                           f"Series {parsed.series} will be tracked instead")
        self.series_version = Version(parsed.major, parsed.minor)
        self.target = target
        self.settings = settings
        self.mirror = settings.mirror or LINUX_MIRROR.format(major=parsed.major)
        if not self.mirror.endswith('/'):
            self.mirror += '/'

    @property
    def series(self) -> str:
        return self.series_version.series

    @property
    def source_dirname(self) -> str:
        return f"linux-{self.series}"

    @property
    def build_dirname(self) -> str:
        return f"linux-{self.series}-{self.target}"

    @property
    def config_file(self):
        return self.settings.config

    def base_archive_url(self) -> str:
        return f"{self.mirror}linux-{self.series}{LINUX_ARCHIVE_SUFFIX}"

    def initial_version(self):
        return self.series_version

    def parse_version(self, text):
        # Version files always record the point release.
        if text.count('.') != 2:
            raise BadVersionFormat(text)
        version = parse_version(text)
        if version.series != self.series:
            raise ConsistencyError(f"Version {text} does not belong to the Linux {self.series} series")
        return version

    def render_version(self, version) -> str:
        return version.render()

    def next_patch(self, version):
        return next_patch(version, self.mirror)

    def next_version(self, version):
        return version.bump()

    def patches_dir(self, library, version) -> str:
        return os.path.join(library, "patches", "linux", version.render(full=False))

class Linux(ComponentBuilder):
    def __init__(self, tree, toolchain, arch, jobs, debian_arch, target, target_name, build_root):
        super().__init__(tree, toolchain, arch, jobs)
        self.debian_arch = debian_arch
        self.target = target
        self.target_name = target_name
        self.pkg_dir = os.path.join(build_root, PACKAGES_DIR)

    def debpkg(self):
        """
        Builds the kernel image package and its meta-package.

        Returns:
        --------
        - list: The path to the kernel image package, then the path to the meta-package.

        Raises:
        -------
        - MissingMaintainer: If MAINTAINER is not set.
        - NotFetched: If the sources were never fetched.
        - MakeFailed, DebFailed, PackageNotProduced: If a package cannot be built.
        """
        maintainer = get_maintainer(MAINTAINER_ENV)
        version = self.tree.load_version()
        self.toolchain.fetch()

        run_make(self.tree.source_dir, self.tree.build_dir, self.arch,
                 self.toolchain.cross_compile, self.jobs, DEB_MAKE_TARGET,
                 [f"KDEB_PKGVERSION={KDEB_PKGVERSION}"])

        create_new_directory(self.pkg_dir)
        image = collect_image_package(self.tree.build_dir,
                                      image_package_name(version.render(), KDEB_PKGVERSION, self.debian_arch),
                                      self.pkg_dir)

        package = meta_package_name(version.series, self.target)
        control = render_control(package, self.debian_arch, maintainer,
                                 version.render(), version.series, self.target_name)
        meta = build_meta_package(self.pkg_dir, package, control)

        return [image, meta]

def new(config, interrupt, fetcher) -> Linux:
    """
    Creates the Linux agent of the configured target.

    Raises:
    -------
    - MissingComponent: If the target does not describe a Linux kernel.
    """
    if config.linux is None:
        raise MissingComponent("linux", os.path.join(config.lib_dir, "targets", f"{config.target}.toml"))

    component = LinuxComponent(config.linux, config.target)
    tree = SourceTree(component, config.download_dir, config.build_dir, config.lib_dir, interrupt, fetcher)
    return Linux(tree, toolchain_mod.new(config, fetcher), config.toolchain.linux_arch, config.jobs,
                 config.toolchain.debian_arch, config.target, config.target_name, config.build_dir)
