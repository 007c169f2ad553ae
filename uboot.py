# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
uboot.py

Management of the U-Boot bootloader. U-Boot releases are not upgraded with
incremental patches: the sources of a release are fetched once, then patched
with the local patches of the library.
"""

import os

import toolchain as toolchain_mod
from builder import ComponentBuilder
from constants import UBOOT_MIRROR, UBOOT_ARCHIVE_SUFFIX
from errors import ConsistencyError, MissingComponent
from source_tree import Component, SourceTree

class UbootComponent(Component):
    name = "u-boot"

    def __init__(self, settings, target):
        self.version = settings.version
        self.settings = settings
        self.target = target
        self.mirror = settings.mirror or UBOOT_MIRROR
        if not self.mirror.endswith('/'):
            self.mirror += '/'

    @property
    def source_dirname(self) -> str:
        return f"u-boot-{self.version}"

    @property
    def build_dirname(self) -> str:
        return f"u-boot-{self.version}-{self.target}"

    @property
    def config_file(self):
        return self.settings.config

    def base_archive_url(self) -> str:
        return f"{self.mirror}u-boot-{self.version}{UBOOT_ARCHIVE_SUFFIX}"

    def initial_version(self):
        return self.version

    def parse_version(self, text):
        if text != self.version:
            raise ConsistencyError(f"Version file records U-Boot {text}, but {self.version} is expected")
        return text

    def patches_dir(self, library, version) -> str:
        return os.path.join(library, "patches", "uboot", version)

class Uboot(ComponentBuilder):
    pass

def new(config, interrupt, fetcher) -> Uboot:
    """
    Creates the U-Boot agent of the configured target.

    Raises:
    -------
    - MissingComponent: If the target does not describe a U-Boot.
    """
    if config.uboot is None:
        raise MissingComponent("uboot", os.path.join(config.lib_dir, "targets", f"{config.target}.toml"))

    component = UbootComponent(config.uboot, config.target)
    tree = SourceTree(component, config.download_dir, config.build_dir, config.lib_dir, interrupt, fetcher)
    return Uboot(tree, toolchain_mod.new(config, fetcher), config.toolchain.uboot_arch, config.jobs)
