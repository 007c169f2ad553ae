# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
builder.py

Drives make in a source tree, with the build artifacts going to a separate
build tree (O=) and the target toolchain.
"""

from color_logger import logger
from errors import CommandFailed, MakeFailed
from helpers import run_command

def make_command(source_dir, build_dir, arch, cross_compile, jobs, make_target, extra_args=()):
    """
    Composes the make command line.

    Returns:
    --------
    - list: make -C <source> -j<jobs> O=<build> ARCH=<arch> CROSS_COMPILE=<prefix> [extra] -- <target>
    """
    return ["make",
            "-C", source_dir,
            f"-j{jobs}",
            f"O={build_dir}",
            f"ARCH={arch}",
            f"CROSS_COMPILE={cross_compile}",
            *extra_args,
            "--", make_target]

def run_make(source_dir, build_dir, arch, cross_compile, jobs, make_target, extra_args=()):
    """
    Runs a make target. The output of make goes straight to the terminal.

    Raises:
    -------
    - MakeFailed: If make reports an error.
    - CommandFailed: If make cannot be started.
    """
    command = make_command(source_dir, build_dir, arch, cross_compile, jobs, make_target, extra_args)
    logger.info(f"Running make target '{make_target}'")
    try:
        run_command(command)
    except CommandFailed as e:
        if e.returncode is None:
            raise
        raise MakeFailed(make_target, e.returncode)

class ComponentBuilder:
    """
    Operations shared by every component: fetching the sources, configuring and
    building them.
    """

    def __init__(self, tree, toolchain, arch, jobs):
        self.tree = tree
        self.toolchain = toolchain
        self.arch = arch
        self.jobs = jobs

    def fetch(self):
        return self.tree.fetch()

    def reconfigure(self):
        self.tree.reconfigure()

    def check_update(self) -> bool:
        return self.tree.check_update()

    def make(self, make_target, extra_args=()):
        """
        Runs a make target on the fetched sources.

        Raises:
        -------
        - NotFetched: If the sources were never fetched.
        """
        self.tree.load_version()
        self.toolchain.fetch()
        run_make(self.tree.source_dir, self.tree.build_dir, self.arch,
                 self.toolchain.cross_compile, self.jobs, make_target, extra_args)
