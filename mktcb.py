#!/usr/bin/env python3
# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
mktcb.py

Builds the Trusted Computing Base (TCB) of an embedded target: the Linux kernel
and the U-Boot bootloader. It handles the following tasks:
- Fetches the sources from the upstream mirrors and keeps them at the latest point release.
- Applies the local patches of the TCB library.
- Copies the build configuration of the target in a separate build directory.
- Runs make targets with the toolchain of the target.
- Packages the kernel for Debian, along with a meta-package for rolling upgrades.

Usage:
------
    mktcb -t <target> linux --fetch
    mktcb -t <target> linux --check-update
    mktcb -t <target> linux --make zImage
    mktcb -t <target> linux --debpkg packages.txt
    mktcb -t <target> uboot --fetch --make u-boot.img

Exit status: 0 on success, 2 on error, 3 if logging cannot be set up, 100 when
--check-update finds no update.
"""

import sys
import logging
import argparse

import linux
import uboot
from color_logger import logger, TRACE
from config import load_config
from constants import EXIT_SUCCESS, EXIT_ERROR, EXIT_LOGGING_SETUP, EXIT_NO_UPDATE
from download import Fetcher
from errors import FilesystemError, LoggingSetupError, MktcbError
from interrupt import get as get_interrupt

def parse_arguments(argv=None):
    """
    Parses command-line arguments.

    Returns:
    --------
    argparse.Namespace: The parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(prog="mktcb", description="Build the Trusted Computing Base (TCB)")

    parser.add_argument('-L', '--library', metavar='DIR',
                        help='Set the path to the TCB library (default: current directory)')
    parser.add_argument('-B', '--build-dir', metavar='DIR',
                        help='Set the path to the build directory (default: ./build)')
    parser.add_argument('-D', '--download-dir', metavar='DIR',
                        help='Set the path to the download directory (default: ./download)')
    parser.add_argument('-t', '--target', metavar='TARGET', required=True,
                        help='Name of the target to operate on')
    parser.add_argument('-j', '--jobs', metavar='JOBS',
                        help='Set the number of parallel jobs to be used (default: number of CPUs + 2)')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Print debug messages. Repeat to print trace messages')
    parser.add_argument('-q', '--quiet', action='store_true', default=False,
                        help='Only print warnings and errors')

    subparsers = parser.add_subparsers(dest='component', metavar='COMPONENT')
    subparsers.required = True

    linux_parser = subparsers.add_parser('linux', help='Operations on the Linux kernel')
    linux_parser.add_argument('--check-update', action='store_true', default=False,
                              help='Check whether a new update is available on kernel.org. '
                                   f'If no update is available, exit with status {EXIT_NO_UPDATE}')
    linux_parser.add_argument('--fetch', action='store_true', default=False,
                              help='Retrieve the latest version of the Linux kernel')
    linux_parser.add_argument('--reconfigure', action='store_true', default=False,
                              help='Copy the configuration of the target in the build directory')
    linux_parser.add_argument('--make', metavar='TARGET',
                              help='Run a make target in the Linux tree')
    linux_parser.add_argument('--debpkg', metavar='FILE',
                              help='Build the Debian packages of the kernel and write their paths in FILE')

    uboot_parser = subparsers.add_parser('uboot', help='Operations on the U-Boot bootloader')
    uboot_parser.add_argument('--fetch', action='store_true', default=False,
                              help='Retrieve the U-Boot sources')
    uboot_parser.add_argument('--reconfigure', action='store_true', default=False,
                              help='Copy the configuration of the target in the build directory')
    uboot_parser.add_argument('--make', metavar='TARGET',
                              help='Run a make target in the U-Boot tree')

    return parser.parse_args(argv)

def log_level(args) -> int:
    if args.quiet:
        return logging.WARNING
    if args.verbose >= 2:
        return TRACE
    if args.verbose == 1:
        return logging.DEBUG
    return logging.INFO

def write_lines(path, lines):
    try:
        with open(path, 'w', encoding='utf-8') as f:
            for line in lines:
                f.write(f"{line}\n")
    except OSError as e:
        raise FilesystemError("write", path, e)

def run_linux(args, config, interrupt, fetcher) -> int:
    agent = linux.new(config, interrupt, fetcher)

    if args.check_update:
        if agent.check_update():
            logger.info("A new version of the Linux kernel is available")
        else:
            logger.info("The Linux kernel is up to date")
            return EXIT_NO_UPDATE
    if args.fetch:
        agent.fetch()
    if args.reconfigure:
        agent.reconfigure()
    if args.make:
        agent.make(args.make)
    if args.debpkg:
        packages = agent.debpkg()
        write_lines(args.debpkg, packages)
        logger.info(f"Package list written to {args.debpkg}")

    return EXIT_SUCCESS

def run_uboot(args, config, interrupt, fetcher) -> int:
    agent = uboot.new(config, interrupt, fetcher)

    if args.fetch:
        agent.fetch()
    if args.reconfigure:
        agent.reconfigure()
    if args.make:
        agent.make(args.make)

    return EXIT_SUCCESS

COMPONENT_RUNNERS = {
    'linux': run_linux,
    'uboot': run_uboot,
}

def run(args) -> int:
    config = load_config(args.library, args.build_dir, args.download_dir, args.target, args.jobs)
    interrupt = get_interrupt()
    fetcher = Fetcher()

    actions = [value for key, value in vars(args).items()
               if key in ('check_update', 'fetch', 'reconfigure', 'make', 'debpkg')]
    if not any(actions):
        logger.warning(f"Nothing to do for {args.component}. See '{args.component} --help'")
        return EXIT_SUCCESS

    return COMPONENT_RUNNERS[args.component](args, config, interrupt, fetcher)

def main(argv=None) -> int:
    args = parse_arguments(argv)

    try:
        logger.setup(log_level(args))
    except LoggingSetupError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_LOGGING_SETUP

    try:
        return run(args)
    except MktcbError as e:
        logger.error(e)
        return EXIT_ERROR
    finally:
        logger.reset()

if __name__ == "__main__":
    sys.exit(main())
