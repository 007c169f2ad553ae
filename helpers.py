# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
helpers.py

This module provides utilities shared by the mktcb modules: running external
programs, creating directories, copying files and reading the environment.
Failures are reported as mktcb errors so that the command-line driver can print
them.
"""

import os
import shlex
import shutil
import subprocess

from color_logger import logger
from errors import CommandFailed, FilesystemError, MissingMaintainer

def run_command(command, cwd=None, env=None, capture_output=False, check=True):
    """
    Executes an external program.

    Args:
    -----
    - command (list): The program and its arguments.
    - cwd (str): The working directory to execute the command in.
    - env (dict): The environment of the program. Defaults to the current one.
    - capture_output (bool): If True, stdout and stderr are captured instead of being
                             inherited. They are logged when the command fails.
    - check (bool): If True, raises an exception on a non-zero exit code.

    Returns:
    --------
    - subprocess.CompletedProcess: The result of the command.

    Raises:
    -------
    - CommandFailed: If the program cannot be started, or if it fails and check is True.
    """
    printable = shlex.join(str(arg) for arg in command)
    logger.debug(f'Running command: {printable}')

    try:
        result = subprocess.run([str(arg) for arg in command], cwd=cwd, env=env,
                                stdin=subprocess.DEVNULL, capture_output=capture_output, text=True)
    except OSError as e:
        raise CommandFailed(printable, reason=str(e))

    if result.returncode != 0 and capture_output:
        logger.error(f"Command failed with return value: {result.returncode}")
        if result.stderr and result.stderr.strip():
            logger.error(f"stderr: {result.stderr.strip()}")
        if result.stdout and result.stdout.strip():
            logger.error(f"stdout: {result.stdout.strip()}")

    if check and result.returncode != 0:
        raise CommandFailed(printable, result.returncode)

    return result

def create_new_directory(dirname, delete_if_exists=False):
    """
    Creates a directory and its parents, optionally deleting it if it already exists.

    Args:
    -----
    - dirname (str): The path to the directory to create.
    - delete_if_exists (bool): If True, deletes the directory if it already exists.

    Raises:
    -------
    - FilesystemError: If an error occurs while creating the directory.
    """
    try:
        if os.path.exists(dirname) and delete_if_exists:
            shutil.rmtree(dirname)
        os.makedirs(dirname, exist_ok=True)
    except OSError as e:
        raise FilesystemError("create directory", dirname, e)

def canonicalize(path) -> str:
    """
    Returns the absolute path of an existing file or directory, with symbolic links resolved.

    Raises:
    -------
    - FilesystemError: If the path does not exist.
    """
    if not os.path.exists(path):
        raise FilesystemError("canonicalize", path, "no such file or directory")
    return os.path.realpath(path)

def copy_file(source, destination):
    """
    Copies the contents of a file, replacing the destination if it exists.

    Raises:
    -------
    - FilesystemError: If the copy fails.
    """
    try:
        shutil.copyfile(source, destination)
    except OSError as e:
        raise FilesystemError("copy", f"{source}' to '{destination}", e)

def list_directory(dirname):
    """
    Returns the sorted names of the entries of a directory.

    Raises:
    -------
    - FilesystemError: If the directory cannot be enumerated.
    """
    try:
        return sorted(os.listdir(dirname))
    except OSError as e:
        raise FilesystemError("list", dirname, e)

def get_maintainer(variable="MAINTAINER") -> str:
    """
    Reads the maintainer of the packages to produce from the environment.

    Raises:
    -------
    - MissingMaintainer: If the variable is not set or empty.
    """
    value = os.environ.get(variable, "").strip()
    if not value:
        raise MissingMaintainer(variable)
    return value
