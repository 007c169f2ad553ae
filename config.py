# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
config.py

Loading of the target and toolchain descriptions from the TCB library.

The library is laid out as follows:

    <library>/targets/<target>.toml         target description
    <library>/toolchains/<toolchain>.toml   toolchain description
    <library>/configs/<component>/<version>/<file>   pre-canned build configurations
    <library>/patches/<component>/<version>/         local patches

A target description looks like:

    toolchain = "armv7-eabihf"
    name = "BeagleBone Black"

    [linux]
    version = "5.4"
    config = "bbb.config"

    [uboot]
    version = "2020.04"
"""

import os
from dataclasses import dataclass
from typing import Optional

import toml

from color_logger import logger
from constants import DEFAULT_JOBS
from errors import ConfigurationError, FilesystemError, InvalidJobCount, MissingConfigFile
from helpers import canonicalize, create_new_directory

@dataclass
class ToolchainConfig:
    url: str
    linux_arch: str
    uboot_arch: str
    debian_arch: str
    cross_compile: str

@dataclass
class ComponentConfig:
    version: str
    config: Optional[str] = None
    mirror: Optional[str] = None

@dataclass
class Config:
    lib_dir: str
    build_dir: str
    download_dir: str
    toolchain: ToolchainConfig
    linux: Optional[ComponentConfig]
    uboot: Optional[ComponentConfig]
    target: str
    target_name: str
    jobs: int

def load_toml(path) -> dict:
    """
    Loads a TOML file.

    Raises:
    -------
    - FilesystemError: If the file cannot be read.
    - ConfigurationError: If the file is not valid TOML.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return toml.load(f)
    except (toml.TomlDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Failed to parse '{path}': {e}")
    except OSError as e:
        raise FilesystemError("read", path, e)

def _require(data, key, path, kind=str):
    if key not in data:
        raise ConfigurationError(f"Missing key '{key}' in '{path}'")
    value = data[key]
    if not isinstance(value, kind):
        raise ConfigurationError(f"Key '{key}' in '{path}' must be a {kind.__name__}")
    return value

def _optional(data, key, path):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(f"Key '{key}' in '{path}' must be a str")
    return value

def make_config_path(library, component, item: ComponentConfig):
    """
    Resolves the configuration file named by a component description to its
    location in the library: <library>/configs/<component>/<version>/<file>.

    Returns:
    --------
    - str: The path to the configuration, or None if the component names none.

    Raises:
    -------
    - MissingConfigFile: If the file does not exist.
    """
    if item.config is None:
        return None

    path = os.path.join(library, "configs", component, item.version, item.config)
    if not os.path.isfile(path):
        raise MissingConfigFile(path)
    return path

def _load_component(library, component, data, path) -> Optional[ComponentConfig]:
    if component not in data:
        return None

    section = data[component]
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{component}' in '{path}' must be a table")

    where = f"{path} [{component}]"
    item = ComponentConfig(
        version=_require(section, "version", where),
        config=_optional(section, "config", where),
        mirror=_optional(section, "mirror", where),
    )
    item.config = make_config_path(library, component, item)
    return item

def load_toolchain_config(library, toolchain) -> ToolchainConfig:
    path = os.path.join(library, "toolchains", f"{toolchain}.toml")
    data = load_toml(path)
    logger.debug(f"Using toolchain configuration at path {path}")

    return ToolchainConfig(
        url=_require(data, "url", path),
        linux_arch=_require(data, "linux_arch", path),
        uboot_arch=_require(data, "uboot_arch", path),
        debian_arch=_require(data, "debian_arch", path),
        cross_compile=_require(data, "cross_compile", path),
    )

def parse_jobs(value) -> int:
    """
    Validates the number of parallel jobs. When not provided, the number of CPUs + 2 is used.

    Raises:
    -------
    - InvalidJobCount: If the value is not a strictly positive integer.
    """
    if value is None:
        return DEFAULT_JOBS
    try:
        jobs = int(value)
    except (TypeError, ValueError):
        raise InvalidJobCount(value)
    if jobs <= 0:
        raise InvalidJobCount(value)
    return jobs

def _working_dir(value, default_name, cwd):
    # Directories given explicitly are created right away. The defaults are
    # created when they are first needed.
    if value is None:
        return os.path.join(cwd, default_name)
    create_new_directory(value)
    return canonicalize(value)

def load_config(library=None, build_dir=None, download_dir=None, target=None, jobs=None) -> Config:
    """
    Builds the configuration of a run from the command-line options and the library.

    Args:
    -----
    - library (str): The TCB library. Defaults to the current working directory.
    - build_dir (str): The build directory. Defaults to ./build.
    - download_dir (str): The download directory. Defaults to ./download.
    - target (str): The stem of the target description. Required.
    - jobs (str|int): The number of parallel build jobs.

    Raises:
    -------
    - ConfigurationError: If an option or a description is invalid.
    - FilesystemError: If a directory cannot be created or resolved.
    """
    if not target:
        raise ConfigurationError("A target is required")

    cwd = os.getcwd()
    lib_dir = canonicalize(library) if library else cwd
    parsed_jobs = parse_jobs(jobs)

    target_path = os.path.join(lib_dir, "targets", f"{target}.toml")
    data = load_toml(target_path)
    logger.info(f"Using target configuration at path {target_path}")

    toolchain = _require(data, "toolchain", target_path)
    name = _require(data, "name", target_path)

    return Config(
        lib_dir=lib_dir,
        build_dir=_working_dir(build_dir, "build", cwd),
        download_dir=_working_dir(download_dir, "download", cwd),
        toolchain=load_toolchain_config(lib_dir, toolchain),
        linux=_load_component(lib_dir, "linux", data, target_path),
        uboot=_load_component(lib_dir, "uboot", data, target_path),
        target=target,
        target_name=name,
        jobs=parsed_jobs,
    )
