# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
errors.py

Exceptions raised by mktcb. Every one of them derives from MktcbError, which the
command-line driver reports as a single line before exiting with status 2.
"""

class MktcbError(Exception):
    """
    Base class of all the errors mktcb knows how to report.
    """
    pass

class LoggingSetupError(MktcbError):
    """
    Exception raised when the logger cannot be initialized.
    """
    pass

# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------

class ConfigurationError(MktcbError):
    """
    Exception raised for malformed or incomplete target descriptions and options.
    """
    pass

class FilesystemError(MktcbError):
    """
    Exception raised when a file or directory cannot be created, read or written.
    """
    def __init__(self, action, path, reason=None):
        self.action = action
        self.path = path
        self.reason = reason
        message = f"Failed to {action} '{path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)

class ArchiveError(MktcbError):
    """
    Exception raised when an archive cannot be decompressed or extracted.
    """
    pass

class NetworkError(MktcbError):
    """
    Exception raised when a remote resource cannot be retrieved.
    """
    pass

class PatchError(MktcbError):
    """
    Exception raised when a diff does not apply to a source tree.
    """
    pass

class ConsistencyError(MktcbError):
    """
    Exception raised when the on-disk state of a source tree cannot be trusted.
    """
    pass

class SubprocessError(MktcbError):
    """
    Exception raised when an external program cannot be run or fails.
    """
    pass

class PackagingError(MktcbError):
    """
    Exception raised when a Debian package cannot be produced.
    """
    pass

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class InvalidJobCount(ConfigurationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid number of jobs '{value}': a strictly positive integer is expected")

class MissingComponent(ConfigurationError):
    def __init__(self, component, path):
        self.component = component
        self.path = path
        super().__init__(f"Target description '{path}' does not describe component '{component}'")

class MissingConfigFile(ConfigurationError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"File '{path}' does not exist")

# ---------------------------------------------------------------------------
# Source trees
# ---------------------------------------------------------------------------

class BadVersionFormat(ConsistencyError, ValueError):
    def __init__(self, text):
        self.text = text
        super().__init__(f"Invalid version '{text}': expected MAJOR.MINOR or MAJOR.MINOR.MICRO")

class CorruptedSourceDir(ConsistencyError):
    def __init__(self, source_dir, marker):
        self.source_dir = source_dir
        self.marker = marker
        super().__init__(
            f"Source directory '{source_dir}' exists but its version file '{marker}' does not. "
            f"The sources were probably left in an undefined state by a previous run. "
            f"Remove '{source_dir}' and try again.")

class InterruptedUpgrade(ConsistencyError):
    def __init__(self, source_dir, journal, step):
        self.source_dir = source_dir
        self.journal = journal
        self.step = step
        super().__init__(
            f"A previous upgrade of '{source_dir}' ({step}) did not complete, as recorded by '{journal}'. "
            f"Remove '{source_dir}' and its version file, then try again.")

class NotFetched(ConsistencyError):
    def __init__(self, source_dir):
        self.source_dir = source_dir
        super().__init__(f"Sources '{source_dir}' have not been fetched yet")

# ---------------------------------------------------------------------------
# Downloads and archives
# ---------------------------------------------------------------------------

class DownloadFailed(NetworkError):
    def __init__(self, url, code):
        self.url = url
        self.code = code
        super().__init__(f"Failed to download '{url}' (response code {code})")

class DecompressionFailed(ArchiveError):
    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Failed to decompress '{path}': {reason}")

class UnexpectedExtraction(ArchiveError):
    def __init__(self, archive, expected_dir):
        self.archive = archive
        self.expected_dir = expected_dir
        super().__init__(f"Extracting '{archive}' was expected to create directory '{expected_dir}'")

# ---------------------------------------------------------------------------
# External programs
# ---------------------------------------------------------------------------

class PatchFailed(PatchError):
    def __init__(self, diff, source_dir):
        self.diff = diff
        self.source_dir = source_dir
        super().__init__(f"Failed to apply patch '{diff}' on '{source_dir}'")

class CommandFailed(SubprocessError):
    def __init__(self, command, returncode=None, reason=None):
        self.command = command
        self.returncode = returncode
        if returncode is None:
            message = f"Failed to run '{command}'"
        else:
            message = f"Command '{command}' failed with return value {returncode}"
        if reason:
            message += f": {reason}"
        super().__init__(message)

class MakeFailed(SubprocessError):
    def __init__(self, target, returncode):
        self.target = target
        self.returncode = returncode
        super().__init__(f"make target '{target}' failed with return value {returncode}")

class MissingMaintainer(PackagingError):
    def __init__(self, variable):
        self.variable = variable
        super().__init__(f"Environment variable {variable} must be set to build packages")

class PackageNotProduced(PackagingError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Expected package '{path}' was not produced")

class DebFailed(PackagingError):
    def __init__(self, package, returncode):
        self.package = package
        self.returncode = returncode
        super().__init__(f"dpkg-deb failed to build package '{package}' (return value {returncode})")
