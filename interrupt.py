# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
interrupt.py

Handling of user interruptions (CTRL-C, SIGTERM).

Outside of a critical section, an interruption terminates the program right
away. Inside a critical section (see Interrupt.lock()), the interruption is
latched and serviced when the section is left, so that source trees are never
left half-patched.

Usage:
    interrupt = get()
    with interrupt.lock():
        ... # mutate the sources
"""

import signal
import sys

from color_logger import logger
from constants import EXIT_INTERRUPTED

_INSTANCE = None

class Guard:
    """
    Scoped critical section returned by Interrupt.lock().
    """

    def __init__(self, interrupt):
        self.interrupt = interrupt

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_value is not None and self.interrupt.pending:
            # sys.exit() below replaces the exception being raised.
            logger.error(exc_value)
        self.release()
        return False

    def release(self):
        """
        Leaves the critical section. If an interruption was requested meanwhile,
        the program exits instead of returning.
        """
        # Unlock first: a signal received from now on exits right away.
        self.interrupt.locked = False
        if self.interrupt.pending:
            logger.debug("An interrupt request will now be serviced")
            sys.exit(EXIT_INTERRUPTED)

class Interrupt:
    def __init__(self):
        self.pending = False
        self.locked = False

    def lock(self) -> Guard:
        """
        Enters a critical section.

        Raises:
        -------
        - RuntimeError: If a critical section is already active. Sections do not nest.
        """
        if self.locked:
            raise RuntimeError("Recursive lock detected. This is forbidden.")
        self.locked = True
        return Guard(self)

    def handle(self, signum, frame=None):
        """
        Signal handler.
        """
        logger.error("interruption requested by user!")
        if self.locked:
            self.pending = True
        else:
            sys.exit(EXIT_INTERRUPTED)

    def install(self, signals=(signal.SIGINT, signal.SIGTERM)):
        for signum in signals:
            signal.signal(signum, self.handle)

def get() -> Interrupt:
    """
    Returns the process-wide interrupt handler, installing it on first use.
    """
    global _INSTANCE
    if _INSTANCE is None:
        _INSTANCE = Interrupt()
        _INSTANCE.install()
    return _INSTANCE
