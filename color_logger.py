# Copyright (c) Qualcomm Technologies, Inc. and/or its subsidiaries.
#
# SPDX-License-Identifier: BSD-3-Clause-Clear

"""
color_logger.py

This module provides the logger shared by every mktcb module. Messages are
printed one per line, prefixed by their severity. When the output stream is a
terminal, the severity is colored.

Usage:
    from color_logger import logger

    logger.trace('This is a trace message')
    logger.debug('This is a debug message')
    logger.info('This is an info message')
    logger.warning('This is a warning message')
    logger.error('This is an error message')
"""

import sys
import logging

from errors import LoggingSetupError

TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

class ColorLogger:
    LEVEL_STRING = {
        TRACE:            'trace',
        logging.DEBUG:    'debug',
        logging.INFO:     'info',
        logging.WARNING:  'warning',
        logging.ERROR:    'error',
        logging.CRITICAL: 'critical'
    }

    LEVEL_COLORS = {
        TRACE:            '\033[1;97m', #WHITE
        logging.DEBUG:    '\033[1;94m', #BLUE
        logging.INFO:     '\033[1;92m', #GREEN
        logging.WARNING:  '\033[1;93m', #YELLOW
        logging.ERROR:    '\033[1;91m', #RED
        logging.CRITICAL: '\033[1;95m' #MAGENTA
    }

    def __init__(self, name: str, level=logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False
        self.color_enabled = False
        self.handler = None

    def setup(self, level=logging.INFO, stream=None):
        """
        Installs the console handler. Must be called once, before anything is logged.

        Args:
        -----
        - level (int): The minimum level of the messages to print.
        - stream (file): Where to print. Defaults to stdout.

        Raises:
        -------
        - LoggingSetupError: If the logger was already set up, or the handler could not be created.
        """
        if self.handler is not None:
            raise LoggingSetupError("the logger is already set up")

        stream = stream if stream is not None else sys.stdout
        try:
            handler = logging.StreamHandler(stream)
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)
            self.logger.setLevel(level)
        except (TypeError, ValueError) as e:
            raise LoggingSetupError(str(e))

        self.handler = handler
        isatty = getattr(stream, "isatty", None)
        self.color_enabled = bool(isatty and isatty())

    def reset(self):
        """
        Removes the console handler so that setup() may be called again.
        """
        if self.handler is not None:
            self.logger.removeHandler(self.handler)
            self.handler = None

    def log(self, level, message):
        reset = "\033[0m"
        level_str = self.LEVEL_STRING.get(level, 'log')
        if self.color_enabled:
            level_str = f"{self.LEVEL_COLORS.get(level, '')}{level_str}{reset}"

        self.logger.log(level, f"{level_str}: {message}")

    def is_enabled_for(self, level) -> bool:
        return self.logger.isEnabledFor(level)

    def trace(self, msg): self.log(TRACE, msg)
    def debug(self, msg): self.log(logging.DEBUG, msg)
    def info(self, msg): self.log(logging.INFO, msg)
    def warning(self, msg): self.log(logging.WARNING, msg)
    def error(self, msg): self.log(logging.ERROR, msg)
    def critical(self, msg): self.log(logging.CRITICAL, msg)

    def disable_color(self):
        self.color_enabled = False

    def enable_color(self):
        self.color_enabled = True

logger = ColorLogger("mktcb")
