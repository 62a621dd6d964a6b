# -*- coding: utf-8 -*-
#
# Copyright (c) 2021 Ian Ottoway <ian@ottoway.dev>
# Copyright (c) 2014 Agostino Ruscito <ruscito@gmail.com>
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#

import logging
import sys
from typing import Optional

__all__ = ["configure_default_logger", "LOG_VERBOSE", "LOGGER_NAME"]

#: level below DEBUG where every frame sent or received is hex-dumped
LOG_VERBOSE = 5
LOGGER_NAME = "pyenip"

_FORMAT = "{asctime} [{levelname}] {name}.{funcName}(): {message}"

_logger = logging.getLogger(LOGGER_NAME)
_logger.addHandler(logging.NullHandler())


def _verbose(self: logging.Logger, msg, *args, **kwargs):
    if self.isEnabledFor(LOG_VERBOSE):
        self._log(LOG_VERBOSE, msg, *args, **kwargs)


logging.addLevelName(LOG_VERBOSE, "VERBOSE")
logging.Logger.verbose = _verbose


def configure_default_logger(
    level: int = logging.INFO,
    filename: Optional[str] = None,
    logger: Optional[str] = None,
    stream=None,
):
    """
    Helper method to configure basic logging for applications and scripts.

    ``level`` sets the logging level, use ``LOG_VERBOSE`` to also see the bytes of every
    encapsulation frame sent and received.  Output goes to ``stream`` (stdout by default)
    and, if ``filename`` is set, to that file as well.

    Only the ``pyenip`` logger is configured unless ``logger`` names another one, use an
    empty string (``''``) for the root logger.
    """
    loggers = [logging.getLogger(LOGGER_NAME)]
    if logger == "":
        loggers.append(logging.getLogger())
    elif logger:
        loggers.append(logging.getLogger(logger))

    formatter = logging.Formatter(fmt=_FORMAT, style="{")
    handlers = [logging.StreamHandler(stream=stream or sys.stdout)]
    if filename:
        handlers.append(logging.FileHandler(filename, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)

    for _log in loggers:
        _log.setLevel(level)
        for handler in handlers:
            _log.addHandler(handler)
