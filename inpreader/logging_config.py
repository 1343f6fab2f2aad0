"""
Logging Configuration
Attaches console and file output to the 'inpreader' logger for the CLI.

The library itself only installs a NullHandler; applications that embed
the reader configure logging themselves.
"""
import logging
import sys
from typing import Optional, TextIO

PACKAGE_LOGGER = "inpreader"

CONSOLE_FORMAT = '%(levelname)s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# marks handlers owned by setup_logging
_OWNED = "_inpreader_owned"


def _make_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt='%H:%M:%S'))
    setattr(handler, _OWNED, True)
    return handler


def remove_owned_handlers(logger: logging.Logger) -> None:
    """Detach and close handlers added by an earlier setup_logging call."""
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None,
                  stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Route 'inpreader' records to stderr and, optionally, to a file.

    Calling it again replaces the handlers of the previous call; handlers
    added by anyone else are left alone.

    Args:
        level: Logging level (e.g. logging.DEBUG for header traces)
        log_file: Optional path; the file is overwritten and gets timestamps
        stream: Console stream, stderr when omitted so stdout stays free
            for the mesh report

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    remove_owned_handlers(logger)

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    logger.addHandler(_make_handler(console, level, CONSOLE_FORMAT))

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        logger.addHandler(_make_handler(file_handler, level, FILE_FORMAT))

    logger.debug("Logging to %s%s", "stderr" if stream is None else "stream",
                 f" and {log_file}" if log_file else "")
    return logger
