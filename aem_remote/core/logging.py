"""
Rich-based logging system

Modules only call ``get_logger(__name__)``; the embedding application calls
``setup_logging`` once. Handlers are attached to the package logger so the
host application's root logger is left alone.
"""
import sys
import logging
from typing import Optional
from pathlib import Path

from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback

PACKAGE_LOGGER = "aem_remote"

# Transport libraries log every packet/request at DEBUG
TRANSPORT_LOGGERS = ("paramiko", "boto3", "botocore", "urllib3")

_stderr_console = Console(file=sys.stderr)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
    transport_level: str = "WARNING",
) -> logging.Logger:
    """
    Setup Rich logging for the package.

    Args:
        level: Level of aem_remote loggers (DEBUG shows every remote command)
        log_file: Optional log file path, receiving the same records
        rich_tracebacks: Render tracebacks with rich
        transport_level: Level of the paramiko/boto3 loggers

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if rich_tracebacks:
        install_traceback(console=_stderr_console, width=120)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    # Remote command output may contain square brackets, keep markup off
    rich_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        markup=False,
    )
    rich_handler.setLevel(log_level)
    logger.addHandler(rich_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(file_handler)

    quiet_level = getattr(logging, transport_level.upper(), logging.WARNING)
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    return logging.getLogger(name)
