import os
import sys
from contextlib import contextmanager
from typing import Optional

from loguru import logger as _loguru_logger

PACKAGE = "tailwind_sorter"

_LOGGING_CONFIGURED = False
_logger = _loguru_logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Records from this package are dropped until configure_logging() runs.
_logger.disable(PACKAGE)


def configure_logging(level: Optional[str] = None, force: bool = False):
    """
    Configure loguru with a single stderr sink.

    The library never writes to stdout: the language server owns the child's
    stdout and the CLI prints its results there.

    The level comes from the argument, then TAILWIND_SORTER_LOG_LEVEL, then
    WARNING.
    """
    global _LOGGING_CONFIGURED, _logger

    if _LOGGING_CONFIGURED and not force:
        return

    if level is None:
        level = os.getenv("TAILWIND_SORTER_LOG_LEVEL", "WARNING")
    level = level.upper()

    _logger.remove()

    def patcher(record):
        if "name" not in record["extra"]:
            record["extra"]["name"] = record.get(
                "name", record.get("module", "unknown")
            )

    _logger = _logger.patch(patcher)
    _logger.add(sys.stderr, format=LOG_FORMAT, level=level, colorize=True)
    _logger.enable(PACKAGE)

    _LOGGING_CONFIGURED = True


@contextmanager
def log_context(**kwargs):
    """
    Add fields to every record logged inside the block.

    Usage:
        with log_context(staging_dir=path):
            logger.debug("Handshake complete")
    """
    with _logger.contextualize(**kwargs):
        yield


def setup_logger(name: str):
    """
    Return a logger bound to ``name``.

    Unlike ``configure_logging`` this never touches sinks. Records from the
    package stay disabled until ``configure_logging`` runs or the host
    application calls ``logger.enable("tailwind_sorter")``.
    """
    return _logger.bind(name=name)
