"""Logging configuration for the explorer.

Modules log through ``logging.getLogger(__name__)``; applications call
``configure_logging`` once at startup.
"""
import logging
import sys

_PACKAGE_LOGGERS = [
    "adapters",
    "graph",
    "persistence",
]


def set_verbosity(verbose: bool = True) -> None:
    """Show INFO messages when verbose, otherwise only WARNING and above."""
    level = logging.INFO if verbose else logging.WARNING
    logging.getLogger().setLevel(level)
    for handler in logging.getLogger().handlers:
        handler.setLevel(level)
    for pkg in _PACKAGE_LOGGERS:
        logging.getLogger(pkg).setLevel(level)


def configure_logging(verbose: bool = True, log_file: str | None = None) -> None:
    """
    Configure logging for all explorer packages.

    Args:
        verbose: If True, show INFO messages. If False, only WARNING+.
        log_file: Optional path to a log file; logs go to stdout as well.
    """
    level = logging.INFO if verbose else logging.WARNING

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    set_verbosity(verbose)
