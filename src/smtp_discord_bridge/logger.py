"""Logging utilities for the SMTP to Discord bridge.

Handlers, level and format are configured once by the command-line entry
point with ``logging.basicConfig()``; modules only ask for named loggers.

Example:
    Typical usage in a module::

        from smtp_discord_bridge.logger import get_logger

        logger = get_logger("Dispatch")
        logger.info("Mail forwarded")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "SmtpDiscordBridge") -> logging.Logger:
    """Retrieve a logger instance bound to ``name``.

    Args:
        name: The logger name. Defaults to "SmtpDiscordBridge".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the bridge process.

    Unknown level names fall back to INFO.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
