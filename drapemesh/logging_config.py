"""
Logging configuration for the drapemesh namespace logger.
"""
import logging
import sys


def setup_logging(level=logging.INFO, log_file=None):
    """
    Configure the 'drapemesh' logger with a console and optional file handler.

    Parameters
    ----------
    level : int, default logging.INFO
        Logging level applied to the logger and its handlers.
    log_file : str or Path, optional
        If given, messages are also written to this file (overwritten).

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    logger = logging.getLogger("drapemesh")
    logger.setLevel(level)

    # Avoid duplicate output when called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
