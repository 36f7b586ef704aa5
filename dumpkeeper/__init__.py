import os
import logging
from logging.handlers import WatchedFileHandler


__version__ = '0.2.0'

LOGGER_NAME = 'dumpkeeper'
LOG_DATE_FORMAT = '%a %b %d %H:%M:%S %Y'

# ANSI green, used for console echo in debug mode
CONSOLE_COLOR = '\033[32m'
CONSOLE_RESET = '\033[0m'


def configure_logging(config):
    """
    Configure agent logging.

    Records below ERROR go to the main log, ERROR and above go to the error
    log. In debug mode every line is also echoed to the console in green.

    Args:
        config: Config instance

    Returns:
        The configured ``dumpkeeper`` logger
    """
    os.makedirs(config.logs_dir, exist_ok=True)

    log_level = logging.DEBUG if config.debug else logging.INFO
    prefix = 'DEBUG: ' if config.debug else ''

    file_formatter = logging.Formatter(
        f'[%(asctime)s] {prefix}%(message)s',
        datefmt=LOG_DATE_FORMAT
    )

    # Watched handlers reopen the file after the retention sweep replaces it
    main_handler = WatchedFileHandler(config.main_log, delay=True)
    main_handler.setLevel(log_level)
    main_handler.addFilter(lambda record: record.levelno < logging.ERROR)
    main_handler.setFormatter(file_formatter)

    error_handler = WatchedFileHandler(config.error_log, delay=True)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_formatter)

    logger = logging.getLogger(LOGGER_NAME)
    close_logging()
    logger.setLevel(log_level)
    logger.addHandler(main_handler)
    logger.addHandler(error_handler)

    if config.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(
            f'{CONSOLE_COLOR}[%(asctime)s] DEBUG: %(message)s{CONSOLE_RESET}',
            datefmt=LOG_DATE_FORMAT
        ))
        logger.addHandler(console_handler)

    logger.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")
    return logger


def close_logging():
    """Detach and close every handler installed by configure_logging."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
