import logging
import os
import sys

from dotenv import load_dotenv

from mailsetup.utils.decorators import Singleton

PACKAGE_LOGGER = "mailsetup"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggerWrapper:
    """
    Logger proxy whose error() attaches the traceback of the exception being
    handled, if any.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def error(self, msg, *args, exc_info=None, **kwargs):
        if exc_info is None:
            exc_info = sys.exc_info()[0] is not None
        return self.logger.error(msg, *args, exc_info=exc_info, **kwargs)

    def __getattr__(self, name):
        return getattr(self.logger, name)


@Singleton
class Logger:
    """Configures logging once; LOG_LEVEL applies to the mailsetup loggers only."""

    def __init__(self):
        load_dotenv()
        level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO
        self.level = level
        # Third-party libraries (sqlalchemy) stay at WARNING
        logging.basicConfig(format=LOG_FORMAT, level=logging.WARNING)
        logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    def get_logger(self, name: str) -> LoggerWrapper:
        logger = logging.getLogger(name)
        if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
            logger.setLevel(self.level)
        return LoggerWrapper(logger)
