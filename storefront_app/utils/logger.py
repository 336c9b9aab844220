import logging
import os

from rich.logging import RichHandler

DEFAULT_LOGGER_NAME = "storefront"
LOG_FORMAT = "[%(name)s]  %(message)s"


class CenteredFormatter(logging.Formatter):
    """Centres logger names in a column that widens to fit the longest name seen."""

    def __init__(self, fmt=LOG_FORMAT, width: int = 20):
        super().__init__(fmt)
        self.width = width

    def format(self, record: logging.LogRecord) -> str:
        self.width = max(self.width, len(record.name))
        # Other handlers may format the same record, so centre a copy.
        padded = logging.makeLogRecord(record.__dict__)
        padded.name = record.name.center(self.width)
        return super().format(padded)


def get_logger(name=None) -> logging.Logger:
    """Logger with a RichHandler; DEBUG level when the DEBUG env var is set."""
    logger = logging.getLogger(name or DEFAULT_LOGGER_NAME)
    level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter())
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
