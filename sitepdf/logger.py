import logging
import sys
from datetime import datetime, timezone


class CompanyFormatter(logging.Formatter):
    """
    Single-line log format used across the crawler:
    [ Tue Jan 06 05:32:41 AM UTC 2026 ] : INFO : Worker-3 : Message
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")

        # Worker threads pass their name as 'context'
        context = getattr(record, 'context', 'root')

        message = f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logger(name="sitepdf", log_file=None, level=logging.INFO):
    """Sets up a logger with the standard format."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers if setup_logger is called multiple times
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    # Child loggers (sitepdf.frontier, sitepdf.scheduler, ...) propagate to 'sitepdf'
    if name != "sitepdf":
        logger.propagate = True
        setup_logger("sitepdf", log_file=log_file, level=level)
        return logger

    formatter = CompanyFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Only the root 'sitepdf' logger gets a FileHandler
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
