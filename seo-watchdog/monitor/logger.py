import logging
import sys
from datetime import datetime


class CompanyFormatter(logging.Formatter):
    """
    Formats records as:
    [ Tue Jan 06 05:32:41 AM UTC 2026 ] : INFO : watchdog : Message
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")

        # Either 'root' or the site token the record was logged for
        context = getattr(record, 'context', 'root')

        message = f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logger(name="seo_watchdog", log_file=None, level=logging.INFO):
    """Sets up a logger with the standard watchdog format."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers if setup_logger is called multiple times
    if logger.handlers:
        return logger

    # Component loggers (seo_watchdog.reporter, ...) propagate to the root one
    if name != "seo_watchdog":
        logger.propagate = True
        setup_logger("seo_watchdog", log_file=log_file, level=level)
        return logger

    formatter = CompanyFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Only the root 'seo_watchdog' logger gets a FileHandler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(component):
    """Child logger for one watchdog component."""
    return logging.getLogger(f"seo_watchdog.{component}")
