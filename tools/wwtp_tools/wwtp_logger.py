"""
Logging helpers for the WWTP community pipeline.
"""

import logging


LOG_FORMAT = '[%(asctime)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name='wwtp_pipeline', log_file=None, log_level=logging.INFO):
    """Set up a logger writing to the console and, optionally, to a file."""
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Drop handlers from an earlier call so lines are not written twice
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class DiagnosticLogger:
    """
    Diagnostic stream handed to the merger.

    Wraps a ``logging.Logger`` and keeps every emitted message in
    ``records`` as ``(level_name, message)`` tuples.

    Parameters:
    -----------
    logger : logging.Logger, optional
        Underlying logger. Defaults to a console-only logger.
    """

    def __init__(self, logger=None):
        self.logger = logger if logger is not None else setup_logger()
        self.records = []

    @classmethod
    def to_file(cls, log_file, log_level=logging.INFO, name='wwtp_pipeline'):
        return cls(setup_logger(name=name, log_file=log_file, log_level=log_level))

    def _log(self, level, message):
        self.records.append((logging.getLevelName(level), message))
        self.logger.log(level, message)

    def debug(self, message):
        self._log(logging.DEBUG, message)

    def info(self, message):
        self._log(logging.INFO, message)

    def warning(self, message):
        self._log(logging.WARNING, message)

    def error(self, message):
        self._log(logging.ERROR, message)

    def messages(self, level=None):
        """Return recorded messages, optionally only those of one level."""
        return [msg for lvl, msg in self.records if level is None or lvl == level]
