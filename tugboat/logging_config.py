"""Logging setup shared by the CLI and the MCP server."""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOGGERS = [
    'tugboat.config',
    'tugboat.git_sync',
    'tugboat.remote',
    'tugboat.performance',
    'tugboat.error_handler',
    'tugboat.cli',
    'tugboat.server',
]


class StructuredFormatter(logging.Formatter):
    """Prefixes the message with the operation name when one is attached."""

    def format(self, record):
        if hasattr(record, 'operation'):
            record.msg = f"[{record.operation}] {record.msg}"
        return super().format(record)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the tugboat loggers to write to stderr.

    Stdout is left alone: the CLI prints reports there and the MCP server
    speaks its protocol over it.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = StructuredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    for logger_name in LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
