"""
Logging configuration with structured logging support.

This module provides a centralized logging configuration that supports:
- JSON structured logging for production
- Human-readable logging for development
- Probe and submission timing records
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from cnft_minter import __version__
from cnft_minter.config import LoggingConfig


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with service context."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['service'] = 'cnft-minter'
        log_record['version'] = __version__

        # Identity of the wallet the operation ran for, if bound
        identity = getattr(record, 'identity', None)
        if identity:
            log_record['identity'] = identity


class ColoredFormatter(logging.Formatter):
    """Colored formatter for development console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        return super().format(record)


def configure_structlog(log_format: str = "text") -> None:
    """Route structlog through stdlib logging so levels and handlers apply."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=False,
    )


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
) -> None:
    """
    Set up application logging with structured output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ('json' for structured logging, 'text' for human-readable)
        log_file: Optional file path for log output
    """
    configure_structlog(log_format)

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        console_handler.setFormatter(StructuredFormatter(
            '%(asctime)s %(name)s %(levelname)s %(message)s'
        ))
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(
            '%(asctime)s %(name)s %(levelname)s %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        format='%(message)s',
        force=True,
    )

    # Gateway probes are noisy at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


class PerformanceLogger:
    """Logger for gateway probe and mint submission timings."""

    def __init__(self):
        self.logger = get_logger("performance")

    def log_probe(self, method: str, url: str, duration_ms: float, success: bool):
        """Log a single gateway request."""
        self.logger.debug(
            "gateway_probe",
            method=method,
            url=url,
            duration_ms=duration_ms,
            success=success,
            metric_type="gateway_performance"
        )

    def log_submission(self, shape: str, duration_ms: float, success: bool):
        """Log a mint submission attempt."""
        self.logger.debug(
            "mint_submission",
            shape=shape,
            duration_ms=duration_ms,
            success=success,
            metric_type="mint_performance"
        )


# Until setup_logging runs, structlog output follows the stdlib root logger
configure_structlog()

performance_logger = PerformanceLogger()


def init_logging(config: Optional[LoggingConfig] = None):
    """Initialize logging from a LoggingConfig (LOG_LEVEL, LOG_FORMAT, LOG_FILE)."""
    if config is None:
        config = LoggingConfig()

    setup_logging(
        log_level=config.level,
        log_format=config.format,
        log_file=config.file
    )
