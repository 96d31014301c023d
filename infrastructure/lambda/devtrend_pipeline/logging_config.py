"""Logging configuration for the DevTrend pipeline.

Centralised structlog setup. Lambda invocations emit one JSON object per
line on stdout (picked up by CloudWatch); the CLI can switch to the
human-friendly console renderer.

Usage:
    >>> from devtrend_pipeline.logging_config import setup_logging, get_logger
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("collection_started", category="repos", period="weekly")
"""

import logging
import sys
from pathlib import Path

import structlog


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: str | None = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Minimum level for the console handler
        json_output: Render JSON when True, coloured key/value text otherwise
        log_file: Optional path of a file that receives DEBUG and above

    Log entry format (JSON):
        {
            "event": "collection_succeeded",
            "level": "info",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "devtrend_pipeline.orchestrator",
            ...additional context fields...
        }
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # urllib3 logs every retry and connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    """Get a structlog logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        structlog logger (BoundLoggerLazyProxy)
    """
    return structlog.get_logger(name)
