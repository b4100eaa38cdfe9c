"""Structured logging setup using structlog.

Implements a **dual-renderer pattern**: the same shared processor chain
(context vars, log level, timestamps, stack info) feeds into either a
coloured ConsoleRenderer for local development or a JSONRenderer for
production.  The renderer is selected automatically based on the ``APP_ENV``
environment variable (default ``"development"``), or forced via the
``json_output`` flag.

structlog events are handed to the standard-library ``logging`` module, and
third-party libraries (httpx, uvicorn, etc.) are rendered through the same
structlog formatter, so every line looks the same.  When a ``log_dir`` is
given, two daily-rotating JSON files are attached next to the console:

    combined.log  -- every record at or above ``log_level`` (14 days kept)
    error.log     -- ERROR and above only (30 days kept)
"""

import logging
import logging.handlers
import sys
from pathlib import Path

import structlog

_COMBINED_BACKUPS = 14
_ERROR_BACKUPS = 30


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    log_dir: str = "",
) -> structlog.BoundLogger:
    """Configure structlog with environment-appropriate rendering.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR, FATAL).
        json_output: Force JSON output. When False, uses console rendering in
                     development and JSON in production (detected via APP_ENV).
        log_dir: Directory for rotating log files.  Empty disables file output.

    Returns:
        A configured structlog BoundLogger.
    """
    import os

    # Dual-renderer selection: APP_ENV controls which renderer is used.
    # "production" => machine-readable JSON; anything else => human-readable console.
    app_env = os.environ.get("APP_ENV", "development")
    use_json = json_output or app_env == "production"

    # Shared processor chain -- these run regardless of the output format.
    # Order matters: contextvars first (merges request-scoped bindings),
    # then level/timestamps, then exception formatting.
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,  # Merge request-scoped context bindings
        structlog.processors.add_log_level,        # Inject "level" key
        structlog.processors.StackInfoRenderer(),  # Render stack_info if present
        structlog.dev.set_exc_info,                # Auto-attach exc_info on error()
        structlog.processors.TimeStamper(fmt="iso"),  # ISO-8601 timestamps
    ]

    json_renderer: list[structlog.types.Processor] = [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]
    if use_json:
        console_renderer = json_renderer
    else:
        console_renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    level = logging.getLevelName(log_level.upper())

    structlog.configure(
        processors=[
            *shared_processors,
            # Hand the event dict to whichever stdlib handler formats it.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        # make_filtering_bound_logger creates a logger that drops messages
        # below log_level BEFORE processing, saving work in hot paths.
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,  # Cache after first .bind() for performance
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(shared_processors, console_renderer))

    root_logger = logging.getLogger()
    # Remove previous handlers to avoid duplicates; close them so rotating
    # log files from an earlier call do not stay open.
    for previous in list(root_logger.handlers):
        root_logger.removeHandler(previous)
        previous.close()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    if log_dir:
        file_formatter = _formatter(shared_processors, json_renderer)
        for file_handler in _file_handlers(Path(log_dir)):
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

    return structlog.get_logger()


def _formatter(
    shared_processors: list[structlog.types.Processor],
    renderer: list[structlog.types.Processor],
) -> structlog.stdlib.ProcessorFormatter:
    # foreign_pre_chain runs only for records that did not come from structlog.
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderer,
        ],
    )


def _file_handlers(log_dir: Path) -> list[logging.Handler]:
    """Build the combined and error-only daily-rotating file handlers."""
    log_dir.mkdir(parents=True, exist_ok=True)

    combined = logging.handlers.TimedRotatingFileHandler(
        log_dir / "combined.log",
        when="midnight",
        backupCount=_COMBINED_BACKUPS,
        encoding="utf-8",
    )
    errors_only = logging.handlers.TimedRotatingFileHandler(
        log_dir / "error.log",
        when="midnight",
        backupCount=_ERROR_BACKUPS,
        encoding="utf-8",
    )
    errors_only.setLevel(logging.ERROR)
    return [combined, errors_only]


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a named structlog logger.

    If structlog has not been configured yet, calls configure_logging() with defaults.

    Args:
        name: Logger name, typically the module name.

    Returns:
        A structlog BoundLogger bound with the given name.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
