import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

LIFECYCLE_LOGGER_NAME = "plugin_lifecycle"


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Set up logging for the plugin system.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    if not log_to_file:
        return

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    app_handler = logging.handlers.RotatingFileHandler(
        logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
    )
    app_handler.setLevel(logging.INFO)
    app_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
    )
    root_logger.addHandler(app_handler)

    # State transitions get their own file
    lifecycle_handler = logging.handlers.RotatingFileHandler(
        logs_dir / "plugin_lifecycle.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    lifecycle_handler.setLevel(logging.DEBUG)
    lifecycle_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    )
    lifecycle_logger = logging.getLogger(LIFECYCLE_LOGGER_NAME)
    lifecycle_logger.handlers.clear()
    lifecycle_logger.addHandler(lifecycle_handler)
    lifecycle_logger.propagate = True

    error_handler = logging.handlers.RotatingFileHandler(
        logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s - %(exc_info)s"
        )
    )
    root_logger.addHandler(error_handler)


def get_lifecycle_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger for plugin lifecycle events.

    Args:
        name: Logger name (defaults to "plugin_lifecycle")
    """
    return structlog.get_logger(name or LIFECYCLE_LOGGER_NAME)


def log_state_transition(
    plugin_id: str,
    previous: Optional[Any],
    current: Any,
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """Log a plugin moving from one lifecycle state to another.

    States are logged by value so enum members and plain strings both work.
    """
    if logger is None:
        logger = get_lifecycle_logger()

    logger.debug(
        "Plugin state transition",
        plugin_id=plugin_id,
        previous=getattr(previous, "value", previous),
        current=getattr(current, "value", current),
        timestamp=datetime.now().isoformat(),
    )


def log_plugin_error(
    error: Exception,
    context: Dict[str, Any],
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """Log a failed lifecycle hook with its context.

    Args:
        error: The exception that occurred
        context: Additional context (plugin id, hook name, ...)
        logger: Logger to use (creates one if not provided)
    """
    if logger is None:
        logger = get_lifecycle_logger()

    logger.error(
        "Plugin lifecycle hook failed",
        error_type=type(error).__name__,
        error_message=str(error),
        timestamp=datetime.now().isoformat(),
        **context,
    )
