"""
Enhanced structlog-based logging configuration for RideMyLay realtime.

All modules MUST obtain loggers through get_logger() from this module and
log with key/value fields:

    from ..structured_logging.enhanced_logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("User joined chat room", user_id=user_id, chat_id=chat_id)
"""

import json
import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from .logging_processors import add_component, sanitize_sensitive_data
from .logging_utilities import detect_environment, resolve_log_base, rotate_log_files

logger = structlog.get_logger(__name__)

# log file -> logger name prefixes routed into it
LOG_CATEGORIES: dict[str, list[str]] = {
    "server": ["ridemylay.app", "ridemylay.main", "uvicorn"],
    "realtime": ["ridemylay.realtime", "socketio", "engineio"],
    "client": ["ridemylay.client"],
    "persistence": ["ridemylay.persistence", "ridemylay.models", "sqlalchemy", "aiosqlite"],
    "api": ["ridemylay.api"],
}

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class _LoggingState:  # pylint: disable=too-few-public-methods  # Reason: State container
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def _parse_max_size(max_size: str | int) -> int:
    """Convert a size like '10MB' into bytes."""
    if isinstance(max_size, int):
        return max_size
    size = max_size.strip().upper()
    if size.endswith("MB"):
        return int(size[:-2]) * 1024 * 1024
    if size.endswith("KB"):
        return int(size[:-2]) * 1024
    if size.endswith("B"):
        return int(size[:-1])
    return int(size)


def _strip_ansi_renderer(bound_logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """Render key/value output without ANSI escape sequences."""
    formatted = structlog.processors.KeyValueRenderer(key_order=["event"])(bound_logger, name, event_dict)
    return _ANSI_ESCAPE.sub("", formatted)


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> Path:
    """Set up rotating file handlers for each log category."""
    env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)
    rotate_log_files(env_log_dir)

    level = getattr(logging, str(log_level).upper(), logging.INFO)
    max_bytes = _parse_max_size(log_config.get("rotation_max_size", "10MB"))
    backup_count = int(log_config.get("rotation_backup_count", 5))
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    for log_file, prefixes in LOG_CATEGORIES.items():
        handler = RotatingFileHandler(
            env_log_dir / f"{log_file}.log", maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        for prefix in prefixes:
            category_logger = logging.getLogger(prefix)
            category_logger.addHandler(handler)
            category_logger.setLevel(level)
            category_logger.propagate = True

    # Global errors handler that captures WARNING and above for all loggers
    errors_handler = RotatingFileHandler(
        env_log_dir / "errors.log", maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    errors_handler.setLevel(logging.WARNING)
    errors_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(errors_handler)
    root_logger.setLevel(level)
    return env_log_dir


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog with sanitization, contextvars and file output.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()

    processors = [
        sanitize_sensitive_data,
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        add_component,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _strip_ansi_renderer,
    ]

    env_log_dir: Path | None = None
    if log_config and not log_config.get("disable_logging", False):
        env_log_dir = _setup_file_logging(environment, log_config, log_level)
    else:
        logging.basicConfig(level=getattr(logging, str(log_level).upper(), logging.INFO), format=_LOG_FORMAT)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        # Later reconfiguration must apply to loggers created at import time
        cache_logger_on_first_use=False,
    )

    if env_log_dir is not None:
        structlog.get_logger(__name__).info("File logging configured", log_dir=str(env_log_dir))


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the application configuration.

    Args:
        config: Application configuration dictionary (see AppConfig.to_legacy_dict)
        force_reconfigure: When True, reconfigure even if already initialized
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)
    if _logging_state.initialized and not force_reconfigure:
        get_logger("ridemylay.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(environment, log_level, logging_config)
    _configure_uvicorn_logging()

    get_logger("ridemylay.structured_logging.setup").info(
        "Enhanced logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )
    _logging_state.initialized = True
    _logging_state.signature = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def log_exception_once(
    bound_logger: BoundLogger,
    level: str,
    message: str,
    *,
    exc: Exception | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an exception once, skipping exceptions that have already been logged.

    Args:
        bound_logger: Structlog bound logger instance.
        level: Logging level to use (for example, "error" or "warning").
        message: Log message to emit.
        exc: Optional exception to include in the log entry.
        **kwargs: Additional key-value pairs for structured logging.
    """
    if exc is not None:
        if getattr(exc, "already_logged", False):
            return
        kwargs.setdefault("error_type", type(exc).__name__)
        kwargs.setdefault("error", str(exc))

    log_method = getattr(bound_logger, level.lower(), bound_logger.error)
    log_method(message, **kwargs)

    if exc is not None:
        cast(Any, exc).already_logged = True
