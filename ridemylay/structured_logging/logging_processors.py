"""
Logging processors for structlog event processing.

This module provides processors for sanitizing credentials out of log
entries and tagging entries with the component that emitted them.
"""

import re
from typing import Any

# Patterns match whole underscore-separated segments so "access_token" is
# caught while ids like "socket_id" and words like "author" survive
SENSITIVE_PATTERNS = [
    r"(?:^|_)password(?:$|_)",
    r"(?:^|_)tokens?(?:$|_)",
    r"(?:^|_)secret(?:$|_)",
    r"_key$",
    r"^key$",
    r"(?:^|_)credentials?(?:$|_)",
    r"(?:^|_)auth(?:$|_)",
    r"(?:^|_)jwt(?:$|_)",
    r"(?:^|_)bearer(?:$|_)",
    r"(?:^|_)authorization(?:$|_)",
]

SAFE_FIELDS = {"room_key", "entity_key"}


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Auth tokens travel through the handshake payload and the client
    configuration, so anything that looks like a credential is redacted
    before rendering.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            key_lower = str(key).lower()
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif key_lower in SAFE_FIELDS:
                sanitized[key] = value
            elif any(re.search(pattern, key_lower) for pattern in SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_component(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Tag each entry with the top-level component (client, realtime, api, ...).

    Must run after ``add_logger_name``.

    Args:
        _logger: Logger instance (unused)
        _method_name: Log method name (unused)
        event_dict: Event dictionary to enhance

    Returns:
        Event dictionary with a ``component`` field
    """
    logger_name = event_dict.get("logger") or ""
    parts = str(logger_name).split(".")
    if "component" not in event_dict and len(parts) > 1 and parts[0] == "ridemylay":
        event_dict["component"] = parts[1]
    return event_dict
