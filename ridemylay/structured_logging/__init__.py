"""
Structured logging package for RideMyLay realtime.

All imports should use explicit paths like
'from ridemylay.structured_logging.enhanced_logging_config import get_logger'.

The package is named 'structured_logging' rather than 'logging' to avoid
namespace conflicts with the standard library module.
"""

__all__: list[str] = []
