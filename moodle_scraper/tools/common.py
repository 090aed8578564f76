"""Common utilities for MCP tools.

This module provides shared functionality for all MCP tools including:
- Unified response formatting
- Mapping scraper exceptions to error types
"""

from datetime import datetime, timezone
from typing import Any

from moodle_scraper.browser.auth import AuthenticationError
from moodle_scraper.browser.scraper import NavigationError
from moodle_scraper.config import ConfigurationError


def build_success_response(
    data: dict[str, Any],
    source: str = "scraping",
) -> dict[str, Any]:
    """Build a standardized success response.

    Args:
        data: The response data.
        source: Where the data came from ("scraping" or "session").

    Returns:
        Standardized response dictionary.
    """
    return {
        "status": "success",
        "data": data,
        "metadata": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
            "source": source,
        },
    }


def build_error_response(
    message: str,
    error_type: str = "UNKNOWN_ERROR",
    **details: Any,
) -> dict[str, Any]:
    """Build a standardized error response.

    Args:
        message: Error message.
        error_type: Error type identifier.
        **details: Extra fields added to the error object.

    Returns:
        Standardized error response dictionary.
    """
    return {
        "status": "error",
        "error": {
            "message": message,
            "type": error_type,
            **details,
        },
        "metadata": {
            "fetched_at": datetime.now(timezone.utc).isoformat(),
        },
    }


def error_type_for(error: Exception) -> str:
    if isinstance(error, ConfigurationError):
        return "CONFIGURATION_ERROR"
    if isinstance(error, AuthenticationError):
        return "AUTHENTICATION_ERROR"
    if isinstance(error, NavigationError):
        return "NAVIGATION_ERROR"
    return "SCRAPING_ERROR"


def build_exception_response(error: Exception, action: str) -> dict[str, Any]:
    """Error response for an exception raised while running a tool.

    Authentication failures carry their ``reason`` so callers can tell a bad
    password from an unapproved Duo push.
    """
    details: dict[str, Any] = {}
    if isinstance(error, AuthenticationError):
        details["reason"] = error.reason.value

    return build_error_response(
        message=f"Failed to {action}: {error}",
        error_type=error_type_for(error),
        **details,
    )
