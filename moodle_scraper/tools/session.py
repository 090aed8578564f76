"""MCP tool for checking a saved Moodle session.

This module provides the check_session tool which loads a cookie snapshot
into a fresh browser and reports whether Moodle still accepts it.
"""

from collections.abc import Callable
from typing import Any

import structlog

from moodle_scraper.browser.scraper import MoodleScraper
from moodle_scraper.tools.common import build_exception_response, build_success_response

logger = structlog.get_logger(__name__)


async def check_session(
    build_scraper: Callable[[], MoodleScraper],
    cookie_path: str | None = None,
) -> dict[str, Any]:
    """Check whether a saved session is still logged in.

    Args:
        build_scraper: Returns a fresh MoodleScraper.
        cookie_path: Cookie snapshot to load; without one the check runs on
            an empty browser and reports an invalid session.

    Returns:
        Standardized response containing:
            - session_valid: Whether the course page opens without a login form
            - cookies_imported: Whether the snapshot was loaded

    Examples:
        >>> response = await check_session(factory, "/data/moodle-cookies.json")
        >>> print(response["data"]["session_valid"])
        True
    """
    logger.info("check_session_called")

    try:
        async with build_scraper() as scraper:
            imported = False
            if cookie_path:
                imported = await scraper.import_cookies(cookie_path)

            session_valid = await scraper.is_session_valid() if imported else False

    except Exception as e:
        logger.error("check_session_failed", error=str(e), exc_info=True)
        return build_exception_response(e, "check session")

    return build_success_response(
        {"session_valid": session_valid, "cookies_imported": imported},
        source="session",
    )
