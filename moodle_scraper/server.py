"""FastMCP server entry point for the Moodle Scraper MCP Server.

This module exposes Moodle course scraping through FastMCP tools. Every tool
call runs its own MoodleScraper with a fresh browser, built from the
MOODLE_* settings.
"""

import logging
import sys
from contextlib import asynccontextmanager

import structlog
from fastmcp import FastMCP

from moodle_scraper.browser.scraper import MoodleScraper
from moodle_scraper.config import settings
from moodle_scraper.extraction.profile import SelectorProfile, load_profile
from moodle_scraper.models import Credentials, ScraperOptions


# Configure structlog
def configure_logging() -> None:
    """Configure structlog for JSON or console output."""
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        # MCP stdio transport owns stdout
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


# Initialize logging
configure_logging()
logger = structlog.get_logger(__name__)

# Loaded in lifespan
profile: SelectorProfile | None = None


@asynccontextmanager
async def lifespan(server):
    """Manage server startup and shutdown."""
    global profile

    logger.info(
        "mcp_server_starting",
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    try:
        profile = load_profile(settings.selectors_path)
        logger.info("selectors_loaded", path=settings.selectors_path or "packaged")
    except Exception as e:
        logger.error("failed_to_load_selectors", error=str(e), exc_info=True)
        sys.exit(1)

    logger.info("mcp_server_startup_complete")

    try:
        yield
    finally:
        logger.info("mcp_server_shutdown_complete")


def build_scraper(class_url: str | None = None) -> MoodleScraper:
    """Create a MoodleScraper from settings.

    Raises:
        ConfigurationError: If MOODLE_EMAIL, MOODLE_PASSWORD or the course URL
            is missing or malformed.
    """
    credentials = Credentials.build(
        email=settings.moodle_email,
        password=settings.moodle_password.get_secret_value(),
        class_url=class_url or settings.moodle_class_url,
    )
    return MoodleScraper(
        credentials,
        ScraperOptions.from_settings(settings),
        profile=profile,
    )


# Create FastMCP instance
mcp = FastMCP("Moodle Scraper MCP Server", lifespan=lifespan)


# Tool: Scrape Course
@mcp.tool()
async def scrape_course(class_url: str | None = None) -> dict:
    """Scrape a Moodle course page.

    Logs in (waiting for a Duo push or other two-factor approval if one is
    requested) and extracts all four categories. Nothing is cached; each
    call starts a new browser.

    Args:
        class_url: Course page URL. Defaults to MOODLE_CLASS_URL.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: Course content (if success)
                - assignments: id, title, description, due_date,
                  submission_status, max_grade, current_grade, url
                - grades: item_name, grade, max_grade, percentage,
                  feedback, date_modified
                - files: name, url, size, type, download_url
                - integrations: title, url, due_date, completion_status, progress
            - error: message, type and (for login failures) reason
            - metadata: Response metadata
    """
    from moodle_scraper.tools.scrape import scrape_course as scrape_course_impl

    return await scrape_course_impl(lambda: build_scraper(class_url))


# Tool: List Courses
@mcp.tool()
async def list_courses() -> dict:
    """List the courses on the user's Moodle dashboard.

    Reuses the session saved at COOKIE_PATH when it is still valid, and
    saves the session there afterwards.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: Course list (if success)
                - courses: List of {id, title, short_name, url}
                - count: Number of courses (int)
            - metadata: Response metadata
    """
    from moodle_scraper.tools.scrape import list_courses as list_courses_impl

    return await list_courses_impl(build_scraper, cookie_path=settings.cookie_path)


# Tool: Check Session
@mcp.tool()
async def check_session() -> dict:
    """Check whether the session saved at COOKIE_PATH is still logged in.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: Session status (if success)
                - session_valid: Whether Moodle accepts the saved session (bool)
                - cookies_imported: Whether the cookie file was loaded (bool)
            - metadata: Response metadata
    """
    from moodle_scraper.tools.session import check_session as check_session_impl

    return await check_session_impl(build_scraper, cookie_path=settings.cookie_path)


if __name__ == "__main__":
    # Recommended: fastmcp run moodle_scraper/server.py
    logger.info("starting_mcp_server_directly")
    mcp.run()
