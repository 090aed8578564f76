"""Moodle course scraper.

Logs into a Moodle site with a headless browser (handling Duo and other
two-factor challenges) and extracts assignments, grades, files and external
tool integrations from a course page.

Usage:
    credentials = Credentials.build(email, password, class_url)
    result = await scrape_moodle(credentials)
    print(result.to_json())
"""

from moodle_scraper.browser import (
    AuthenticationError,
    AuthFailure,
    AuthState,
    MoodleScraper,
    NavigationError,
    ScraperError,
)
from moodle_scraper.config import ConfigurationError
from moodle_scraper.models import (
    AggregateResult,
    Assignment,
    Course,
    Credentials,
    FileRecord,
    GradeRecord,
    IntegrationRecord,
    ScraperOptions,
)


async def scrape_moodle(
    credentials: Credentials,
    options: ScraperOptions | None = None,
) -> AggregateResult:
    """Scrape one course with a fresh browser; see MoodleScraper.scrape_all."""
    return await MoodleScraper(credentials, options).scrape_all()


__all__ = [
    "AggregateResult",
    "Assignment",
    "AuthFailure",
    "AuthState",
    "AuthenticationError",
    "ConfigurationError",
    "Course",
    "Credentials",
    "FileRecord",
    "GradeRecord",
    "IntegrationRecord",
    "MoodleScraper",
    "NavigationError",
    "ScraperError",
    "ScraperOptions",
    "scrape_moodle",
]
