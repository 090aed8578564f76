"""MCP tools module for Moodle data access.

This module provides FastMCP tools for accessing Moodle course data including:
- Full course scrape (assignments, grades, files, integrations)
- Dashboard course list
- Saved session check
"""

from moodle_scraper.tools.scrape import list_courses, scrape_course
from moodle_scraper.tools.session import check_session

__all__ = [
    "scrape_course",
    "list_courses",
    "check_session",
]
