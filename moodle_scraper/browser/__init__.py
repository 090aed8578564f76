"""Browser automation for Moodle scraping.

This module provides browser session backends (Playwright for live sites,
BeautifulSoup snapshots for saved pages), the login state machine and the
scraper that ties them together.
"""

from moodle_scraper.browser.auth import AuthenticationError, AuthFailure, AuthState, Authenticator
from moodle_scraper.browser.context import BrowserManager
from moodle_scraper.browser.scraper import (
    BrowserNotInitializedError,
    MoodleScraper,
    NavigationError,
    ScraperError,
)
from moodle_scraper.browser.snapshot import SnapshotBrowser, SnapshotPage

__all__ = [
    "AuthFailure",
    "AuthState",
    "AuthenticationError",
    "Authenticator",
    "BrowserManager",
    "BrowserNotInitializedError",
    "MoodleScraper",
    "NavigationError",
    "ScraperError",
    "SnapshotBrowser",
    "SnapshotPage",
]
