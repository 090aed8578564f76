"""Tests for MCP tools functionality.

This module tests the MCP tools including response formatting and the
mapping of scraper errors to error types.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from moodle_scraper.browser.auth import AuthenticationError, AuthFailure
from moodle_scraper.browser.scraper import NavigationError
from moodle_scraper.config import ConfigurationError
from moodle_scraper.models import AggregateResult, Course
from moodle_scraper.tools.common import (
    build_error_response,
    build_exception_response,
    build_success_response,
    error_type_for,
)
from moodle_scraper.tools.scrape import list_courses, scrape_course
from moodle_scraper.tools.session import check_session


def mock_scraper():
    """AsyncMock scraper usable as ``async with``."""
    scraper = AsyncMock()
    scraper.__aenter__.return_value = scraper
    return scraper


def test_build_success_response():
    """Test building success response."""
    data = {"assignments": [], "grades": []}

    response = build_success_response(data)

    assert response["status"] == "success"
    assert response["data"] == data
    assert response["metadata"]["source"] == "scraping"
    assert "fetched_at" in response["metadata"]


def test_build_error_response():
    """Test building error response."""
    response = build_error_response("Test error message", "TEST_ERROR", reason="why")

    assert response["status"] == "error"
    assert response["error"] == {
        "message": "Test error message",
        "type": "TEST_ERROR",
        "reason": "why",
    }
    assert "fetched_at" in response["metadata"]


@pytest.mark.parametrize(
    "error,expected",
    [
        (ConfigurationError("bad url"), "CONFIGURATION_ERROR"),
        (AuthenticationError(AuthFailure.INVALID_CREDENTIALS), "AUTHENTICATION_ERROR"),
        (NavigationError("no course"), "NAVIGATION_ERROR"),
        (RuntimeError("browser crashed"), "SCRAPING_ERROR"),
    ],
)
def test_error_type_for(error, expected):
    assert error_type_for(error) == expected


def test_exception_response_carries_auth_reason():
    error = AuthenticationError(AuthFailure.CHALLENGE_TIMEOUT, "not approved within 180 seconds")

    response = build_exception_response(error, "scrape course")

    assert response["error"]["type"] == "AUTHENTICATION_ERROR"
    assert response["error"]["reason"] == "challenge timeout"
    assert response["error"]["message"].startswith("Failed to scrape course: challenge timeout")


@pytest.mark.asyncio
async def test_scrape_course_success():
    """Test scrape_course returns the aggregate as plain data."""
    scraper = AsyncMock()
    scraper.scrape_all.return_value = AggregateResult()

    response = await scrape_course(lambda: scraper)

    scraper.scrape_all.assert_called_once()
    assert response["status"] == "success"
    assert response["data"] == {"assignments": [], "grades": [], "files": [], "integrations": []}


@pytest.mark.asyncio
async def test_scrape_course_configuration_error():
    """Test a configuration error is reported without touching a browser."""
    build = MagicMock(side_effect=ConfigurationError("Invalid credentials configuration"))

    response = await scrape_course(build)

    assert response["status"] == "error"
    assert response["error"]["type"] == "CONFIGURATION_ERROR"


@pytest.mark.asyncio
async def test_scrape_course_authentication_error():
    scraper = AsyncMock()
    scraper.scrape_all.side_effect = AuthenticationError(AuthFailure.CHALLENGE_DENIED)

    response = await scrape_course(lambda: scraper)

    assert response["error"]["type"] == "AUTHENTICATION_ERROR"
    assert response["error"]["reason"] == "challenge denied"


@pytest.mark.asyncio
async def test_list_courses_logs_in():
    scraper = mock_scraper()
    scraper.discover_courses.return_value = [
        Course(id="42", title="Databases", short_name="CS-340", url="https://m.example.edu/course/view.php?id=42")
    ]

    response = await list_courses(lambda: scraper)

    scraper.login.assert_called_once()
    scraper.import_cookies.assert_not_called()
    scraper.__aexit__.assert_called_once()
    assert response["data"]["count"] == 1
    assert response["data"]["courses"][0]["short_name"] == "CS-340"


@pytest.mark.asyncio
async def test_list_courses_reuses_saved_session(tmp_path):
    """Test a valid saved session skips login and is saved back."""
    cookie_path = str(tmp_path / "cookies.json")
    scraper = mock_scraper()
    scraper.import_cookies.return_value = True
    scraper.is_session_valid.return_value = True
    scraper.discover_courses.return_value = []

    response = await list_courses(lambda: scraper, cookie_path=cookie_path)

    scraper.login.assert_not_called()
    scraper.export_cookies.assert_called_once_with(cookie_path)
    assert response["data"] == {"courses": [], "count": 0}


@pytest.mark.asyncio
async def test_list_courses_error_handling():
    scraper = mock_scraper()
    scraper.login.side_effect = AuthenticationError(AuthFailure.INVALID_CREDENTIALS)

    response = await list_courses(lambda: scraper)

    assert response["status"] == "error"
    assert response["error"]["reason"] == "invalid credentials"
    scraper.__aexit__.assert_called_once()


@pytest.mark.asyncio
async def test_check_session_valid():
    scraper = mock_scraper()
    scraper.import_cookies.return_value = True
    scraper.is_session_valid.return_value = True

    response = await check_session(lambda: scraper, cookie_path="/tmp/cookies.json")

    assert response["status"] == "success"
    assert response["data"] == {"session_valid": True, "cookies_imported": True}
    assert response["metadata"]["source"] == "session"


@pytest.mark.asyncio
async def test_check_session_without_snapshot():
    scraper = mock_scraper()

    response = await check_session(lambda: scraper)

    scraper.is_session_valid.assert_not_called()
    assert response["data"] == {"session_valid": False, "cookies_imported": False}
