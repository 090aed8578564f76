"""Tests for session cookie snapshots."""

import json

import pytest

from moodle_scraper.browser.cookies import SessionCookie, load_cookies, save_cookies


def test_from_browser_session_cookie():
    cookie = SessionCookie.from_browser(
        {"name": "MoodleSession", "value": "abc", "domain": ".example.edu",
         "path": "/", "expires": -1, "httpOnly": True}
    )

    assert cookie.expiry is None
    assert cookie.to_browser() == {
        "name": "MoodleSession",
        "value": "abc",
        "domain": ".example.edu",
        "path": "/",
    }


def test_save_and_load(tmp_path):
    path = tmp_path / "state" / "cookies.json"
    cookies = [
        SessionCookie(name="MoodleSession", value="abc", domain="moodle.example.edu"),
        SessionCookie(name="MOODLEID1_", value="x", domain="moodle.example.edu", expiry=1893456000),
    ]

    save_cookies(path, cookies)

    assert [c["name"] for c in json.loads(path.read_text())] == ["MoodleSession", "MOODLEID1_"]
    assert load_cookies(path) == cookies


def test_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_cookies(tmp_path / "missing.json")


def test_load_malformed(tmp_path):
    path = tmp_path / "cookies.json"
    path.write_text(json.dumps([{"name": "only-a-name"}]))

    with pytest.raises(ValueError):
        load_cookies(path)
