"""Tests for the pure field normalizers."""

from datetime import datetime

import pytest

from moodle_scraper.extraction.normalizers import (
    classify_completion,
    classify_submission,
    clean_text,
    infer_type_from_icon,
    infer_type_from_url,
    parse_date,
    parse_grade_maximum,
    parse_number,
    parse_progress,
    parse_score,
    percentage,
)


def test_clean_text_collapses_whitespace():
    assert clean_text("  Essay\n\n\t 1  ") == "Essay 1"
    assert clean_text(None) == ""
    assert clean_text(" \n\t ") == ""


@pytest.mark.parametrize("raw", ["a  b", "\ta\nb\n", "  spaced   out\r\ntext  ", ""])
def test_clean_text_is_idempotent(raw):
    assert clean_text(clean_text(raw)) == clean_text(raw)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Due 12/25/2025", datetime(2025, 12, 25)),
        ("12-25-2025", datetime(2025, 12, 25)),
        ("Due: 3/4/25, 11:59 PM", datetime(2025, 3, 4)),
        ("December 25, 2025", datetime(2025, 12, 25)),
        ("Sep. 5, 2025", datetime(2025, 9, 5)),
        ("Opened 2025-09-01", datetime(2025, 9, 1)),
        ("Friday, 5 September 2025, 11:59 PM", datetime(2025, 9, 5)),
        ("29 February 2024", datetime(2024, 2, 29)),
        ("Opened 2011-03-04", datetime(2011, 3, 4)),
        ("Closes 2012-12-01 23:59", datetime(2012, 12, 1)),
    ],
)
def test_parse_date(text, expected):
    assert parse_date(text) == expected


@pytest.mark.parametrize(
    "text",
    [None, "", "invalid date", "2/29/2023", "13/45/2025", "Smarch 3, 2025", "2025-02-30"],
)
def test_parse_date_rejects_invalid(text):
    """Test impossible or unrecognized dates give None, never a bogus value."""
    assert parse_date(text) is None


def test_parse_date_skips_invalid_match():
    """Test an impossible first date does not hide a valid later one."""
    assert parse_date("2/30/2025 or 3/1/2025") == datetime(2025, 3, 1)


def test_parse_number():
    assert parse_number("Grade: 42.5 points") == 42.5
    assert parse_number("A+") is None
    assert parse_number(None) is None


def test_parse_grade_maximum():
    assert parse_grade_maximum("0–100") == 100.0
    assert parse_grade_maximum("0-20") == 20.0
    assert parse_grade_maximum("out of 50") == 50.0
    assert parse_grade_maximum("Pass/Fail") is None


@pytest.mark.parametrize(
    "grade,maximum,expected",
    [
        (45.0, 50.0, 90.0),
        (5.0, 0.0, None),
        (5.0, -10.0, None),
        (None, 100.0, None),
        (5.0, None, None),
        (1e308, 1e-308, None),
    ],
)
def test_percentage(grade, maximum, expected):
    """Test the ratio is None whenever it would be undefined or non-finite."""
    assert percentage(grade, maximum) == expected


def test_parse_score():
    assert parse_score("85 / 100") == (85.0, 100.0)
    assert parse_score("18/20") == (18.0, 20.0)
    assert parse_score("92") == (92.0, 100.0)
    assert parse_score("Not graded") == (None, 0.0)
    assert parse_score(None) == (None, 0.0)


def test_parse_progress():
    assert parse_progress("75% complete") == 75
    assert parse_progress("Progress: 120 %") == 120
    assert parse_progress("45.5% complete") == 45
    assert parse_progress("99.9%") == 99
    assert parse_progress("half done") is None


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://moodle.example.edu/pluginfile.php/1/notes.PDF", "pdf"),
        ("https://moodle.example.edu/files/archive.tar.gz?forcedownload=1", "gz"),
        ("https://moodle.example.edu/mod/resource/view.php?id=4", "unknown"),
        ("https://moodle.example.edu/files/README", "unknown"),
        ("https://moodle.example.edu/files/data.xyz123", "unknown"),
        ("", "unknown"),
    ],
)
def test_infer_type_from_url(url, expected):
    assert infer_type_from_url(url) == expected


def test_infer_type_from_icon():
    assert infer_type_from_icon("/theme/image.php/boost/core/1/f/pdf-24", None) == "pdf"
    assert infer_type_from_icon(None, "icon fa-file-video") == "video"
    assert infer_type_from_icon("/pix/i/unknown.svg", "icon") == "unknown"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Submitted for grading", "submitted"),
        ("Complete", "submitted"),
        ("Not submitted", "not_submitted"),
        ("No submission", "not_submitted"),
        ("Assignment is overdue by: 2 days", "late"),
        ("Submitted late", "late"),
        ("", "not_submitted"),
        (None, "not_submitted"),
        ("Draft (not submitted)", "not_submitted"),
    ],
)
def test_classify_submission(text, expected):
    assert classify_submission(text) == expected


@pytest.mark.parametrize(
    "text,classes,expected",
    [
        ("Completed", None, "Completed"),
        ("Not complete", None, "In Progress"),
        ("In progress", None, "In Progress"),
        ("", "completion-y", "Completed"),
        ("", "completion-n", "In Progress"),
        (None, None, "Not started"),
    ],
)
def test_classify_completion(text, classes, expected):
    assert classify_completion(text, classes) == expected
