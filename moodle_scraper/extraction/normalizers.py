"""Pure field normalizers used by the record extractors.

Nothing here touches the browser. Every function accepts messy text pulled
out of a Moodle page and either returns a clean value or None; none of them
raise on bad input.
"""

import math
import re
from datetime import datetime
from urllib.parse import urlparse

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"(\d+\.?\d*)")
_RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*[–—-]\s*(\d+(?:\.\d+)?)")
_SCORE = re.compile(r"(\d+\.?\d*)[\s/]*(\d+\.?\d*)?")
_PERCENT = re.compile(r"(\d+(?:\.\d+)?)\s*%")

_NUMERIC_DATE = re.compile(r"(?<![\d-])(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})(?![\d-])")
_MONTH_FIRST_DATE = re.compile(r"([A-Za-z]+)\.? (\d{1,2}), (\d{4})")
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_DAY_FIRST_DATE = re.compile(r"(\d{1,2}) ([A-Za-z]+)\.? (\d{4})")

_MONTH_FORMATS = ("%B", "%b")

# Extensions accepted when guessing a file type from its URL.
KNOWN_EXTENSIONS = frozenset({
    "pdf", "doc", "docx", "odt", "rtf", "txt", "md",
    "xls", "xlsx", "ods", "csv",
    "ppt", "pptx", "odp",
    "png", "jpg", "jpeg", "gif", "svg", "webp",
    "mp4", "mov", "avi", "mkv", "webm",
    "mp3", "wav", "ogg", "m4a",
    "zip", "rar", "7z", "tar", "gz",
    "ipynb", "py", "java", "c", "cpp", "h", "js", "html",
})

# Order matters: the first token found in the icon src/class wins.
ICON_TYPES = ("pdf", "document", "spreadsheet", "presentation", "image", "video", "audio")

UNKNOWN_TYPE = "unknown"


def clean_text(text: str | None) -> str:
    """Collapse whitespace runs (newlines and tabs included) and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def _month_number(name: str) -> int | None:
    for fmt in _MONTH_FORMATS:
        try:
            return datetime.strptime(name, fmt).month
        except ValueError:
            continue
    return None


def _full_year(year: str) -> int | None:
    if len(year) == 4:
        return int(year)
    if len(year) == 2:
        # Same pivot as strptime's %y
        value = int(year)
        return 2000 + value if value < 69 else 1900 + value
    return None


def _calendar_date(year: int | None, month: int | None, day: int) -> datetime | None:
    if year is None or month is None:
        return None
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _numeric(match: re.Match) -> datetime | None:
    month, day, year = match.groups()
    return _calendar_date(_full_year(year), int(month), int(day))


def _month_first(match: re.Match) -> datetime | None:
    month, day, year = match.groups()
    return _calendar_date(int(year), _month_number(month), int(day))


def _iso(match: re.Match) -> datetime | None:
    year, month, day = match.groups()
    return _calendar_date(int(year), int(month), int(day))


def _day_first(match: re.Match) -> datetime | None:
    day, month, year = match.groups()
    return _calendar_date(int(year), _month_number(month), int(day))


DATE_PATTERNS = (
    (_NUMERIC_DATE, _numeric),
    (_MONTH_FIRST_DATE, _month_first),
    (_ISO_DATE, _iso),
    (_DAY_FIRST_DATE, _day_first),
)


def parse_date(text: str | None) -> datetime | None:
    """Parse the first recognizable calendar date in free text.

    Patterns are tried in order: ``M/D/Y`` (or with dashes), ``Month D, YYYY``,
    ``YYYY-MM-DD`` and ``D Month YYYY``. A pattern that matches but names an
    impossible day (``2/29/2023``) falls through to the next one. The result
    is midnight of that day, or None.
    """
    if not text:
        return None

    for pattern, build in DATE_PATTERNS:
        for match in pattern.finditer(text):
            parsed = build(match)
            if parsed is not None:
                return parsed
    return None


def parse_number(text: str | None) -> float | None:
    """First numeric substring as a float, or None."""
    if not text:
        return None
    match = _NUMBER.search(text)
    if not match:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def parse_grade_maximum(text: str | None) -> float | None:
    """Maximum grade from text like ``100``, ``out of 50`` or a ``0–100`` range."""
    if not text:
        return None
    match = _RANGE.search(text)
    if match:
        return float(match.group(2))
    return parse_number(text)


def percentage(grade: float | None, maximum: float | None) -> float | None:
    """grade / maximum * 100, or None when the ratio is undefined."""
    if grade is None or maximum is None or maximum <= 0:
        return None
    result = grade / maximum * 100
    return result if math.isfinite(result) else None


def parse_score(text: str | None) -> tuple[float | None, float]:
    """Split ``"85 / 100"`` into (85.0, 100.0).

    A lone number is read as out of 100; no number at all gives (None, 0.0).
    """
    if not text:
        return None, 0.0
    match = _SCORE.search(text)
    if not match:
        return None, 0.0
    current = float(match.group(1))
    maximum = float(match.group(2)) if match.group(2) else 100.0
    return current, maximum


def parse_progress(text: str | None) -> int | None:
    """Number before the first ``%`` sign truncated to an int, or None. Not clamped."""
    if not text:
        return None
    match = _PERCENT.search(text)
    return int(float(match.group(1))) if match else None


def infer_type_from_url(url: str | None) -> str:
    if not url:
        return UNKNOWN_TYPE
    path = urlparse(url).path
    last_segment = path.rsplit("/", 1)[-1]
    if "." not in last_segment:
        return UNKNOWN_TYPE
    extension = last_segment.rsplit(".", 1)[-1].lower()
    return extension if extension in KNOWN_EXTENSIONS else UNKNOWN_TYPE


def infer_type_from_icon(src: str | None, class_name: str | None) -> str:
    haystack = f"{src or ''} {class_name or ''}".lower()
    for token in ICON_TYPES:
        if token in haystack:
            return token
    return UNKNOWN_TYPE


def classify_submission(text: str | None) -> str:
    """Bucket a Moodle submission status line."""
    status = clean_text(text).lower()
    if not status:
        return "not_submitted"
    if any(p in status for p in ("not submitted", "no submission", "no attempt", "not complete")):
        return "not_submitted"
    if "late" in status or "overdue" in status:
        return "late"
    if "submitted" in status or "complete" in status:
        return "submitted"
    return "not_submitted"


def classify_completion(text: str | None, class_name: str | None = None) -> str:
    """Bucket an activity completion marker into Completed / In Progress / Not started."""
    status = clean_text(text).lower()
    classes = (class_name or "").lower()
    if "incomplete" in status or "not complete" in status:
        return "In Progress"
    if "complete" in status or "completion-y" in classes:
        return "Completed"
    if "progress" in status or "completion-n" in classes:
        return "In Progress"
    return "Not started"
