"""Extraction engine: normalizers, selector resolution and record extractors.

Everything here works against the browser capability protocols, so it runs
the same on a live Playwright page and on a saved HTML snapshot.
"""

from moodle_scraper.extraction.extractors import (
    extract_assignment,
    extract_course,
    extract_file,
    extract_grade,
    extract_integration,
)
from moodle_scraper.extraction.profile import SelectorProfile, default_profile, load_profile
from moodle_scraper.extraction.resolution import Locator, resolve_first, resolve_text

__all__ = [
    "Locator",
    "SelectorProfile",
    "default_profile",
    "extract_assignment",
    "extract_course",
    "extract_file",
    "extract_grade",
    "extract_integration",
    "load_profile",
    "resolve_first",
    "resolve_text",
]
