"""Record extractors: one DOM element in, one record (or None) out.

Each extractor resolves a bounded set of locator chains scoped to the
element, normalizes what it finds and fills every field, falling back to a
fixed default. If touching the element raises (for example it was detached
by a reload) the extractor logs a warning on the logger it was given and
returns None so the caller can skip that element.
"""

import hashlib
import re
from collections.abc import Sequence
from typing import Any

import structlog

from moodle_scraper.capability import Element
from moodle_scraper.extraction.normalizers import (
    UNKNOWN_TYPE,
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
from moodle_scraper.extraction.profile import (
    AssignmentSelectors,
    CourseSelectors,
    FileSelectors,
    GradeSelectors,
    IntegrationSelectors,
)
from moodle_scraper.extraction.resolution import (
    Locator,
    resolve_attribute,
    resolve_first,
    resolve_text,
)
from moodle_scraper.models import Assignment, Course, FileRecord, GradeRecord, IntegrationRecord

logger = structlog.get_logger(__name__)

UNKNOWN_ASSIGNMENT = "Unknown Assignment"
UNKNOWN_ITEM = "Unknown Item"
UNKNOWN_FILE = "Unknown File"
UNKNOWN_SIZE = "Unknown size"
UNKNOWN_COURSE = "Unknown Course"
DEFAULT_INTEGRATION_TITLE = "Zybook Activity"
UNGRADED = "-"

ANY_LINK = (Locator(css="a[href]"),)

_ID_PARAM = re.compile(r"[?&]id=(\d+)")
_WIDTH = re.compile(r"width\s*:\s*(\d+(?:\.\d+)?)%")


async def _link_text(element: Element, chain: Sequence[Locator]) -> str | None:
    """Text of the element if it is itself a link, else of the first link in it."""
    if await element.attribute("href"):
        return clean_text(await element.text()) or None
    return await resolve_text(element, chain)


async def _link(element: Element, chain: Sequence[Locator]) -> str:
    """Best-effort URL: the link chain, then the element's own href, then any link inside it."""
    return (
        await resolve_attribute(element, chain, "href")
        or await element.attribute("href")
        or await resolve_attribute(element, ANY_LINK, "href")
        or ""
    )


def record_id(url: str, title: str) -> str:
    """Moodle's ``id=`` parameter, or a stable digest when the URL has none."""
    match = _ID_PARAM.search(url)
    if match:
        return match.group(1)
    return hashlib.sha1(f"{title}|{url}".encode("utf-8")).hexdigest()[:12]


async def extract_assignment(
    element: Element,
    selectors: AssignmentSelectors,
    fallback_url: str = "",
    log: Any = None,
) -> Assignment | None:
    """Build an Assignment from a course-page activity or assignment link.

    Args:
        element: The activity element or the assignment anchor itself.
        selectors: Assignment locator chains from the selector profile.
        fallback_url: URL used when the element carries no link at all,
            normally the page the element was found on.
        log: structlog logger receiving extraction warnings.

    Returns:
        The Assignment, or None if the element could not be read.
    """
    log = log or logger
    try:
        title = (
            await resolve_text(element, selectors.title)
            or await _link_text(element, selectors.link)
            or UNKNOWN_ASSIGNMENT
        )
        link = await _link(element, selectors.link)
        url = link or fallback_url

        due_date = parse_date(await resolve_text(element, selectors.due_date))
        submission_status = classify_submission(await resolve_text(element, selectors.status))
        description = await resolve_text(element, selectors.description) or ""
        current_grade, max_grade = parse_score(await resolve_text(element, selectors.grade))

        return Assignment(
            id=record_id(link, title),
            title=title,
            description=description,
            due_date=due_date,
            submission_status=submission_status,
            max_grade=max_grade,
            current_grade=current_grade,
            url=url,
        )

    except Exception as e:
        log.warning("assignment_extraction_failed", error=str(e))
        return None


async def extract_grade(
    element: Element,
    selectors: GradeSelectors,
    log: Any = None,
) -> GradeRecord | None:
    """Build a GradeRecord from one gradebook row.

    Grade and maximum are kept as displayed text. The percentage is computed
    only when both contain a number and the maximum is positive.
    """
    log = log or logger
    try:
        item_name = await resolve_text(element, selectors.item_name) or UNKNOWN_ITEM
        grade_text = await resolve_text(element, selectors.grade) or UNGRADED
        max_grade_text = await resolve_text(element, selectors.max_grade) or UNGRADED

        ratio = percentage(parse_number(grade_text), parse_grade_maximum(max_grade_text))

        return GradeRecord(
            item_name=item_name,
            grade=grade_text,
            max_grade=max_grade_text,
            percentage=ratio,
            feedback=await resolve_text(element, selectors.feedback),
            date_modified=parse_date(await resolve_text(element, selectors.date_modified)),
        )

    except Exception as e:
        log.warning("grade_extraction_failed", error=str(e))
        return None


async def _file_type(element: Element, selectors: FileSelectors, url: str) -> str:
    explicit = await resolve_text(element, selectors.type)
    if explicit:
        return explicit.lower()

    inferred = infer_type_from_url(url)
    if inferred != UNKNOWN_TYPE:
        return inferred

    icon = await resolve_first(element, selectors.icon)
    if icon is None:
        return UNKNOWN_TYPE
    return infer_type_from_icon(await icon.attribute("src"), await icon.attribute("class"))


async def extract_file(
    element: Element,
    selectors: FileSelectors,
    log: Any = None,
) -> FileRecord | None:
    """Build a FileRecord from a resource or folder activity."""
    log = log or logger
    try:
        name = (
            await resolve_text(element, selectors.name)
            or await _link_text(element, selectors.link)
            or UNKNOWN_FILE
        )
        url = await _link(element, selectors.link)
        size = await resolve_text(element, selectors.size) or UNKNOWN_SIZE
        file_type = await _file_type(element, selectors, url)

        return FileRecord(
            name=name,
            url=url,
            size=size,
            type=file_type,
            download_url=url,
        )

    except Exception as e:
        log.warning("file_extraction_failed", error=str(e))
        return None


async def _progress(element: Element, selectors: IntegrationSelectors) -> int | None:
    container = await resolve_first(element, selectors.progress)
    if container is None:
        return None

    progress = parse_progress(await container.text())
    if progress is not None:
        return progress

    bar = await resolve_first(container, selectors.progress_bar)
    if bar is None:
        return None
    match = _WIDTH.search(await bar.attribute("style") or "")
    return int(float(match.group(1))) if match else None


async def extract_integration(
    element: Element,
    selectors: IntegrationSelectors,
    log: Any = None,
) -> IntegrationRecord | None:
    """Build an IntegrationRecord from a zyBooks link or LTI activity."""
    log = log or logger
    try:
        title = (
            await resolve_text(element, selectors.title)
            or await _link_text(element, selectors.link)
            or DEFAULT_INTEGRATION_TITLE
        )
        url = await _link(element, selectors.link)

        status_element = await resolve_first(element, selectors.status)
        if status_element is None:
            completion_status = classify_completion(None)
        else:
            completion_status = classify_completion(
                await status_element.text(), await status_element.attribute("class")
            )

        return IntegrationRecord(
            title=title,
            url=url,
            due_date=parse_date(await resolve_text(element, selectors.due_date)),
            completion_status=completion_status,
            progress=await _progress(element, selectors),
        )

    except Exception as e:
        log.warning("integration_extraction_failed", error=str(e))
        return None


async def extract_course(
    element: Element,
    selectors: CourseSelectors,
    log: Any = None,
) -> Course | None:
    """Build a Course from a dashboard card or navigation link."""
    log = log or logger
    try:
        title = (
            await resolve_text(element, selectors.title)
            or await _link_text(element, selectors.link)
            or UNKNOWN_COURSE
        )
        url = await _link(element, selectors.link)

        return Course(
            id=record_id(url, title),
            title=title,
            short_name=await resolve_text(element, selectors.short_name) or "",
            url=url,
        )

    except Exception as e:
        log.warning("course_extraction_failed", error=str(e))
        return None
