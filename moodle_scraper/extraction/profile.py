"""Selector profile: every locator chain the scraper uses, loaded from YAML.

Adding support for another Moodle theme means editing selectors.yaml (or
pointing SELECTORS_PATH at a copy), not touching extraction code.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import BaseModel, BeforeValidator, ConfigDict

from moodle_scraper.extraction.resolution import Locator, as_locators

DEFAULT_SELECTORS_PATH = Path(__file__).resolve().parent.parent / "selectors.yaml"

LocatorChain = Annotated[tuple[Locator, ...], BeforeValidator(as_locators)]


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TwoFactorSelectors(_Section):
    markers: LocatorChain
    url_markers: tuple[str, ...] = ()
    content_markers: tuple[str, ...] = ()
    denial_text: tuple[str, ...] = ()
    push_controls: LocatorChain = ()
    code_inputs: LocatorChain = ()
    code_submit: LocatorChain = ()


class AuthSelectors(_Section):
    login_form_markers: LocatorChain
    logged_in_markers: LocatorChain
    username_fields: LocatorChain
    password_fields: LocatorChain
    submit_controls: LocatorChain
    token_fields: LocatorChain = ()
    error_regions: LocatorChain = ()
    failure_words: tuple[str, ...] = ("invalid", "incorrect", "failed")
    login_links: LocatorChain = ()
    login_paths: tuple[str, ...] = ()
    two_factor: TwoFactorSelectors


class CourseSelectors(_Section):
    content_markers: LocatorChain
    dashboard_path: str = "/my/"
    items: LocatorChain = ()
    nav_items: LocatorChain = ()
    link: LocatorChain = ()
    title: LocatorChain = ()
    short_name: LocatorChain = ()


class AssignmentSelectors(_Section):
    items: LocatorChain
    calendar_items: LocatorChain = ()
    title: LocatorChain
    link: LocatorChain
    due_date: LocatorChain
    status: LocatorChain
    description: LocatorChain
    grade: LocatorChain


class GradeSelectors(_Section):
    report_links: LocatorChain
    report_paths: tuple[str, ...] = ()
    items: LocatorChain
    item_name: LocatorChain
    grade: LocatorChain
    max_grade: LocatorChain
    feedback: LocatorChain
    date_modified: LocatorChain


class FileSelectors(_Section):
    items: LocatorChain
    name: LocatorChain
    link: LocatorChain
    size: LocatorChain
    type: LocatorChain
    icon: LocatorChain


class IntegrationSelectors(_Section):
    items: LocatorChain
    title: LocatorChain
    link: LocatorChain
    due_date: LocatorChain
    status: LocatorChain
    progress: LocatorChain
    progress_bar: LocatorChain


class SelectorProfile(_Section):
    auth: AuthSelectors
    course: CourseSelectors
    assignments: AssignmentSelectors
    grades: GradeSelectors
    files: FileSelectors
    integrations: IntegrationSelectors


def load_profile(path: str | Path | None = None) -> SelectorProfile:
    """Load and validate a selector profile.

    Args:
        path: YAML file to read. If None, uses the packaged selectors.yaml.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
    """
    if path is None:
        return default_profile()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Selector profile not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return SelectorProfile.model_validate(data)


@lru_cache(maxsize=1)
def default_profile() -> SelectorProfile:
    with open(DEFAULT_SELECTORS_PATH, encoding="utf-8") as f:
        return SelectorProfile.model_validate(yaml.safe_load(f))
