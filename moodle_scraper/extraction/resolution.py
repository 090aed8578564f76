"""Selector resolution over ordered locator chains.

A locator chain lists the most specific selector first. Resolution walks it
in order and stops at the first hit, which lets one chain cover several
Moodle themes without per-site code.
"""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from moodle_scraper.capability import Element, Page
from moodle_scraper.extraction.normalizers import clean_text


class Locator(BaseModel):
    """A CSS selector with an optional case-insensitive text-contains filter."""

    model_config = ConfigDict(frozen=True)

    css: str
    text: str | None = None

    async def matches(self, element: Element) -> bool:
        if self.text is None:
            return True
        return self.text.lower() in clean_text(await element.text()).lower()

    async def locate(self, scope: Element | Page) -> Element | None:
        if self.text is None:
            return await scope.find(self.css)
        for candidate in await scope.find_all(self.css):
            if await self.matches(candidate):
                return candidate
        return None


def as_locators(entries: Iterable[str | dict | Locator]) -> tuple[Locator, ...]:
    """Normalize YAML entries (plain CSS strings or ``{css, text}`` maps)."""
    locators = []
    for entry in entries:
        if isinstance(entry, Locator):
            locators.append(entry)
        elif isinstance(entry, str):
            locators.append(Locator(css=entry))
        else:
            locators.append(Locator(**entry))
    return tuple(locators)


async def resolve_first(scope: Element | Page, locators: Sequence[Locator]) -> Element | None:
    """Return the element matched by the first locator that matches anything.

    Returns None when the chain is exhausted.
    """
    for locator in locators:
        found = await locator.locate(scope)
        if found is not None:
            return found
    return None


async def resolve_text(scope: Element | Page, locators: Sequence[Locator]) -> str | None:
    """Cleaned text of the first resolved element; None if nothing resolved or it is blank."""
    found = await resolve_first(scope, locators)
    if found is None:
        return None
    return clean_text(await found.text()) or None


async def resolve_attribute(
    scope: Element | Page, locators: Sequence[Locator], name: str
) -> str | None:
    found = await resolve_first(scope, locators)
    if found is None:
        return None
    return await found.attribute(name) or None


async def any_present(scope: Element | Page, locators: Sequence[Locator]) -> bool:
    return await resolve_first(scope, locators) is not None


def join_css(locators: Sequence[Locator]) -> str:
    """One selector group matching every plain-CSS locator, in document order."""
    return ", ".join(loc.css for loc in locators if loc.text is None)
