"""Offline browser backend over saved HTML documents.

SnapshotPage implements the page capability with BeautifulSoup so the
extractors and the login state machine can run against saved Moodle pages
without launching Chromium. Navigation looks documents up by URL; clicking
a link follows it and clicking a submit control posts the enclosing form to
``submit_form``, which subclasses override to model server behaviour.
"""

import asyncio
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag

from moodle_scraper.capability import URL_ATTRIBUTES

logger = structlog.get_logger(__name__)

_NON_VALUE_INPUTS = frozenset({"submit", "button", "image", "reset"})


class SnapshotElement:
    """Element capability over a BeautifulSoup tag."""

    def __init__(self, tag: Tag, page: "SnapshotPage") -> None:
        self.tag = tag
        self._page = page

    async def text(self) -> str:
        return self.tag.get_text()

    async def attribute(self, name: str) -> str | None:
        value = self.tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            value = " ".join(value)
        if name in URL_ATTRIBUTES:
            return urljoin(self._page.url, value)
        return value

    async def find(self, selector: str) -> "SnapshotElement | None":
        found = self.tag.select_one(selector)
        return SnapshotElement(found, self._page) if found is not None else None

    async def find_all(self, selector: str) -> list["SnapshotElement"]:
        return [SnapshotElement(t, self._page) for t in self.tag.select(selector)]

    async def type(self, text: str) -> None:
        self.tag["value"] = text

    async def click(self) -> None:
        await self._page.activate(self)

    def is_submit_control(self) -> bool:
        kind = (self.tag.get("type") or "").lower()
        if self.tag.name == "button":
            return kind in ("", "submit")
        return self.tag.name == "input" and kind in ("submit", "image")


class SnapshotPage:
    """Page capability over a set of HTML documents keyed by URL."""

    def __init__(
        self,
        documents: Mapping[str, str] | None = None,
        url: str = "about:blank",
        html: str = "",
    ) -> None:
        self.documents = dict(documents or {})
        self.history: list[str] = []
        self.submissions: list[tuple[str, dict[str, str]]] = []
        self.closed = False
        self._cookies: list[dict[str, Any]] = []
        self._url = url
        self._soup = BeautifulSoup(html, "html.parser")

    @classmethod
    def from_html(cls, html: str, url: str = "about:blank") -> "SnapshotPage":
        return cls({url: html}, url=url, html=html)

    @property
    def url(self) -> str:
        return self._url

    def load(self, url: str, html: str) -> None:
        """Replace the current document without going through ``goto``."""
        self._url = url
        self._soup = BeautifulSoup(html, "html.parser")
        self.history.append(url)

    def resolve_document(self, url: str) -> str:
        try:
            return self.documents[url]
        except KeyError:
            raise ConnectionError(f"No snapshot available for {url}") from None

    async def goto(self, url: str) -> None:
        logger.debug("navigating_to_snapshot", url=url)
        self.load(url, self.resolve_document(url))

    async def find(self, selector: str) -> SnapshotElement | None:
        found = self._soup.select_one(selector)
        return SnapshotElement(found, self) if found is not None else None

    async def find_all(self, selector: str) -> list[SnapshotElement]:
        return [SnapshotElement(t, self) for t in self._soup.select(selector)]

    async def content(self) -> str:
        return str(self._soup)

    async def submit(self, control: SnapshotElement) -> None:
        await self.activate(control)

    async def activate(self, element: SnapshotElement) -> None:
        tag = element.tag
        if tag.name == "a" and tag.get("href"):
            await self.goto(urljoin(self._url, tag["href"]))
            return

        form = tag.find_parent("form")
        if form is None or not element.is_submit_control():
            return

        action = urljoin(self._url, form.get("action") or self._url)
        fields = self.form_fields(form)
        self.submissions.append((action, fields))
        await self.submit_form(action, fields)

    async def submit_form(self, action: str, fields: dict[str, str]) -> None:
        """Handle a form post; by default navigates to the form action."""
        await self.goto(action)

    @staticmethod
    def form_fields(form: Tag) -> dict[str, str]:
        fields: dict[str, str] = {}
        for field in form.find_all(["input", "textarea"]):
            name = field.get("name")
            if not name:
                continue
            if field.name == "input" and (field.get("type") or "").lower() in _NON_VALUE_INPUTS:
                continue
            if field.name == "textarea":
                fields[name] = field.get("value", field.get_text())
            else:
                fields[name] = field.get("value", "")
        return fields

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> SnapshotElement | None:
        # Static documents never change on their own
        return await self.find(selector)

    async def wait_for_timeout(self, timeout_ms: float) -> None:
        await asyncio.sleep(0)

    async def wait_for_load_state(self) -> None:
        await asyncio.sleep(0)

    async def cookies(self) -> list[dict[str, Any]]:
        return [dict(c) for c in self._cookies]

    async def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self._cookies.extend(dict(c) for c in cookies)

    async def close(self) -> None:
        self.closed = True


class SnapshotBrowser:
    """Browser session capability handing out SnapshotPages over one document set."""

    def __init__(self, documents: Mapping[str, str] | None = None, page_factory: Any = None) -> None:
        self.documents = dict(documents or {})
        self._page_factory = page_factory or SnapshotPage
        self.pages: list[SnapshotPage] = []
        self.initialized = False
        self.shut_down = False

    async def initialize(self) -> None:
        self.initialized = True

    async def new_page(self) -> SnapshotPage:
        page = self._page_factory(self.documents)
        self.pages.append(page)
        return page

    async def shutdown(self) -> None:
        for page in self.pages:
            await page.close()
        self.shut_down = True
