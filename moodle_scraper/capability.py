"""Browser capability interface consumed by the scraper core.

The authenticator, extractors and orchestrator only talk to these protocols.
``moodle_scraper.browser.context`` adapts Playwright to them and
``moodle_scraper.browser.snapshot`` adapts static HTML documents.
"""

from typing import Any, Protocol

# Attributes whose value is returned resolved against the document URL,
# the way the DOM ``href``/``src`` properties behave.
URL_ATTRIBUTES = frozenset({"href", "src", "action"})


class Element(Protocol):
    """A handle to one element of the rendered document."""

    async def text(self) -> str:
        """Text content of the element and its descendants ("" if none)."""
        ...

    async def attribute(self, name: str) -> str | None: ...

    async def find(self, selector: str) -> "Element | None": ...

    async def find_all(self, selector: str) -> list["Element"]: ...

    async def type(self, text: str) -> None:
        """Replace the element's input value with ``text``."""
        ...

    async def click(self) -> None: ...


class Page(Protocol):
    """A single browser tab. Not safe for concurrent use."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str) -> None:
        """Navigate and wait for the page to settle."""
        ...

    async def find(self, selector: str) -> Element | None: ...

    async def find_all(self, selector: str) -> list[Element]: ...

    async def content(self) -> str:
        """Serialized HTML of the current document."""
        ...

    async def submit(self, control: Element) -> None:
        """Click a submit control and wait for the ensuing navigation to settle."""
        ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> Element | None:
        """Wait for ``selector`` to appear; None when the timeout expires."""
        ...

    async def wait_for_timeout(self, timeout_ms: float) -> None: ...

    async def wait_for_load_state(self) -> None:
        """Wait for an in-flight navigation to finish loading; never raises on timeout."""
        ...

    async def cookies(self) -> list[dict[str, Any]]: ...

    async def set_cookies(self, cookies: list[dict[str, Any]]) -> None: ...

    async def close(self) -> None: ...


class BrowserSession(Protocol):
    """Launches pages; owns the underlying browser process."""

    async def initialize(self) -> None: ...

    async def new_page(self) -> Page: ...

    async def shutdown(self) -> None: ...
