"""Session cookie snapshots.

The snapshot is a caller-owned JSON file holding an ordered list of
``{name, value, domain, path, expiry}`` records. The scraper never reads or
writes it on its own; see ``MoodleScraper.import_cookies`` and
``MoodleScraper.export_cookies``.
"""

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter

logger = structlog.get_logger(__name__)


class SessionCookie(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    domain: str
    path: str = "/"
    expiry: float | None = None

    @classmethod
    def from_browser(cls, cookie: dict[str, Any]) -> "SessionCookie":
        """Convert a browser cookie dict; session cookies (expires -1) get no expiry."""
        expires = cookie.get("expires", cookie.get("expiry"))
        if expires is not None and expires < 0:
            expires = None
        return cls(
            name=cookie["name"],
            value=cookie["value"],
            domain=cookie.get("domain", ""),
            path=cookie.get("path") or "/",
            expiry=expires,
        )

    def to_browser(self) -> dict[str, Any]:
        cookie: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
        }
        if self.expiry is not None:
            cookie["expires"] = self.expiry
        return cookie


_COOKIE_LIST = TypeAdapter(list[SessionCookie])


def save_cookies(path: str | Path, cookies: list[SessionCookie]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([c.model_dump() for c in cookies], f, indent=2)
    logger.info("cookies_saved", path=str(path), count=len(cookies))


def load_cookies(path: str | Path) -> list[SessionCookie]:
    """Read a cookie snapshot.

    Raises:
        FileNotFoundError: If the snapshot does not exist.
        ValueError: If the file is not a valid cookie list.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cookie snapshot not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    cookies = _COOKIE_LIST.validate_python(data)
    logger.info("cookies_loaded", path=str(path), count=len(cookies))
    return cookies
