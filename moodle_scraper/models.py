"""Value records produced by the scraper.

Every record is a frozen Pydantic model: extractors build them from one DOM
snapshot and nothing mutates them afterwards.
"""

from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from moodle_scraper.config import ConfigurationError, Settings

SubmissionStatus = Literal["submitted", "not_submitted", "late"]


class Credentials(BaseModel):
    """Login identity and the course page to scrape.

    The password is a SecretStr so the model can be logged or printed safely.
    """

    model_config = ConfigDict(frozen=True)

    email: str
    password: SecretStr
    class_url: str

    @field_validator("email")
    @classmethod
    def _email_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("email must not be empty")
        return value

    @field_validator("password")
    @classmethod
    def _password_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("password must not be empty")
        return value

    @field_validator("class_url")
    @classmethod
    def _class_url_absolute(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"class_url must be an absolute http(s) URL, got {value!r}")
        return value

    @property
    def origin(self) -> str:
        """Scheme and host of the Moodle site, e.g. ``https://moodle.example.edu``."""
        parsed = urlparse(self.class_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @classmethod
    def build(cls, email: str, password: str, class_url: str) -> "Credentials":
        """Validate raw values, raising ConfigurationError with a readable reason."""
        try:
            return cls(email=email, password=SecretStr(password), class_url=class_url)
        except ValidationError as e:
            reasons = "; ".join(err["msg"] for err in e.errors())
            raise ConfigurationError(f"Invalid credentials configuration: {reasons}") from e


def credentials_from_settings(settings: Settings) -> Credentials:
    """Build Credentials from MOODLE_* settings."""
    return Credentials.build(
        email=settings.moodle_email,
        password=settings.moodle_password.get_secret_value(),
        class_url=settings.moodle_class_url,
    )


class ScraperOptions(BaseModel):
    """Browser and login behaviour for one scraper instance."""

    model_config = ConfigDict(frozen=True)

    headless: bool = True
    timeout_ms: int = Field(default=30000, gt=0)
    wait_for_elements: bool = True
    two_factor_timeout_seconds: float = Field(default=180, gt=0)
    two_factor_poll_seconds: float = Field(default=3, gt=0)
    strict_login_verification: bool = False
    otp_code_file: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScraperOptions":
        return cls(
            headless=settings.browser_headless,
            timeout_ms=settings.browser_timeout_ms,
            wait_for_elements=settings.wait_for_elements,
            two_factor_timeout_seconds=settings.two_factor_timeout_seconds,
            two_factor_poll_seconds=settings.two_factor_poll_seconds,
            strict_login_verification=settings.strict_login_verification,
            otp_code_file=settings.otp_code_file,
        )


class Assignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    due_date: datetime | None
    submission_status: SubmissionStatus
    max_grade: float
    current_grade: float | None
    url: str


class GradeRecord(BaseModel):
    """One gradebook row.

    ``grade`` and ``max_grade`` keep the text shown by Moodle so letter and
    pass/fail scales survive; ``percentage`` is only set when both parse.
    """

    model_config = ConfigDict(frozen=True)

    item_name: str
    grade: str
    max_grade: str
    percentage: float | None
    feedback: str | None
    date_modified: datetime | None


class FileRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    size: str
    type: str
    download_url: str


class IntegrationRecord(BaseModel):
    """An external tool activity (zyBooks and other LTI links)."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    due_date: datetime | None
    completion_status: str
    progress: int | None


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    short_name: str
    url: str


class AggregateResult(BaseModel):
    """Everything scraped from one course, in document order per category."""

    model_config = ConfigDict(frozen=True)

    assignments: list[Assignment] = Field(default_factory=list)
    grades: list[GradeRecord] = Field(default_factory=list)
    files: list[FileRecord] = Field(default_factory=list)
    integrations: list[IntegrationRecord] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain nested form: ISO-8601 timestamps, None kept as null."""
        return self.model_dump(mode="json")

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent)
