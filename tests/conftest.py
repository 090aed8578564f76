"""Shared fixtures: saved Moodle pages and scripted snapshot pages."""

from collections.abc import Mapping

import pytest

from moodle_scraper.browser.snapshot import SnapshotBrowser, SnapshotPage
from moodle_scraper.extraction.profile import default_profile
from moodle_scraper.models import Credentials

ORIGIN = "https://moodle.example.edu"
COURSE_URL = f"{ORIGIN}/course/view.php?id=42"
LOGIN_URL = f"{ORIGIN}/login/index.php"
GRADES_URL = f"{ORIGIN}/grade/report/user/index.php?id=42"
DUO_URL = "https://api-1234.duosecurity.com/frame/prompt"
PASSWORD = "hunter2-correct-horse"

LOGIN_HTML = """
<html><body>
  <form id="login" action="/login/index.php" method="post">
    <input type="hidden" name="logintoken" value="tok-123">
    <input type="text" name="username" id="username">
    <input type="password" name="password" id="password">
    <button type="submit" id="loginbtn">Log in</button>
  </form>
</body></html>
"""

LOGIN_ERROR_HTML = """
<html><body>
  <div class="loginerrors"><span class="error">Invalid login, please try again</span></div>
  <form id="login" action="/login/index.php" method="post">
    <input type="text" name="username">
    <input type="password" name="password">
    <button type="submit" id="loginbtn">Log in</button>
  </form>
</body></html>
"""

COURSE_HTML = """
<html><body>
  <nav>
    <div class="usermenu"><a href="/login/logout.php">Log out</a></div>
    <a href="/grade/report/user/index.php?id=42">Grades</a>
  </nav>
  <div class="course-content">
    <ul>
      <li class="activity assign modtype_assign">
        <a href="https://moodle.example.edu/mod/assign/view.php?id=101">
          <span class="instancename">Essay 1</span>
        </a>
        <div class="due-date">Due: December 25, 2025</div>
        <div class="submission-status">Submitted for grading</div>
        <div class="description">Write about
            relational   databases.</div>
        <div class="grade">85 / 100</div>
      </li>
      <li class="activity assign modtype_assign">
        <a href="/mod/assign/view.php?id=102"><span class="instancename">Lab 2</span></a>
        <div class="due-date">invalid date</div>
      </li>
      <li class="activity resource modtype_resource">
        <a href="/mod/resource/view.php?id=201"><span class="instancename">Syllabus</span></a>
        <span class="filesize">120 KB</span>
        <img class="iconlarge activityicon" src="/theme/image.php/boost/core/f/pdf-24">
      </li>
      <li class="activity lti modtype_lti">
        <a href="/mod/lti/view.php?id=301"><span class="instancename">zyBooks Chapter 3</span></a>
        <span class="completion-status">Completed</span>
        <div class="completion-progress">75% complete</div>
      </li>
    </ul>
  </div>
</body></html>
"""

EMPTY_COURSE_HTML = """
<html><body>
  <div class="usermenu"></div>
  <div class="course-content"><ul></ul></div>
</body></html>
"""

GRADES_HTML = """
<html><body>
  <div class="usermenu"></div>
  <table class="generaltable user-grade">
    <thead><tr><th>Grade item</th><th>Grade</th><th>Range</th></tr></thead>
    <tbody>
      <tr>
        <td class="column-itemname">Essay 1</td>
        <td class="column-grade">85.00</td>
        <td class="column-range">0–100</td>
        <td class="column-feedback">Nice work</td>
      </tr>
      <tr>
        <td class="column-itemname">Participation</td>
        <td class="column-grade">A+</td>
        <td class="column-range">Pass/Fail</td>
      </tr>
      <tr>
        <td class="column-itemname">Quiz 0</td>
        <td class="column-grade">-</td>
        <td class="column-range">0–0</td>
      </tr>
    </tbody>
  </table>
</body></html>
"""

DUO_HTML = """
<html><body>
  <iframe id="duo_iframe" src="https://api-1234.duosecurity.com/frame"></iframe>
  <p>Check your phone for a Duo Push.</p>
  <button type="button" class="push-button">Send Me a Push</button>
</body></html>
"""

DUO_DENIED_HTML = """
<html><body>
  <iframe id="duo_iframe" src="https://api-1234.duosecurity.com/frame"></iframe>
  <p>Login request denied.</p>
</body></html>
"""

CODE_CHALLENGE_HTML = """
<html><body>
  <p>Enter the verification code from your authenticator app.</p>
  <form action="/mfa/verify" method="post">
    <input type="text" name="passcode">
    <button type="submit">Verify</button>
  </form>
</body></html>
"""

WELCOME_HTML = "<html><body><p>Welcome back.</p></body></html>"

DASHBOARD_HTML = """
<html><body>
  <div class="usermenu"></div>
  <div class="coursebox" data-course-id="42">
    <h3 class="coursename"><a href="/course/view.php?id=42">Databases</a></h3>
    <div class="shortname">CS-340</div>
  </div>
  <div class="coursebox" data-course-id="43">
    <h3 class="coursename"><a href="/course/view.php?id=43">Networks</a></h3>
  </div>
</body></html>
"""


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedPage(SnapshotPage):
    """Snapshot page whose form posts land on scripted responses.

    ``responses`` maps a form action URL to the (url, html) the server
    answers with; the answer also replaces that URL's document, the way a
    real site starts serving the course page once logged in. Waits advance
    ``clock`` instead of sleeping.
    """

    def __init__(
        self,
        documents: Mapping[str, str] | None = None,
        url: str = "about:blank",
        html: str = "",
        *,
        responses: Mapping[str, tuple[str, str]] | None = None,
        clock: FakeClock | None = None,
    ) -> None:
        super().__init__(documents, url, html)
        self.responses = dict(responses or {})
        self.clock = clock
        self.waits: list[float] = []

    async def submit_form(self, action: str, fields: dict[str, str]) -> None:
        if action not in self.responses:
            await super().submit_form(action, fields)
            return
        url, html = self.responses[action]
        self.documents[url] = html
        self.load(url, html)

    async def wait_for_timeout(self, timeout_ms: float) -> None:
        self.waits.append(timeout_ms)
        if self.clock is not None:
            self.clock.advance(timeout_ms / 1000)


@pytest.fixture
def credentials():
    return Credentials.build("student@example.edu", PASSWORD, COURSE_URL)


@pytest.fixture
def profile():
    return default_profile()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def login_documents():
    """Course URL redirects to the login form until credentials are posted."""
    return {
        COURSE_URL: LOGIN_HTML,
        GRADES_URL: GRADES_HTML,
    }


@pytest.fixture
def logged_in_browser(login_documents):
    """Snapshot browser whose login form accepts any credentials."""
    return SnapshotBrowser(
        login_documents,
        page_factory=lambda docs: ScriptedPage(
            docs, responses={LOGIN_URL: (COURSE_URL, COURSE_HTML)}
        ),
    )
