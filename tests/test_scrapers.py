import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from scraper.base_scraper import BaseProfileScraper
from scraper.codechef_scraper import CodeChefProfileScraper
from utils.error_handler import (
    CaptchaDetectedError, ContentMissingError, NetworkError, RateLimitError,
    URLValidationError
)

PROFILE_URL = "https://www.codechef.com/users/alice"
CONTESTS_URL = "https://www.codechef.com/contests"

PROFILE_HTML = """
<html>
<head><title>Alice Smith - CodeChef</title></head>
<body>
<div class="user-details-container">
  <header><h1 class="h2-style">Alice Smith</h1></header>
  <ul><li><label>Country:</label> <span class="user-country-name">India</span></li></ul>
</div>
<div class="rating-header"><div class="rating-number">1604</div><div class="rating-title">2 Star</div></div>
<h3>Total Problems Solved: 225</h3>
<div class="rating-data-section">
  <table><tbody>
    <tr><td>Starters 193</td><td>1604</td><td>-8</td><td>1293</td><td>2025-07-02</td></tr>
  </tbody></table>
</div>
</body>
</html>
"""

CONTESTS_HTML = """
<html><body>
<table class="dataTable"><tbody>
  <tr><td><a href="/START200">Starters 200</a></td><td>2025-07-09 20:00</td><td>2025-07-09 22:00</td></tr>
</tbody></table>
</body></html>
"""

CAPTCHA_HTML = '<html><body><div class="g-recaptcha" data-sitekey="x"></div></body></html>'


def make_response(url, body='', status=200, headers=None):
    response = requests.Response()
    response.url = url
    response.status_code = status
    response.encoding = 'utf-8'
    response._content = body.encode('utf-8')
    response.headers.update(headers or {})
    return response


class FakeSite:
    """Canned pages served in place of the scraper's HTTP session"""

    def __init__(self):
        self.pages = {}
        self.calls = []

    def add(self, url, body='', status=200, headers=None, error=None):
        self.pages[url] = (body, status, headers, error)

    def get(self, url, **kwargs):
        self.calls.append(url)
        if url not in self.pages:
            return make_response(url, 'Not Found', 404)
        body, status, headers, error = self.pages[url]
        if error is not None:
            raise error
        return make_response(url, body, status, headers)


@pytest.fixture(autouse=True)
def no_waiting(monkeypatch):
    monkeypatch.setattr(BaseProfileScraper, '_enforce_rate_limit', lambda self: None)
    monkeypatch.setattr(time, 'sleep', lambda seconds: None)


@pytest.fixture
def scraper():
    instance = CodeChefProfileScraper(rate_limit=0)
    yield instance
    instance.close()


@pytest.fixture
def site(monkeypatch, scraper):
    fake = FakeSite()
    monkeypatch.setattr(scraper.session, 'get', fake.get)
    return fake


def test_get_profile(scraper, site):
    site.add(PROFILE_URL, PROFILE_HTML)

    profile = scraper.get_profile('alice')

    assert profile['platform'] == 'codechef'
    assert profile['username'] == 'alice'
    assert profile['name'] == 'Alice Smith'
    assert profile['rating'] == 1604
    assert profile['rank'] == '2 Star'
    assert profile['country'] == 'India'
    assert profile['problemsSolved'] == 225
    assert profile['totalContests'] == 1
    assert profile['history'][0]['rank'] == 1293
    assert profile['profileUrl'] == PROFILE_URL
    assert 'lastUpdated' in profile


def test_missing_profile_raises(scraper, site):
    with pytest.raises(ContentMissingError):
        scraper.get_profile('alice')


def test_rate_limit_carries_retry_after(scraper, site):
    site.add(PROFILE_URL, 'slow down', status=429, headers={'Retry-After': '120'})

    with pytest.raises(RateLimitError) as excinfo:
        scraper.get_profile('alice')
    assert excinfo.value.retry_after == 120


def test_rate_limit_without_header_uses_default(scraper, site):
    site.add(PROFILE_URL, 'busy', status=503)

    with pytest.raises(RateLimitError) as excinfo:
        scraper.get_profile('alice')
    assert excinfo.value.retry_after == 60


def test_server_error_is_retried_then_reported(scraper, site):
    site.add(PROFILE_URL, 'oops', status=500)

    with pytest.raises(NetworkError):
        scraper.get_page_content(PROFILE_URL)
    assert len(site.calls) == scraper.max_retries


def test_captcha_page_raises(scraper, site):
    site.add(PROFILE_URL, CAPTCHA_HTML)

    with pytest.raises(CaptchaDetectedError):
        scraper.get_profile('alice')
    assert scraper.consecutive_failures == 1


def test_connection_error_becomes_network_error(scraper, site):
    site.add(PROFILE_URL, error=requests.exceptions.ConnectionError('refused'))

    with pytest.raises(NetworkError):
        scraper.get_page_content(PROFILE_URL)
    assert scraper.consecutive_failures == 1
    assert len(site.calls) == scraper.max_retries


def test_empty_body_is_missing_content(scraper, site):
    site.add(PROFILE_URL, '   ')

    with pytest.raises(ContentMissingError):
        scraper.get_page_content(PROFILE_URL)
    assert len(site.calls) == scraper.max_retries


def test_invalid_url_raises(scraper):
    with pytest.raises(URLValidationError):
        scraper.get_page_content('not a url')


def test_cooldown_after_repeated_failures(scraper, site):
    scraper.consecutive_failures = scraper.max_consecutive_failures
    scraper.last_error_time = time.time()

    with pytest.raises(NetworkError, match='consecutive failures'):
        scraper.get_page_content(PROFILE_URL)
    assert site.calls == []


def test_safe_get_profile_returns_fallback(scraper, site):
    profile = scraper.safe_get_profile('alice')

    assert profile['errorOccurred'] is True
    assert profile['profileUrl'] == PROFILE_URL
    assert profile['name'] is None
    assert profile['history'] == []
    assert profile['totalContests'] == 0
    assert profile['error'] == 'Unable to fetch data - codechef profile may be private or user not found'


def test_safe_get_profile_with_invalid_username(scraper, site):
    profile = scraper.safe_get_profile('not a user!')

    assert profile['errorOccurred'] is True
    assert profile['profileUrl'] is None
    assert site.calls == []


def test_profile_from_page_without_fetching(scraper):
    profile = scraper.profile_from_page(PROFILE_HTML, 'alice')

    assert profile['name'] == 'Alice Smith'
    assert profile['profileUrl'] == PROFILE_URL
    assert profile['note'] == 'Data scraped from CodeChef profile page'


def test_upcoming_contests(scraper, site):
    site.add(CONTESTS_URL, CONTESTS_HTML)

    listing = scraper.get_upcoming_contests()

    assert listing['totalFound'] == 1
    assert listing['contests'][0]['code'] == 'START200'
    assert 'lastUpdated' in listing


def test_upcoming_contests_failure_returns_error_listing(scraper, site):
    listing = scraper.get_upcoming_contests()

    assert listing['contests'] == []
    assert listing['totalFound'] == 0
    assert listing['error'] == 'Unable to fetch contest data - website may have changed structure'
    assert listing['websiteUrl'] == CONTESTS_URL


def test_submissions_are_not_fetched(scraper, site):
    result = scraper.get_submissions('alice')

    assert result['username'] == 'alice'
    assert result['problems'] == []
    assert result['totalSubmissions'] is None
    assert site.calls == []


def test_inspect_page(scraper, site):
    site.add(PROFILE_URL, PROFILE_HTML)

    report = scraper.inspect_page('alice')

    assert report['username'] == 'alice'
    assert report['pageTitle'] == 'Alice Smith - CodeChef'
    assert report['allTables'] == 1


class FakeDriver:
    title = 'Alice Smith - CodeChef'
    page_source = PROFILE_HTML

    def __init__(self):
        self.visited = []

    def get(self, url):
        self.visited.append(url)

    def execute_script(self, script):
        return 'complete'

    def quit(self):
        pass


def test_rendering_threads_share_one_browser(monkeypatch, scraper):
    started = []

    def slow_setup():
        started.append(1)
        threading.Event().wait(0.05)
        scraper.driver = FakeDriver()

    monkeypatch.setattr(scraper, 'setup_driver', slow_setup)

    with ThreadPoolExecutor(max_workers=3) as executor:
        pages = list(executor.map(scraper._get_content_selenium, [PROFILE_URL] * 3))

    assert started == [1]
    assert pages == [PROFILE_HTML] * 3
    assert scraper.driver.visited == [PROFILE_URL] * 3


def test_failures_counted_across_threads(scraper):
    with ThreadPoolExecutor(max_workers=4) as executor:
        for _ in range(40):
            executor.submit(scraper._record_failure)

    assert scraper.consecutive_failures == 40
