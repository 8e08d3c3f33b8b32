"""
Base scraper class for CP Profile Scraper

This module provides the abstract base class and common fetch functionality for
all platform-specific profile scrapers. It handles HTTP sessions, client-side
rate limiting, optional browser rendering and the mapping of transport failures
onto the project's exception hierarchy.

The BaseProfileScraper class implements:
- Requests session configuration with retry logic
- Rate limiting to respect server resources
- Selenium WebDriver management with automatic driver setup (opt-in)
- CAPTCHA detection and consecutive-failure cooldown
- Graceful fallback records for callers that must not see exceptions

Example:
    >>> from scraper.codechef_scraper import CodeChefProfileScraper
    >>> scraper = CodeChefProfileScraper(rate_limit=2.0)
    >>> profile = scraper.get_profile("tourist")
    >>> print(profile['rating'])
    3612

Note:
    All platform-specific scrapers must inherit from this class and implement
    the abstract methods: get_profile() and build_profile_url().
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Any
import logging
import random
import socket
import threading
import time
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import (
    Timeout, ConnectionError, HTTPError, ChunkedEncodingError
)
from urllib3.exceptions import MaxRetryError, NewConnectionError
from urllib3.util.retry import Retry
from selenium import webdriver
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.support.ui import WebDriverWait
from selenium.common.exceptions import (
    WebDriverException, TimeoutException
)
from webdriver_manager.chrome import ChromeDriverManager

from extraction.document import ProfileDocument, parse_document
from utils.error_handler import (
    ProfileScraperError, NetworkError, URLValidationError, ContentMissingError,
    CaptchaDetectedError, RateLimitError, ErrorDetector, ErrorContext,
    retry_on_error, ErrorRecovery, error_reporter
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                      '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36')

# Seconds to wait when a 429/503 carries no usable Retry-After
DEFAULT_RETRY_AFTER = 60

CHROME_ARGUMENTS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--window-size=1920,1080",
    "--disable-blink-features=AutomationControlled",
    "--disable-extensions",
]


class BaseProfileScraper(ABC):
    """
    Abstract base class for all platform-specific profile scrapers.

    Attributes:
        PLATFORM (str): Platform key used in output records
        headless (bool): Whether to run browser in headless mode
        timeout (int): Request timeout in seconds
        rate_limit (float): Minimum seconds between requests
        max_retries (int): Maximum number of attempts per request
        session (requests.Session): Configured HTTP session with retry logic
        driver (webdriver.Chrome): Selenium WebDriver instance, created on demand

    Example:
        >>> class MyPlatformScraper(BaseProfileScraper):
        ...     PLATFORM = 'myplatform'
        ...     def build_profile_url(self, username: str) -> str:
        ...         return f"https://example.com/u/{username}"
        ...     def get_profile(self, username: str) -> Dict[str, Any]:
        ...         document = self.get_page_content(self.build_profile_url(username))
        ...         return {'title': document.title_text()}
    """

    PLATFORM = ''

    def __init__(self, headless: bool = True, timeout: int = 30, rate_limit: float = 1.0,
                 max_retries: int = 3, user_agent: Optional[str] = None):
        """
        Initialize the base scraper with configuration options.

        Args:
            headless (bool, optional): Whether to run browser in headless mode.
                Defaults to True.
            timeout (int, optional): Request timeout in seconds. Defaults to 30.
            rate_limit (float, optional): Minimum seconds between requests.
                Defaults to 1.0.
            max_retries (int, optional): Attempts per request. Defaults to 3.
            user_agent (str, optional): User-Agent header; a desktop Chrome
                string when omitted.
        """
        self.headless = headless
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.last_request_time = float("-inf")
        self._rate_lock = threading.Lock()
        self._driver_lock = threading.RLock()
        self.session = requests.Session()
        self.driver = None
        self.max_retries = max(1, max_retries)
        self.backoff_factor = 2.0

        # Error tracking
        self.consecutive_failures = 0
        self.last_error_time = 0
        self.max_consecutive_failures = 5

        self.session.headers.update({
            'User-Agent': user_agent or DEFAULT_USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive',
            'Upgrade-Insecure-Requests': '1'
        })

        # Transport-level retries; the final response is handed back so status
        # codes can be mapped onto our own errors
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _chrome_options(self) -> Options:
        options = Options()
        arguments = list(CHROME_ARGUMENTS)
        if self.headless:
            arguments.insert(0, '--headless')
        arguments.append(f"--user-agent={self.session.headers['User-Agent']}")
        for argument in arguments:
            options.add_argument(argument)
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option('useAutomationExtension', False)
        return options

    @retry_on_error(max_attempts=3, delay=2.0)
    def _start_chrome(self, options: Options) -> webdriver.Chrome:
        try:
            return webdriver.Chrome(service=Service(ChromeDriverManager().install()), options=options)
        except (ValueError, OSError, WebDriverException) as e:
            # webdriver-manager needs network access; a chromedriver on PATH may still work
            logger.warning(f"ChromeDriverManager failed: {e}. Falling back to chromedriver on PATH")
            return webdriver.Chrome(options=options)

    def setup_driver(self) -> None:
        """
        Start Chrome for rendering script-built pages

        Raises:
            NetworkError: If no browser session could be created
        """
        try:
            driver = self._start_chrome(self._chrome_options())
        except WebDriverException as e:
            logger.error(f"Could not start Chrome: {e}")
            raise NetworkError(f"WebDriver error during setup: {str(e)}", original_exception=e)

        driver.set_page_load_timeout(self.timeout)
        driver.implicitly_wait(10)
        driver.execute_script("Object.defineProperty(navigator, 'webdriver', {get: () => undefined})")
        self.driver = driver
        logger.info("WebDriver setup completed successfully")

    def _enforce_rate_limit(self) -> None:
        """
        Keep at least ``rate_limit`` seconds between request starts.

        Batch runs share one scraper between worker threads, so the slot
        reservation happens under a lock and the sleep outside it.
        """
        with self._rate_lock:
            now = time.monotonic()
            start_at = max(now, self.last_request_time + self.rate_limit)
            self.last_request_time = start_at
        wait = start_at - now
        if wait > 0:
            logger.debug(f"Rate limiting: sleeping for {wait:.2f} seconds")
            time.sleep(wait)

    def _record_failure(self) -> None:
        with self._rate_lock:
            self.consecutive_failures += 1
            self.last_error_time = time.time()

    def _record_success(self) -> None:
        with self._rate_lock:
            self.consecutive_failures = 0

    def _validate_url(self, url: str) -> str:
        url = (url or '').strip()
        if not url:
            raise URLValidationError("Empty URL provided", url)
        parsed_url = urlparse(url)
        if not parsed_url.scheme or not parsed_url.netloc:
            raise URLValidationError(f"Invalid URL format: {url}", url)
        return url

    def _check_cooldown(self, url: str) -> None:
        """Refuse to fetch while a run of failures is cooling down."""
        if self.consecutive_failures < self.max_consecutive_failures:
            return
        cooldown_time = min(300, self.backoff_factor ** self.consecutive_failures)
        if time.time() - self.last_error_time < cooldown_time:
            raise NetworkError(f"Too many consecutive failures. Please wait {cooldown_time:.0f} seconds.", url=url)

    def get_page_content(self, url: str, use_selenium: bool = False) -> ProfileDocument:
        """
        Fetch a page and parse it into a ProfileDocument

        Args:
            url (str): URL to fetch
            use_selenium (bool): Whether to render the page in a browser

        Returns:
            ProfileDocument: Parsed page

        Raises:
            URLValidationError: If URL is invalid
            NetworkError: If network-related errors occur
            ContentMissingError: If content is not found (404)
            CaptchaDetectedError: If CAPTCHA is detected
            RateLimitError: If rate limited by server
            DocumentParseError: If the response cannot be parsed as HTML
        """
        url = self._validate_url(url)
        self._check_cooldown(url)

        with ErrorContext("fetch_content", url=url):
            try:
                document = self._fetch_document(url, use_selenium)
            except ProfileScraperError:
                self._record_failure()
                raise
            except (WebDriverException, TimeoutException) as e:
                self._record_failure()
                raise NetworkError(f"Browser automation error: {str(e)}", original_exception=e, url=url)
            except Exception as e:
                self._record_failure()
                if ErrorDetector.is_network_error(e):
                    raise NetworkError(f"Network error: {str(e)}", original_exception=e, url=url)
                logger.error(f"Unexpected error fetching {url}: {str(e)}")
                raise NetworkError(f"Unexpected error: {str(e)}", original_exception=e, url=url)

        self._record_success()
        return document

    def _fetch_document(self, url: str, use_selenium: bool) -> ProfileDocument:
        self._enforce_rate_limit()
        logger.info(f"Fetching {'and rendering ' if use_selenium else ''}{url}")

        if use_selenium:
            html_content = self._get_content_selenium(url)
        else:
            html_content = self._get_content_requests(url)

        if not html_content:
            raise ContentMissingError("No content received from server", url)
        if ErrorDetector.is_captcha_detected(html_content):
            raise CaptchaDetectedError("CAPTCHA detected on page", url)

        document = parse_document(html_content, url=url)
        logger.info(f"Successfully parsed content from: {url}")
        return document

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        status_code = response.status_code
        if status_code == 404:
            raise ContentMissingError("Content not found (404)", url, status_code=404)
        if status_code in [429, 503]:
            retry_after = ErrorDetector.parse_retry_after(response.headers.get('Retry-After'))
            raise RateLimitError(f"Rate limited (HTTP {status_code})",
                                 retry_after if retry_after is not None else DEFAULT_RETRY_AFTER, url)
        response.raise_for_status()

    def _backoff(self, attempt: int, url: str, reason: str) -> None:
        wait_time = (self.backoff_factor ** attempt) + random.uniform(0, 1)
        logger.warning(f"{reason} on attempt {attempt + 1}/{self.max_retries} for {url}. "
                       f"Retrying in {wait_time:.1f} seconds...")
        time.sleep(wait_time)

    def _get_content_requests(self, url: str) -> Optional[str]:
        """
        Get content using requests with retry logic

        Args:
            url (str): URL to fetch

        Returns:
            Optional[str]: HTML content

        Raises:
            NetworkError: For network-related errors
            ContentMissingError: For 404 errors or empty responses
            RateLimitError: For rate limiting
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = self.session.get(
                    url,
                    timeout=(max(1, self.timeout // 2), self.timeout),  # (connect_timeout, read_timeout)
                    allow_redirects=True
                )
                self._raise_for_status(response, url)

                if not response.text or not response.text.strip():
                    if not last_attempt:
                        logger.warning(f"Received empty content from {url}, retrying...")
                        continue
                    raise ContentMissingError("Received empty response", url)

                return response.text

            except (RateLimitError, ContentMissingError):
                raise
            except (ConnectionError, Timeout, socket.timeout, socket.gaierror,
                    MaxRetryError, NewConnectionError, ChunkedEncodingError) as e:
                if last_attempt:
                    raise NetworkError(f"Network error after {self.max_retries} attempts: {str(e)}",
                                       original_exception=e, url=url)
                self._backoff(attempt, url, f"Network error ({e})")
            except HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                if status_code is not None and 500 <= status_code < 600 and not last_attempt:
                    self._backoff(attempt, url, f"Server error {status_code}")
                    continue
                raise NetworkError(f"HTTP error {status_code if status_code else 'unknown'}: {str(e)}",
                                   original_exception=e, url=url)

        return None

    def _get_content_selenium(self, url: str) -> Optional[str]:
        """
        Get content by rendering the page in Chrome

        Args:
            url (str): URL to fetch

        Returns:
            Optional[str]: Rendered HTML

        Raises:
            NetworkError: For Selenium-related errors
            ContentMissingError: If the browser lands on a not-found page
            RateLimitError: If the rendered page says requests are throttled
        """
        # One browser serves every worker thread, so pages render one at a time
        with self._driver_lock:
            if self.driver is None:
                self.setup_driver()
            return self._render(url)

    def _render(self, url: str) -> str:
        try:
            self.driver.get(url)

            try:
                WebDriverWait(self.driver, 10).until(
                    lambda driver: driver.execute_script("return document.readyState") == "complete"
                )
            except TimeoutException:
                logger.warning(f"Page load timeout for {url}, continuing with partial content")

            # Profile widgets are filled in after readyState
            time.sleep(2)

            page_source = self.driver.page_source

            if "404" in self.driver.title or "Not Found" in self.driver.title:
                raise ContentMissingError(f"Page not found: {url}", url, status_code=404)

            page_text = page_source.lower()
            rate_limit_indicators = [
                "too many requests", "temporarily blocked", "rate limit exceeded"
            ]
            if any(indicator in page_text for indicator in rate_limit_indicators):
                raise RateLimitError(f"Rate limiting detected on page: {url}", url=url)

            return page_source

        except (ContentMissingError, RateLimitError):
            raise
        except TimeoutException as e:
            raise NetworkError(f"Page load timeout for {url}: {str(e)}", original_exception=e, url=url)
        except WebDriverException as e:
            logger.warning(f"WebDriver error for {url}: {e}. Restarting driver...")
            self.close_driver()
            raise NetworkError(f"WebDriver error for {url}: {str(e)}", original_exception=e, url=url)

    @abstractmethod
    def build_profile_url(self, username: str) -> str:
        """
        Build the profile page URL for a username

        Raises:
            URLValidationError: If the username is invalid for this platform
        """
        pass

    @abstractmethod
    def get_profile(self, username: str) -> Dict[str, Any]:
        """
        Fetch and extract a user's profile

        Args:
            username (str): Account name

        Returns:
            Dict[str, Any]: Profile record with platform metadata

        Raises:
            URLValidationError: If the username is invalid
            NetworkError: If network-related errors occur
            ContentMissingError: If the profile does not exist
            CaptchaDetectedError: If CAPTCHA is encountered
            RateLimitError: If the site throttles us
            DocumentParseError: If the page is not parseable
        """
        pass

    def safe_get_profile(self, username: str) -> Dict[str, Any]:
        """
        Get a profile, returning the fallback record instead of raising

        Args:
            username (str): Account name

        Returns:
            Dict[str, Any]: Profile record, or the "profile unavailable" record
                with ``errorOccurred`` set
        """
        try:
            profile_url = self.build_profile_url(username)
        except URLValidationError as e:
            logger.error(f"Invalid username {username!r}: {e}")
            error_reporter.report_error(e.error_info)
            return ErrorRecovery.create_fallback_profile(self.PLATFORM, username, None, e)

        try:
            return self.get_profile(username)
        except ProfileScraperError as e:
            logger.error(f"Failed to get profile for {username}: {e}")
            return ErrorRecovery.create_fallback_profile(self.PLATFORM, username, profile_url, e)

    def close_driver(self) -> None:
        """
        Close the WebDriver instance safely
        """
        with self._driver_lock:
            if self.driver is None:
                return
            try:
                self.driver.quit()
                logger.info("WebDriver closed successfully")
            except Exception as e:
                logger.warning(f"Error closing WebDriver: {e}")
            finally:
                self.driver = None

    def close(self) -> None:
        """Release the browser and the HTTP session"""
        self.close_driver()
        self.session.close()

    def __del__(self):
        """
        Cleanup when object is destroyed
        """
        try:
            self.close_driver()
            if hasattr(self, 'session') and self.session:
                self.session.close()
        except Exception as e:
            logger.debug(f"Error during scraper cleanup: {e}")
