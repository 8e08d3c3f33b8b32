"""
CodeChef scraper for CP Profile Scraper

CodeChef offers no public API for user profiles, so profiles are read from the
rendered user page and handed to the heuristic extraction engine.

CodeChef Features:
- User profiles: name, rating, stars, rank label, country, institution,
  problems solved and contest history
- Upcoming contest listing from the contests page
- Page structure diagnostics for re-tuning selectors

Example:
    >>> scraper = CodeChefProfileScraper()
    >>> profile = scraper.get_profile("tourist")
    >>> print(profile['stars'], profile['totalContests'])
    7 42
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional, Union

from bs4 import BeautifulSoup

from .base_scraper import BaseProfileScraper
from extraction.contest_listing import extract_upcoming_contests
from extraction.document import ProfileDocument
from extraction.engine import ProfileExtractor
from extraction.page_inspector import inspect_page_structure
from utils.error_handler import ProfileScraperError, ErrorContext, handle_exception
from utils.url_parser import ProfileURLParser

logger = logging.getLogger(__name__)


class CodeChefProfileScraper(BaseProfileScraper):
    """
    Scraper for CodeChef user profiles and the contest listing.

    Attributes:
        PLATFORM (str): Platform key used in output records
        DOMAIN (str): CodeChef domain
        CONTESTS_URL (str): Page listing present and upcoming contests
    """

    PLATFORM = 'codechef'
    DOMAIN = "www.codechef.com"
    CONTESTS_URL = "https://www.codechef.com/contests"

    def __init__(self, headless: bool = True, timeout: int = 30, rate_limit: float = 2.0,
                 max_retries: int = 3, user_agent: Optional[str] = None, use_selenium: bool = False):
        """
        Initialize CodeChef scraper.

        Args:
            headless (bool): Whether to run browser in headless mode
            timeout (int): Request timeout in seconds
            rate_limit (float): Minimum seconds between requests
            max_retries (int): Attempts per request
            user_agent (str, optional): User-Agent header override
            use_selenium (bool): Render pages in Chrome instead of plain HTTP
        """
        super().__init__(headless=headless, timeout=timeout, rate_limit=rate_limit,
                         max_retries=max_retries, user_agent=user_agent)
        self.use_selenium = use_selenium
        self.url_parser = ProfileURLParser()
        self.extractor = ProfileExtractor()

        self.session.headers.update({'DNT': '1'})

        logger.info(f"CodeChef scraper initialized. Rate limit: {rate_limit}s, Timeout: {timeout}s")

    def build_profile_url(self, username: str) -> str:
        return self.url_parser.build_profile_url(self.PLATFORM, username)

    def profile_from_page(self, page: Union[ProfileDocument, BeautifulSoup, str, bytes],
                          username: str, profile_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Extract a profile from an already fetched page.

        Args:
            page: Parsed document or raw HTML of the user page
            username (str): Account the page belongs to
            profile_url (str, optional): Where the page came from

        Returns:
            Dict[str, Any]: Profile record with platform metadata

        Raises:
            DocumentParseError: If the page cannot be parsed
        """
        record = self.extractor.extract(page, username)
        profile = {
            'platform': self.PLATFORM,
            'username': username,
        }
        profile.update(record.to_dict())
        profile.update({
            'profileUrl': profile_url or self.build_profile_url(username),
            'lastUpdated': datetime.now().isoformat(),
            'note': 'Data scraped from CodeChef profile page',
        })
        return profile

    @handle_exception
    def get_profile(self, username: str) -> Dict[str, Any]:
        """
        Fetch a CodeChef user page and extract the profile.

        Args:
            username (str): CodeChef username

        Returns:
            Dict[str, Any]: Profile record with platform metadata

        Raises:
            URLValidationError: If the username is invalid
            NetworkError: If network-related errors occur
            ContentMissingError: If the user does not exist
            CaptchaDetectedError: If CAPTCHA is encountered
            RateLimitError: If CodeChef throttles us
            DocumentParseError: If the page is not parseable
        """
        profile_url = self.build_profile_url(username)

        with ErrorContext("get_profile", url=profile_url):
            logger.info(f"Extracting CodeChef profile for: {username}")
            document = self.get_page_content(profile_url, use_selenium=self.use_selenium)
            profile = self.profile_from_page(document, username, profile_url)
            logger.info(f"Successfully extracted profile for {username}: "
                        f"{profile['totalContests']} contests")
            return profile

    @handle_exception
    def inspect_page(self, username: str) -> Dict[str, Any]:
        """
        Fetch a user page and describe its structure instead of extracting it.

        Returns:
            Dict[str, Any]: Title, tables, CSS classes and keyword diagnostics
        """
        profile_url = self.build_profile_url(username)
        document = self.get_page_content(profile_url, use_selenium=self.use_selenium)
        return inspect_page_structure(document, username)

    def get_upcoming_contests(self) -> Dict[str, Any]:
        """
        Scrape the upcoming contest listing.

        Fetch failures do not raise; the listing then comes back empty with an
        ``error`` message, the way the site's other listing consumers expect.

        Returns:
            Dict[str, Any]: platform, contests (at most ten), totalFound,
                websiteUrl, note and lastUpdated
        """
        try:
            document = self.get_page_content(self.CONTESTS_URL, use_selenium=self.use_selenium)
        except ProfileScraperError as e:
            logger.error(f"CodeChef contests scraping error: {e}")
            return {
                'platform': self.PLATFORM,
                'contests': [],
                'totalFound': 0,
                'error': 'Unable to fetch contest data - website may have changed structure',
                'websiteUrl': self.CONTESTS_URL,
                'lastUpdated': datetime.now().isoformat(),
            }

        listing = extract_upcoming_contests(document)
        listing['lastUpdated'] = datetime.now().isoformat()
        logger.info(f"Found {listing['totalFound']} CodeChef contests")
        return listing

    def get_submissions(self, username: str) -> Dict[str, Any]:
        """
        Submissions are only visible to logged-in users, so nothing is fetched.

        Returns:
            Dict[str, Any]: Placeholder record explaining the limitation
        """
        return {
            'platform': self.PLATFORM,
            'username': username,
            'note': 'CodeChef submissions require authentication and are not publicly accessible',
            'suggestion': 'Use the CodeChef API with proper authentication',
            'totalSubmissions': None,
            'solvedCount': None,
            'problems': [],
        }
