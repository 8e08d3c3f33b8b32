"""
URL Parser for CP Profile Scraper

This module validates usernames and profile URLs for the supported competitive
programming sites, builds profile URLs from usernames and extracts usernames
back out of profile URLs.

The ProfileURLParser class supports:
- Username validation
- Profile URL generation and normalization
- Username extraction from bare names or profile URLs

Supported Platforms:
- CodeChef: user profile pages (https://www.codechef.com/users/{username})

Example:
    >>> parser = ProfileURLParser()
    >>> parser.build_profile_url('codechef', 'tourist')
    'https://www.codechef.com/users/tourist'
    >>> parser.extract_username('https://codechef.com/users/tourist/')
    'tourist'
"""

import re
from typing import Optional
from urllib.parse import urlparse
import logging

from utils.error_handler import URLValidationError

logger = logging.getLogger(__name__)


class ProfileURLParser:
    """
    Utility class for profile usernames and profile URLs.

    Attributes:
        PLATFORM_PATTERNS (Dict): Profile URL patterns and templates per platform
        USERNAME_PATTERN (re.Pattern): What a valid username looks like
    """

    PLATFORM_PATTERNS = {
        'codechef': {
            'profile': [
                r'https?://(?:www\.)?codechef\.com/users/([A-Za-z0-9_.]+)/?(?:\?.*)?$',
            ],
            'profile_template': 'https://www.codechef.com/users/{username}',
        }
    }

    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.]{1,40}$')

    def is_valid_username(self, username: Optional[str]) -> bool:
        """
        Check whether a username can name a profile.

        Args:
            username (str): Username to check

        Returns:
            bool: True for 1 to 40 letters, digits, underscores or dots
        """
        if not username or not isinstance(username, str):
            return False
        return bool(self.USERNAME_PATTERN.match(username.strip()))

    def build_profile_url(self, platform: str, username: str) -> str:
        """
        Build the profile URL for a username.

        Args:
            platform (str): Platform key, e.g. 'codechef'
            username (str): Account name

        Returns:
            str: Profile URL

        Raises:
            URLValidationError: If the platform is unknown or the username is invalid
        """
        config = self.PLATFORM_PATTERNS.get(platform.lower())
        if not config:
            raise URLValidationError(f"Unsupported platform: {platform}")

        if not self.is_valid_username(username):
            raise URLValidationError(f"Invalid username: {username!r}")

        url = config['profile_template'].format(username=username.strip())
        logger.debug(f"Built profile URL: {url}")
        return url

    def extract_username(self, url: str) -> Optional[str]:
        """
        Pull the username out of a profile URL.

        Returns:
            Optional[str]: Username, or None if the URL is not a profile URL
        """
        normalized_url = self.normalize_url(url)
        for config in self.PLATFORM_PATTERNS.values():
            for pattern in config['profile']:
                match = re.match(pattern, normalized_url)
                if match and self.is_valid_username(match.group(1)):
                    return match.group(1)
        return None

    def resolve_username(self, value: str) -> str:
        """
        Accept either a bare username or a profile URL and return the username.

        Raises:
            URLValidationError: If neither form is valid
        """
        value = (value or '').strip()
        if self.is_valid_username(value):
            return value
        if '/' in value:
            username = self.extract_username(value)
            if username:
                return username
        raise URLValidationError(f"Not a valid username or profile URL: {value!r}", value or None)

    def normalize_url(self, url: str) -> str:
        """
        Normalize URL to standard format

        Adds a missing scheme, forces https, lower-cases the domain, ensures the
        ``www.`` prefix for CodeChef and drops trailing slashes.

        Args:
            url (str): URL to normalize

        Returns:
            str: Normalized URL
        """
        url = (url or '').strip()
        if not url:
            return url

        if not url.startswith(('http://', 'https://')):
            url = 'https://' + url

        parsed = urlparse(url)
        domain = parsed.netloc.lower()

        if domain in ('codechef.com', 'www.codechef.com'):
            domain = 'www.codechef.com'

        path = parsed.path.rstrip('/')
        query = f'?{parsed.query}' if parsed.query else ''

        normalized_url = f"https://{domain}{path}{query}"
        logger.debug(f"Normalized URL: {url} -> {normalized_url}")
        return normalized_url
