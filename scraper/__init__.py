"""
Scraper package for CP Profile Scraper
Contains base scraper class and platform-specific profile scrapers
"""

from .base_scraper import BaseProfileScraper
from .codechef_scraper import CodeChefProfileScraper

__all__ = [
    'BaseProfileScraper',
    'CodeChefProfileScraper'
]
