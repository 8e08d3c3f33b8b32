"""
Utils package for CP Profile Scraper
Contains utility functions for username/URL handling, file management and errors
"""

from .url_parser import ProfileURLParser
from .file_manager import FileManager

__all__ = ['ProfileURLParser', 'FileManager']
