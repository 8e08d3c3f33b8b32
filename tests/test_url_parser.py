import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from utils.error_handler import URLValidationError
from utils.url_parser import ProfileURLParser


@pytest.fixture
def parser():
    return ProfileURLParser()


@pytest.mark.parametrize("username,expected", [
    ("tourist", True),
    ("john_doe.99", True),
    ("a" * 40, True),
    ("a" * 41, False),
    ("bad name", False),
    ("../etc", False),
    ("", False),
    (None, False),
])
def test_is_valid_username(parser, username, expected):
    assert parser.is_valid_username(username) is expected


def test_build_profile_url(parser):
    assert parser.build_profile_url('codechef', 'tourist') == 'https://www.codechef.com/users/tourist'
    assert parser.build_profile_url('CodeChef', ' alice ') == 'https://www.codechef.com/users/alice'


def test_build_profile_url_rejects_bad_input(parser):
    with pytest.raises(URLValidationError):
        parser.build_profile_url('codechef', 'no spaces please')
    with pytest.raises(URLValidationError):
        parser.build_profile_url('topcoder', 'tourist')


@pytest.mark.parametrize("url", [
    "https://www.codechef.com/users/tourist",
    "http://codechef.com/users/tourist/",
    "codechef.com/users/tourist",
    "https://WWW.CODECHEF.COM/users/tourist?tab=rating",
])
def test_extract_username(parser, url):
    assert parser.extract_username(url) == 'tourist'


def test_extract_username_from_other_pages(parser):
    assert parser.extract_username("https://www.codechef.com/contests") is None
    assert parser.extract_username("https://example.com/users/tourist") is None


def test_resolve_username(parser):
    assert parser.resolve_username(' tourist ') == 'tourist'
    assert parser.resolve_username('https://www.codechef.com/users/alice') == 'alice'
    with pytest.raises(URLValidationError):
        parser.resolve_username('https://example.com/users/alice')
    with pytest.raises(URLValidationError):
        parser.resolve_username('')


def test_normalize_url(parser):
    assert parser.normalize_url('codechef.com/users/alice/') == 'https://www.codechef.com/users/alice'
    assert parser.normalize_url('http://Example.com/a/') == 'https://example.com/a'
    assert parser.normalize_url('') == ''
