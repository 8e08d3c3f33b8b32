import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import time

import pytest
import requests

from utils.error_handler import (
    ContentMissingError, DocumentParseError, ErrorCategory, ErrorContext,
    ErrorDetector, ErrorRecovery, ErrorReporter, NetworkError, ProfileScraperError,
    RateLimitError, handle_exception, retry_on_error
)


def http_error(status, headers=None):
    response = requests.Response()
    response.status_code = status
    response.headers.update(headers or {})
    return requests.exceptions.HTTPError(response=response)


def test_exception_categories():
    assert NetworkError('down').error_info.category == ErrorCategory.NETWORK
    assert ContentMissingError('gone', status_code=404).error_info.context['status_code'] == 404
    assert DocumentParseError('empty').error_info.category == ErrorCategory.DOCUMENT_PARSE
    assert RateLimitError('slow', retry_after=30).retry_after == 30


def test_detector_http_errors():
    assert ErrorDetector.is_404_error(http_error(404))
    assert ErrorDetector.is_rate_limit_error(http_error(429, {'Retry-After': '15'})) == (True, 15)
    assert ErrorDetector.is_rate_limit_error(http_error(500)) == (False, None)
    assert ErrorDetector.is_network_error(requests.exceptions.ConnectionError())


def test_parse_retry_after():
    assert ErrorDetector.parse_retry_after('120') == 120
    assert ErrorDetector.parse_retry_after('Wed, 21 Oct 2015 07:28:00 GMT') is None
    assert ErrorDetector.parse_retry_after(None) is None


def test_captcha_detection():
    assert ErrorDetector.is_captcha_detected('<div class="g-recaptcha"></div>')
    assert ErrorDetector.is_captcha_detected('Checking your browser before accessing')
    assert not ErrorDetector.is_captcha_detected('<h1>Alice Smith</h1>')


def test_error_context_never_suppresses():
    context = ErrorContext('fetch', url='https://www.codechef.com/users/alice')

    with pytest.raises(ValueError):
        with context:
            raise ValueError('boom')
    assert context.errors[0].category == ErrorCategory.UNKNOWN


def test_retry_on_error_retries_network_errors(monkeypatch):
    monkeypatch.setattr(time, 'sleep', lambda seconds: None)
    calls = []

    @retry_on_error(max_attempts=3, delay=0.1)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise requests.exceptions.ConnectionError('reset')
        return 'ok'

    assert flaky() == 'ok'
    assert len(calls) == 3


def test_retry_on_error_does_not_retry_other_errors():
    calls = []

    @retry_on_error(max_attempts=3)
    def broken():
        calls.append(1)
        raise KeyError('x')

    with pytest.raises(KeyError):
        broken()
    assert len(calls) == 1


def test_handle_exception_wraps_unexpected_errors():
    @handle_exception
    def explode():
        raise ZeroDivisionError('nope')

    with pytest.raises(ProfileScraperError) as excinfo:
        explode()
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_fallback_profile():
    profile = ErrorRecovery.create_fallback_profile(
        'codechef', 'alice', 'https://www.codechef.com/users/alice', NetworkError('down'))

    assert profile['errorOccurred'] is True
    assert profile['errorMessage'] == 'down'
    assert profile['history'] == []
    assert profile['totalContests'] == 0
    for key in ('name', 'rating', 'stars', 'rank', 'country', 'institution', 'problemsSolved'):
        assert profile[key] is None


def test_suggestions_per_category():
    assert ErrorRecovery.suggest_alternatives(ErrorCategory.RATE_LIMITING)
    assert ErrorRecovery.suggest_alternatives(ErrorCategory.UNKNOWN) == []


def test_error_reporter_summary():
    reporter = ErrorReporter()
    assert reporter.get_error_summary()['total_errors'] == 0

    reporter.report_error(NetworkError('down').error_info)
    reporter.report_error(ContentMissingError('gone').error_info)

    summary = reporter.get_error_summary()
    assert summary['total_errors'] == 2
    assert summary['categories'] == {'network': 1, 'content_missing': 1}
