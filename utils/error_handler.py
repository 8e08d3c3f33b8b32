"""
Error Handling Module for CP Profile Scraper

This module provides the exception hierarchy, error detection utilities and
recovery helpers used while fetching profile pages and extracting profile data
from them.

Only two kinds of problems ever leave the extraction engine: a document that
could not be parsed at all (DocumentParseError) and everything the fetch layer
reports (network failures, missing profiles, CAPTCHA walls, rate limiting).
Per-field and per-row problems are absorbed inside the engine.

Every exception class declares its category, severity and recovery
suggestions as class attributes; instances carry an ``ErrorInfo`` record built
from them, which is what the reporter and the CLI consume.
"""

import logging
import time
import traceback
import functools
import shutil
import socket
from collections import Counter
from typing import Dict, Any, Optional, Callable, List, Tuple, Type
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from requests.exceptions import (
    Timeout, ConnectionError, HTTPError, ChunkedEncodingError
)
from selenium.common.exceptions import (
    WebDriverException, TimeoutException, NoSuchElementException,
    ElementNotInteractableException, StaleElementReferenceException,
    SessionNotCreatedException, InvalidSessionIdException
)
from urllib3.exceptions import MaxRetryError, NewConnectionError

logger = logging.getLogger(__name__)

NETWORK_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ConnectionError, Timeout, socket.timeout, socket.gaierror,
    MaxRetryError, NewConnectionError, ChunkedEncodingError
)

SELENIUM_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    WebDriverException, TimeoutException, NoSuchElementException,
    ElementNotInteractableException, StaleElementReferenceException,
    SessionNotCreatedException, InvalidSessionIdException
)

CAPTCHA_MARKERS = (
    'g-recaptcha', 'h-captcha', 'cf-challenge', 'verify you are human',
    'checking your browser', 'bot detection', 'attention required'
)


class ErrorSeverity(Enum):
    """How loudly an error is reported"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """What went wrong, independent of where"""
    NETWORK = "network"
    URL_VALIDATION = "url_validation"
    CONTENT_MISSING = "content_missing"
    CAPTCHA = "captcha"
    RATE_LIMITING = "rate_limiting"
    DOCUMENT_PARSE = "document_parse"
    FILE_SYSTEM = "file_system"
    SELENIUM = "selenium"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Structured error information"""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    original_exception: Optional[Exception] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    traceback_str: Optional[str] = None
    recovery_suggestions: List[str] = field(default_factory=list)
    user_message: Optional[str] = None


# =============================================================================
# Exception hierarchy
# =============================================================================

class ProfileScraperError(Exception):
    """Base exception for all CP Profile Scraper specific errors"""

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    suggestions: List[str] = []
    user_message: Optional[str] = None

    def __init__(self, message: str, error_info: Optional[ErrorInfo] = None):
        super().__init__(message)
        self.error_info = error_info or self.describe(message)

    def describe(self, message: str, original_exception: Optional[Exception] = None,
                 **context: Any) -> ErrorInfo:
        """Build the ErrorInfo for this error class; None context values are dropped."""
        return ErrorInfo(
            message=message,
            category=self.category,
            severity=self.severity,
            original_exception=original_exception,
            context={key: value for key, value in context.items() if value is not None},
            recovery_suggestions=list(self.suggestions),
            user_message=self.user_message
        )


class NetworkError(ProfileScraperError):
    """Timeouts, refused connections and other transport failures"""

    category = ErrorCategory.NETWORK
    severity = ErrorSeverity.HIGH
    suggestions = [
        "Check internet connection",
        "Verify the profile page opens in a browser",
        "Try again after a few minutes"
    ]

    def __init__(self, message: str, original_exception: Optional[Exception] = None,
                 url: Optional[str] = None):
        super().__init__(message, self.describe(message, original_exception, url=url))


class URLValidationError(ProfileScraperError):
    """Invalid username or profile URL"""

    category = ErrorCategory.URL_VALIDATION
    suggestions = [
        "Check the username spelling",
        "Usernames may only contain letters, digits, '_' and '.'"
    ]
    user_message = "Please check the username or profile URL."

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, self.describe(message, url=url))


class ContentMissingError(ProfileScraperError):
    """Profile not found (404) or empty response"""

    category = ErrorCategory.CONTENT_MISSING
    suggestions = [
        "Verify the user exists",
        "The profile may be private or deleted"
    ]
    user_message = "The requested profile could not be found."

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, self.describe(message, url=url, status_code=status_code))


class CaptchaDetectedError(ProfileScraperError):
    """CAPTCHA or bot wall detected on the fetched page"""

    category = ErrorCategory.CAPTCHA
    severity = ErrorSeverity.HIGH
    suggestions = [
        "Wait for some time before retrying",
        "Reduce scraping frequency"
    ]
    user_message = "CAPTCHA detected. Please try again later."

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, self.describe(message, url=url))


class RateLimitError(ProfileScraperError):
    """The site asked us to slow down (HTTP 429/503 or a throttling page)"""

    category = ErrorCategory.RATE_LIMITING
    suggestions = ["Increase delay between requests"]

    def __init__(self, message: str, retry_after: Optional[int] = None, url: Optional[str] = None):
        self.retry_after = retry_after
        info = self.describe(message, url=url, retry_after=retry_after)
        if retry_after:
            info.recovery_suggestions.insert(0, f"Wait {retry_after} seconds before retrying")
            info.user_message = f"Rate limit exceeded. Please wait {retry_after} seconds."
        else:
            info.recovery_suggestions.insert(0, "Wait before retrying")
            info.user_message = "Rate limit exceeded. Please wait before retrying."
        super().__init__(message, info)


class DocumentParseError(ProfileScraperError):
    """The fetched document could not be parsed into an HTML tree at all"""

    category = ErrorCategory.DOCUMENT_PARSE
    severity = ErrorSeverity.HIGH
    suggestions = [
        "Check that the server returned an HTML page",
        "Try again later; the page may have been truncated"
    ]
    user_message = "Profile unavailable: the page could not be read."

    def __init__(self, message: str, original_exception: Optional[Exception] = None,
                 url: Optional[str] = None):
        super().__init__(message, self.describe(message, original_exception, url=url))


class FileSystemError(ProfileScraperError):
    """Output directory, batch file or JSON file problems"""

    category = ErrorCategory.FILE_SYSTEM
    severity = ErrorSeverity.HIGH
    suggestions = [
        "Check file/directory permissions",
        "Ensure sufficient disk space",
        "Try a different output location"
    ]
    user_message = "File system error occurred. Please check permissions and disk space."

    def __init__(self, message: str, path: Optional[str] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(message, self.describe(message, original_exception, path=path))


# =============================================================================
# Error Detection Utilities
# =============================================================================

class ErrorDetector:
    """Predicates over third-party exceptions and fetched content"""

    @staticmethod
    def is_network_error(exception: Exception) -> bool:
        return isinstance(exception, NETWORK_EXCEPTIONS)

    @staticmethod
    def is_selenium_error(exception: Exception) -> bool:
        return isinstance(exception, SELENIUM_EXCEPTIONS)

    @staticmethod
    def is_http_error(exception: Exception) -> Tuple[bool, Optional[int]]:
        """Whether this is a requests HTTPError, and its status code if known"""
        if not isinstance(exception, HTTPError):
            return False, None
        response = exception.response
        return True, (response.status_code if response is not None else None)

    @staticmethod
    def is_404_error(exception: Exception) -> bool:
        return ErrorDetector.is_http_error(exception) == (True, 404)

    @staticmethod
    def parse_retry_after(value: Optional[str]) -> Optional[int]:
        """Retry-After in seconds; HTTP-date values are not supported"""
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @staticmethod
    def is_rate_limit_error(exception: Exception) -> Tuple[bool, Optional[int]]:
        """Whether an HTTPError is a 429/503, and its Retry-After if given"""
        is_http, status_code = ErrorDetector.is_http_error(exception)
        if not is_http or status_code not in (429, 503):
            return False, None
        return True, ErrorDetector.parse_retry_after(exception.response.headers.get('Retry-After'))

    @staticmethod
    def is_captcha_detected(content: str) -> bool:
        lowered = content.lower()
        return any(marker in lowered for marker in CAPTCHA_MARKERS)

    @staticmethod
    def check_disk_space(path: str, required_mb: int = 5) -> bool:
        """False only when the free space is known to be below ``required_mb``"""
        try:
            free_mb = shutil.disk_usage(path).free / (1024 * 1024)
        except OSError:
            return True
        return free_mb >= required_mb


# =============================================================================
# Error Context Manager
# =============================================================================

class ErrorContext:
    """
    Classify and log exceptions raised inside a block.

    Exceptions are never suppressed; the classified ErrorInfo records are kept
    on ``errors`` for callers that want them.

    Example:
        >>> with ErrorContext("fetch_content", url=url):
        ...     document = fetch(url)
    """

    def __init__(self, operation: str, url: Optional[str] = None):
        self.operation = operation
        self.url = url
        self.errors: List[ErrorInfo] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_tb):
        if exc_value is not None:
            info = self.classify(exc_value)
            logger.error(f"Error in {self.operation}: {info.message}")
            if info.traceback_str:
                logger.debug(f"Traceback: {info.traceback_str}")
            self.errors.append(info)
        return False

    def classify(self, exception: Exception) -> ErrorInfo:
        """Map any exception onto an ErrorInfo"""
        if isinstance(exception, ProfileScraperError):
            return exception.error_info

        context: Dict[str, Any] = {"operation": self.operation}
        if self.url:
            context["url"] = self.url

        if ErrorDetector.is_network_error(exception):
            category, severity = ErrorCategory.NETWORK, ErrorSeverity.HIGH
            message = f"Network error: {exception}"
        elif ErrorDetector.is_404_error(exception):
            category, severity = ErrorCategory.CONTENT_MISSING, ErrorSeverity.MEDIUM
            message = f"Profile not found (404): {self.url}"
        elif ErrorDetector.is_rate_limit_error(exception)[0]:
            category, severity = ErrorCategory.RATE_LIMITING, ErrorSeverity.MEDIUM
            context["retry_after"] = ErrorDetector.is_rate_limit_error(exception)[1]
            message = f"Rate limit exceeded: {exception.response.status_code}"
        elif ErrorDetector.is_selenium_error(exception):
            category, severity = ErrorCategory.SELENIUM, ErrorSeverity.HIGH
            message = f"Browser automation error: {exception}"
        else:
            category, severity = ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM
            message = f"Unexpected error: {exception}"

        info = ErrorInfo(
            message=message,
            category=category,
            severity=severity,
            original_exception=exception,
            context=context
        )
        if category in (ErrorCategory.NETWORK, ErrorCategory.UNKNOWN):
            info.traceback_str = traceback.format_exc()
        return info


# =============================================================================
# Retry Decorator
# =============================================================================

def retry_on_error(max_attempts: int = 3, delay: float = 1.0,
                   backoff_factor: float = 2.0,
                   retryable_errors: Optional[Tuple[Type[Exception], ...]] = None):
    """
    Retry a function on transient errors with exponential backoff.

    Args:
        max_attempts: Total number of calls, including the first
        delay: Seconds to wait before the second call
        backoff_factor: Multiplier applied to the delay after each failure
        retryable_errors: Exception types worth retrying; network and browser
            errors by default. Anything else propagates immediately.
    """
    retryable = tuple(retryable_errors) if retryable_errors else NETWORK_EXCEPTIONS + SELENIUM_EXCEPTIONS

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retryable as e:
                    if attempt == max_attempts:
                        raise
                    logger.warning(f"{func.__name__} failed (attempt {attempt}/{max_attempts}): {e}. "
                                   f"Retrying in {wait} seconds...")
                    time.sleep(wait)
                    wait *= backoff_factor
        return wrapper
    return decorator


# =============================================================================
# Error Recovery Mechanisms
# =============================================================================

_SUGGESTIONS_BY_CATEGORY = {
    ErrorCategory.NETWORK: [
        "Check your internet connection",
        "Try again in a few minutes"
    ],
    ErrorCategory.CONTENT_MISSING: [
        "Verify the username is correct",
        "Open the profile page manually in a browser"
    ],
    ErrorCategory.RATE_LIMITING: [
        "Wait longer between requests",
        "Lower max_concurrent_requests in settings"
    ],
    ErrorCategory.CAPTCHA: [
        "Open the site manually first to clear the challenge",
        "Wait for an extended period before retrying"
    ],
    ErrorCategory.DOCUMENT_PARSE: [
        "Run with --inspect and check what the server returned"
    ],
}


class ErrorRecovery:
    """Graceful degradation when a profile cannot be produced"""

    @staticmethod
    def create_fallback_profile(platform: str, username: str, profile_url: Optional[str],
                                error: Exception) -> Dict[str, Any]:
        """
        Build the "profile unavailable" record.

        It has the same keys as a normal profile, with every field null, an
        empty history and ``errorOccurred`` set, so batch output stays uniform.
        """
        profile: Dict[str, Any] = {'platform': platform, 'username': username}
        for key in ('name', 'rating', 'stars', 'rank', 'country', 'institution', 'problemsSolved'):
            profile[key] = None
        profile.update({
            'history': [],
            'totalContests': 0,
            'profileUrl': profile_url,
            'error': f"Unable to fetch data - {platform} profile may be private or user not found",
            'errorMessage': str(error),
            'errorOccurred': True,
            'lastUpdated': datetime.now().isoformat()
        })
        return profile

    @staticmethod
    def suggest_alternatives(error_category: ErrorCategory) -> List[str]:
        """What a user can try next for this kind of failure"""
        return list(_SUGGESTIONS_BY_CATEGORY.get(error_category, []))


# =============================================================================
# Error Reporting
# =============================================================================

_LOG_LEVELS = {
    ErrorSeverity.CRITICAL: logging.CRITICAL,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}


class ErrorReporter:
    """Collects reported errors for the end-of-run summary"""

    def __init__(self):
        self.error_history: List[ErrorInfo] = []

    def report_error(self, error_info: ErrorInfo, context: Optional[Dict[str, Any]] = None):
        self.error_history.append(error_info)

        level = _LOG_LEVELS.get(error_info.severity, logging.WARNING)
        logger.log(level, f"{error_info.severity.value.upper()}: {error_info.message}")

        if error_info.context:
            logger.debug(f"Context: {error_info.context}")
        if context:
            logger.debug(f"Additional context: {context}")
        if error_info.traceback_str:
            logger.debug(f"Traceback: {error_info.traceback_str}")

    def get_error_summary(self) -> Dict[str, Any]:
        """Counts per category and severity plus the ten most recent errors"""
        summary: Dict[str, Any] = {
            "total_errors": len(self.error_history),
            "categories": dict(Counter(e.category.value for e in self.error_history)),
            "severity_counts": dict(Counter(e.severity.value for e in self.error_history)),
        }
        if self.error_history:
            summary["recent_errors"] = [
                {
                    "message": e.message,
                    "category": e.category.value,
                    "severity": e.severity.value,
                    "timestamp": e.timestamp.isoformat()
                }
                for e in self.error_history[-10:]
            ]
        return summary


error_reporter = ErrorReporter()


def handle_exception(func: Callable) -> Callable:
    """
    Report every exception escaping ``func``.

    Project errors are re-raised as they are; anything else is wrapped in a
    ProfileScraperError so callers only ever see the project's hierarchy.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ProfileScraperError as e:
            error_reporter.report_error(e.error_info)
            raise
        except Exception as e:
            info = ErrorInfo(
                message=f"Unexpected error in {func.__name__}: {e}",
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.MEDIUM,
                original_exception=e,
                traceback_str=traceback.format_exc()
            )
            error_reporter.report_error(info)
            raise ProfileScraperError(f"Unexpected error: {e}", info) from e

    return wrapper
