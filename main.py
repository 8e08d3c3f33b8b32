#!/usr/bin/env python3
"""
CP Profile Scraper
Main entry point for the application

This module provides:
- Command-line argument parsing for single, batch and offline runs
- Logging configuration and management
- Application settings (settings.json) and configuration (config.ini)
- Concurrent batch processing of usernames
- Graceful shutdown and cleanup
"""

__version__ = "1.0.0"
__description__ = "Extract normalized competitive programming profiles from HTML profile pages"

import sys
import argparse
import logging
import json
import atexit
import traceback
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple
from concurrent.futures import ThreadPoolExecutor
import configparser

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from scraper.base_scraper import DEFAULT_USER_AGENT
from scraper.codechef_scraper import CodeChefProfileScraper
from utils.url_parser import ProfileURLParser
from utils.file_manager import FileManager
from utils.error_handler import (
    ProfileScraperError, FileSystemError, ErrorInfo, ErrorCategory, ErrorSeverity,
    ErrorRecovery, error_reporter
)

logger = logging.getLogger(__name__)


class ApplicationManager:
    """
    Main application manager that handles initialization, configuration,
    and lifecycle management of the CP Profile Scraper.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".cp_profile_scraper"
        self.config_file = self.config_dir / "config.ini"
        self.log_file = self.config_dir / "app.log"
        self.settings_file = self.config_dir / "settings.json"

        # Application components
        self.url_parser = None
        self.file_manager = None
        self.scraper = None
        self.config = configparser.ConfigParser()

        # Runtime state
        self.is_running = False

        self.default_settings = {
            "output_directory": None,
            "log_level": "INFO",
            "max_concurrent_requests": 3,
            "pretty_json": True,
            "render": False,
            "headless": None,
        }

        self.settings = self.default_settings.copy()
        self.overrides: Dict[str, Any] = {}

    def initialize(self):
        """
        Initialize the application with all necessary configurations.
        """
        try:
            self._create_config_directory()

            self._load_settings()
            self._load_configuration()
            self.settings.update(self.overrides)

            self._setup_logging()

            self._initialize_components()

            atexit.register(self._cleanup)

            self.is_running = True
            logger.info("Application initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            logger.error(traceback.format_exc())
            raise

    def _create_config_directory(self):
        """
        Create configuration directory if it doesn't exist.
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory: {e}")
            # Fallback to current directory
            default_config = self.config_file == self.config_dir / "config.ini"
            self.config_dir = Path.cwd() / ".cp_profile_scraper"
            self.config_dir.mkdir(exist_ok=True)
            self.log_file = self.config_dir / "app.log"
            self.settings_file = self.config_dir / "settings.json"
            if default_config:
                self.config_file = self.config_dir / "config.ini"

    def _setup_logging(self):
        """
        Configure logging with file and console handlers.

        The console handler writes to stderr so profile JSON on stdout stays clean.
        """
        log_level = getattr(logging, str(self.settings.get("log_level", "INFO")).upper(), logging.INFO)

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )
        simple_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()

        try:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(simple_formatter)
        root_logger.addHandler(console_handler)

        logger.info(f"Logging configured. Level: {logging.getLevelName(log_level)}, Log file: {self.log_file}")

    def _load_settings(self):
        """
        Load application settings from JSON file.
        """
        if not self.settings_file.exists():
            logger.info("No existing settings file found, using defaults")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load settings: {e}. Using defaults.")
            return

        if isinstance(loaded_settings, dict):
            self.settings.update(loaded_settings)
            logger.debug("Settings loaded successfully")
        else:
            logger.warning("Settings file does not hold a JSON object, using defaults")

    def _save_settings(self):
        """
        Save current settings (without command-line overrides) to JSON file.
        """
        persisted = {key: value for key, value in self.settings.items() if key not in self.overrides}
        try:
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(persisted, f, indent=2, ensure_ascii=False)
            logger.debug("Settings saved successfully")
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")

    def _load_configuration(self):
        """
        Load configuration from INI file.
        """
        if not self.config_file.exists():
            self._create_default_configuration()
            return

        try:
            self.config.read(self.config_file, encoding='utf-8')
            logger.debug("Configuration loaded successfully")
        except configparser.Error as e:
            logger.warning(f"Failed to load configuration: {e}")
            self.config = configparser.ConfigParser()
            self._create_default_configuration()

    def _create_default_configuration(self):
        """
        Create default configuration file.
        """
        self.config['DEFAULT'] = {
            'timeout': '30',
            'rate_limit': '2.0',
            'max_retries': '3',
            'headless_browser': 'true'
        }

        self.config['Paths'] = {
            'output_directory': ''
        }

        self.config['Scraping'] = {
            'user_agent': DEFAULT_USER_AGENT,
            'concurrent_requests': '3'
        }

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                self.config.write(f)
            logger.info("Default configuration created")
        except OSError as e:
            logger.error(f"Failed to create default configuration: {e}")

    def _initialize_components(self):
        """
        Initialize all application components.
        """
        timeout = self.config.getint('DEFAULT', 'timeout', fallback=30)
        rate_limit = self.config.getfloat('DEFAULT', 'rate_limit', fallback=2.0)
        max_retries = self.config.getint('DEFAULT', 'max_retries', fallback=3)
        headless = self.settings.get("headless")
        if headless is None:
            headless = self.config.getboolean('DEFAULT', 'headless_browser', fallback=True)
        user_agent = self.config.get('Scraping', 'user_agent', fallback=None) or None

        self.url_parser = ProfileURLParser()
        self.file_manager = FileManager(self.output_directory)
        self.scraper = CodeChefProfileScraper(
            headless=headless,
            timeout=timeout,
            rate_limit=rate_limit,
            max_retries=max_retries,
            user_agent=user_agent,
            use_selenium=bool(self.settings.get("render"))
        )

        logger.info("All components initialized successfully")

    @property
    def output_directory(self) -> Optional[str]:
        """Where results are saved; None means print to stdout."""
        configured = self.settings.get("output_directory")
        if configured:
            return configured
        return self.config.get('Paths', 'output_directory', fallback='') or None

    @property
    def max_workers(self) -> int:
        fallback = self.config.getint('Scraping', 'concurrent_requests', fallback=3)
        try:
            workers = int(self.settings.get("max_concurrent_requests") or fallback)
        except (TypeError, ValueError):
            workers = fallback
        return max(1, workers)

    def _require_running(self):
        if not self.is_running:
            raise RuntimeError("Application not initialized")

    def fetch_profile(self, value: str) -> Dict[str, Any]:
        """
        Fetch one profile given a username or a profile URL.

        Never raises for scraping problems; failures come back as the fallback
        record with ``errorOccurred`` set.
        """
        self._require_running()
        try:
            username = self.url_parser.resolve_username(value)
        except ProfileScraperError as e:
            error_reporter.report_error(e.error_info)
            return ErrorRecovery.create_fallback_profile(self.scraper.PLATFORM, value, None, e)
        return self.scraper.safe_get_profile(username)

    def _process_single_user(self, value: str, output_dir: Optional[str]) -> Dict[str, Any]:
        profile = self.fetch_profile(value)
        if output_dir and not profile.get('errorOccurred'):
            self.file_manager.save_profile(profile, output_dir, pretty=bool(self.settings.get("pretty_json", True)))
        return profile

    def run_batch_processing(self, usernames: List[str],
                             output_dir: Optional[str] = None) -> Tuple[List[Dict[str, Any]], int]:
        """
        Fetch several profiles concurrently.

        Args:
            usernames: Usernames or profile URLs
            output_dir: Save each profile there as ``<platform>_<username>.json``

        Returns:
            Tuple[List[Dict[str, Any]], int]: Profiles in input order and the
                number that failed
        """
        self._require_running()

        if not usernames:
            logger.warning("No usernames provided for batch processing")
            return [], 0

        output_dir = output_dir or self.output_directory
        if output_dir:
            self.file_manager.ensure_directory(output_dir)

        logger.info(f"Starting batch processing for {len(usernames)} users "
                    f"with {self.max_workers} workers")

        results: List[Dict[str, Any]] = []
        failed = 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [(value, executor.submit(self._process_single_user, value, output_dir))
                       for value in usernames]

            for value, future in futures:
                try:
                    profile = future.result(timeout=300)
                except Exception as e:
                    self._handle_error(e, f"batch_processing_user_{value}")
                    profile = ErrorRecovery.create_fallback_profile(self.scraper.PLATFORM, value, None, e)

                if profile.get('errorOccurred'):
                    failed += 1
                    logger.error(f"Failed to process: {value}")
                else:
                    logger.info(f"Successfully processed: {value}")
                results.append(profile)

        logger.info(f"Batch processing completed. Successful: {len(results) - failed}, Failed: {failed}")

        if failed > 0:
            logger.warning(f"Batch processing summary: {error_reporter.get_error_summary()}")

        return results, failed

    def process_html_file(self, html_path: str, username: str) -> Dict[str, Any]:
        """
        Run the extraction engine on a saved profile page, offline.

        Raises:
            FileSystemError: If the file cannot be read
            DocumentParseError: If the file holds no HTML document
        """
        self._require_running()
        path = Path(html_path)
        try:
            markup = path.read_bytes()
        except OSError as e:
            raise FileSystemError(f"Cannot read HTML file: {path}", str(path), e)

        username = self.url_parser.resolve_username(username)
        logger.info(f"Extracting {username} from saved page {path}")
        return self.scraper.profile_from_page(markup, username)

    def inspect(self, value: str) -> Dict[str, Any]:
        self._require_running()
        return self.scraper.inspect_page(self.url_parser.resolve_username(value))

    def submissions(self, value: str) -> Dict[str, Any]:
        self._require_running()
        return self.scraper.get_submissions(self.url_parser.resolve_username(value))

    def upcoming_contests(self) -> Dict[str, Any]:
        self._require_running()
        return self.scraper.get_upcoming_contests()

    def emit(self, data: Any, stream=None):
        """Write a result as JSON to stdout."""
        stream = stream or sys.stdout
        indent = 2 if self.settings.get("pretty_json", True) else None
        stream.write(json.dumps(data, indent=indent, ensure_ascii=False))
        stream.write("\n")
        stream.flush()

    def _handle_error(self, error: Exception, context: str = ""):
        """
        Log and report an application error.
        """
        error_msg = f"Error in {context}: {str(error)}"
        logger.error(error_msg)

        if isinstance(error, ProfileScraperError):
            error_reporter.report_error(error.error_info)
        else:
            logger.debug(traceback.format_exc())
            error_reporter.report_error(ErrorInfo(
                message=error_msg,
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.HIGH,
                original_exception=error,
                context={"operation": context},
                traceback_str=traceback.format_exc()
            ))

    def shutdown(self):
        """
        Graceful shutdown of the application.
        """
        if not self.is_running:
            return

        logger.info("Initiating application shutdown...")
        self.is_running = False
        self._save_settings()
        self._cleanup()
        logger.info("Application shutdown completed")

    def _cleanup(self):
        """
        Cleanup application resources.
        """
        if self.scraper is not None:
            try:
                self.scraper.close()
            except Exception as e:
                logger.error(f"Error during cleanup: {e}")


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="cp-profile",
        description="CP Profile Scraper - normalized CodeChef profiles as JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --user tourist                          # Print a profile as JSON
  %(prog)s -u alice -u bob --output ./profiles     # Save profiles to files
  %(prog)s --batch users.txt                       # Users from file (one per line)
  %(prog)s --html page.html --user alice           # Extract a saved page offline
  %(prog)s --inspect --user alice                  # Page structure diagnostics
  %(prog)s --submissions --user alice              # Submissions record
  %(prog)s --upcoming                              # Upcoming contest listing
  %(prog)s --user alice --render                   # Render the page in Chrome
        """
    )

    parser.add_argument(
        '--user', '-u',
        action='append',
        default=[],
        metavar='NAME',
        help='Username or profile URL (repeatable)'
    )

    parser.add_argument(
        '--batch', '-b',
        type=str,
        help='Read usernames from file (one per line, # starts a comment)'
    )

    parser.add_argument(
        '--html',
        type=str,
        metavar='FILE',
        help='Extract from a saved profile page instead of fetching (needs one --user)'
    )

    parser.add_argument(
        '--inspect',
        action='store_true',
        help='Print page structure diagnostics instead of the profile'
    )

    parser.add_argument(
        '--submissions',
        action='store_true',
        help='Print the submissions record instead of the profile'
    )

    parser.add_argument(
        '--upcoming',
        action='store_true',
        help='Print the upcoming contest listing'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Save each profile as <platform>_<username>.json in this directory'
    )

    parser.add_argument(
        '--render',
        action='store_true',
        help='Render pages in Chrome via Selenium'
    )

    parser.add_argument(
        '--headless',
        action='store_true',
        default=None,
        help='Run the browser in headless mode'
    )

    parser.add_argument(
        '--log-level', '-l',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Set logging level (default: from settings, INFO)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to custom configuration file'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args(argv)

    if not (args.user or args.batch or args.upcoming):
        parser.error("nothing to do: give --user, --batch or --upcoming")
    if args.html and len(args.user) != 1:
        parser.error("--html needs exactly one --user")
    if args.inspect and not args.user:
        parser.error("--inspect needs --user")
    if args.submissions and not args.user:
        parser.error("--submissions needs --user")

    return args


def _apply_arguments(app_manager: ApplicationManager, args):
    """Command-line arguments override settings."""
    if args.log_level:
        app_manager.overrides["log_level"] = args.log_level
    if args.output:
        app_manager.overrides["output_directory"] = args.output
    if args.render:
        app_manager.overrides["render"] = True
    if args.headless is not None:
        app_manager.overrides["headless"] = args.headless
    if args.config:
        app_manager.config_file = Path(args.config).expanduser()


def run(args, app_manager: ApplicationManager) -> int:
    """
    Execute the requested mode.

    Returns:
        int: Process exit status
    """
    if args.upcoming:
        app_manager.emit(app_manager.upcoming_contests())
        if not (args.user or args.batch):
            return 0

    if args.html:
        profile = app_manager.process_html_file(args.html, args.user[0])
        if app_manager.output_directory:
            app_manager.file_manager.save_profile(profile, app_manager.output_directory,
                                                  pretty=bool(app_manager.settings.get("pretty_json", True)))
        else:
            app_manager.emit(profile)
        return 0

    if args.inspect:
        diagnostics = [app_manager.inspect(value) for value in args.user]
        app_manager.emit(diagnostics[0] if len(diagnostics) == 1 else diagnostics)
        return 0

    if args.submissions:
        records = [app_manager.submissions(value) for value in args.user]
        app_manager.emit(records[0] if len(records) == 1 else records)
        return 0

    usernames = list(args.user)
    if args.batch:
        usernames.extend(app_manager.file_manager.load_usernames(args.batch))
    if not usernames:
        logger.error("No usernames to process")
        return 1

    results, failed = app_manager.run_batch_processing(usernames)

    if not app_manager.output_directory:
        app_manager.emit(results[0] if len(results) == 1 else results)

    if failed > 0:
        logger.warning(f"Some profiles failed: {failed}/{len(usernames)}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None):
    """
    Main function of the cp-profile command.
    """
    args = parse_arguments(argv)
    app_manager = ApplicationManager()
    _apply_arguments(app_manager, args)

    exit_code = 1
    try:
        app_manager.initialize()
        exit_code = run(args, app_manager)

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        exit_code = 130

    except ProfileScraperError as e:
        app_manager._handle_error(e, "Main Application")
        print(f"Error: {e}", file=sys.stderr)
        for suggestion in ErrorRecovery.suggest_alternatives(e.error_info.category):
            print(f"  - {suggestion}", file=sys.stderr)

    except Exception as e:
        error_msg = f"Fatal application error: {e}"
        print(error_msg, file=sys.stderr)
        logger.error(error_msg)
        logger.error(traceback.format_exc())

    finally:
        app_manager.shutdown()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
