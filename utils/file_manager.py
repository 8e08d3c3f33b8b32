"""
File Manager for CP Profile Scraper
Handles output directories, JSON profile files and username batch files
"""

import os
import json
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Any, Union
from datetime import datetime
import logging

from utils.error_handler import FileSystemError, handle_exception, ErrorDetector

logger = logging.getLogger(__name__)

INVALID_FILENAME_CHARS = '<>:"/\\|?*'


class FileManager:
    """
    Writes profile records to disk and reads username batch files
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        """
        Args:
            base_dir (Optional[str]): Directory results are written to; the
                current directory when omitted. Created lazily on first save.
        """
        self.base_dir = Path(base_dir).expanduser() if base_dir else Path.cwd()

    @handle_exception
    def ensure_directory(self, path: Union[str, Path]) -> Path:
        """
        Create ``path`` (with parents) unless it is already a directory

        Raises:
            FileSystemError: If the path is empty, names a regular file or
                cannot be created
        """
        if not str(path).strip():
            raise FileSystemError("Empty path provided")

        directory = Path(path)
        if directory.exists() and not directory.is_dir():
            raise FileSystemError(f"Path exists but is not a directory: {directory}", str(directory))

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise FileSystemError(f"Permission denied creating directory: {directory}", str(directory), e)
        except OSError as e:
            raise FileSystemError(f"Could not create directory {directory}: {e}", str(directory), e)

        logger.debug(f"Output directory ready: {directory}")
        return directory

    def safe_filename(self, filename: str, max_length: int = 255) -> str:
        """
        Replace characters that are not allowed in file names

        Runs of underscores are collapsed, leading and trailing dots and spaces
        stripped, and overlong names cut down while keeping the extension.
        """
        cleaned = filename or ''
        for char in INVALID_FILENAME_CHARS:
            cleaned = cleaned.replace(char, '_')

        while '__' in cleaned:
            cleaned = cleaned.replace('__', '_')
        cleaned = cleaned.strip(' .')

        if len(cleaned) > max_length:
            stem, extension = os.path.splitext(cleaned)
            cleaned = stem[:max_length - len(extension)] + extension

        return cleaned or f"file_{datetime.now():%Y%m%d_%H%M%S}"

    def profile_filename(self, platform: str, username: str) -> str:
        """File name a profile is saved under, e.g. ``codechef_tourist.json``"""
        return self.safe_filename(f"{platform}_{username}.json")

    @handle_exception
    def save_json(self, data: Union[Dict[str, Any], List[Any]], filepath: Union[str, Path],
                  indent: Optional[int] = 2) -> bool:
        """
        Write ``data`` as UTF-8 JSON without leaving a half-written file behind

        The document goes to a ``.tmp`` sibling first, is parsed back, and only
        then replaces the target.

        Args:
            data: Profile record or list of records
            filepath (Union[str, Path]): Destination
            indent (Optional[int]): JSON indentation; None for compact output

        Returns:
            bool: True once the file is in place

        Raises:
            FileSystemError: If the data cannot be serialized or written
        """
        if data is None:
            raise FileSystemError("Refusing to write an empty (None) JSON document")

        target = Path(filepath)
        self.ensure_directory(target.parent)

        if not ErrorDetector.check_disk_space(str(target.parent), required_mb=5):
            raise FileSystemError(f"Insufficient disk space to save JSON: {target}", str(target))

        try:
            payload = json.dumps(data, indent=indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise FileSystemError(f"Data cannot be serialized to JSON: {e}", str(target), e)

        staging = target.with_suffix('.tmp')
        try:
            staging.write_text(payload, encoding='utf-8')
            json.loads(staging.read_text(encoding='utf-8'))
            shutil.move(str(staging), str(target))
        except PermissionError as e:
            raise FileSystemError(f"Permission denied writing JSON file: {target}", str(target), e)
        except OSError as e:
            raise FileSystemError(f"Could not write JSON file {target}: {e}", str(target), e)
        finally:
            if staging.exists():
                staging.unlink()

        logger.info(f"Saved {target}")
        return True

    def save_profile(self, profile: Dict[str, Any], directory: Optional[Union[str, Path]] = None,
                     pretty: bool = True) -> Path:
        """
        Save a profile record as ``<platform>_<username>.json``

        Args:
            profile (Dict[str, Any]): Profile record with platform and username
            directory: Target directory; the manager's base directory by default
            pretty (bool): Indent the JSON

        Returns:
            Path: Where the profile was written
        """
        target_dir = Path(directory).expanduser() if directory else self.base_dir
        filepath = target_dir / self.profile_filename(profile.get('platform', 'profile'),
                                                      profile.get('username', 'unknown'))
        self.save_json(profile, filepath, indent=2 if pretty else None)
        return filepath

    def load_usernames(self, filepath: Union[str, Path]) -> List[str]:
        """
        Read a batch file with one username or profile URL per line

        Blank lines and lines starting with ``#`` are ignored.

        Raises:
            FileSystemError: If the file cannot be read
        """
        batch_file = Path(filepath)
        try:
            lines = batch_file.read_text(encoding='utf-8').splitlines()
        except OSError as e:
            raise FileSystemError(f"Cannot read batch file: {batch_file}", str(batch_file), e)

        usernames = [line.strip() for line in lines
                     if line.strip() and not line.strip().startswith('#')]
        logger.info(f"Loaded {len(usernames)} usernames from {batch_file}")
        return usernames
