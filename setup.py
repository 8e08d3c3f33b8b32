#!/usr/bin/env python3
"""
Setup script for CP Profile Scraper

Installs the ``extraction``, ``scraper`` and ``utils`` packages plus the
``main`` module, and exposes the ``cp-profile`` command.

Usage:
    pip install -e .            # Development install
    pip install -e .[test]      # With pytest
"""

import re
import sys
from pathlib import Path
from setuptools import setup, find_packages

if sys.version_info < (3, 8):
    sys.exit("ERROR: CP Profile Scraper needs Python 3.8 or newer")

HERE = Path(__file__).parent.resolve()


def read_text(name, default=""):
    """Contents of a file next to setup.py, or ``default`` if it is missing"""
    path = HERE / name
    return path.read_text(encoding="utf-8") if path.exists() else default


def parse_requirements(name="requirements.txt"):
    """Requirement specifiers, ignoring blank lines and comments"""
    lines = (line.split("#", 1)[0].strip() for line in read_text(name).splitlines())
    return [line for line in lines if line]


def find_version():
    """``__version__`` as declared in main.py"""
    match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']', read_text("main.py"), re.MULTILINE)
    return match.group(1) if match else "0.0.0"


TEST_REQUIRES = [
    "pytest>=7.0.0",
    "pytest-cov>=4.0.0",
]

DEV_REQUIRES = TEST_REQUIRES + [
    "flake8>=5.0.0",
    "black>=22.0.0",
    "mypy>=1.0.0",
    "isort>=5.10.0",
]

setup(
    name="cp-profile-scraper",
    version=find_version(),
    description="Extract normalized competitive programming profiles from HTML profile pages",
    long_description=read_text("README.md"),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.8",
    install_requires=parse_requirements(),
    extras_require={
        "test": TEST_REQUIRES,
        "dev": DEV_REQUIRES,
        "all": sorted(set(DEV_REQUIRES)),
    },
    entry_points={
        "console_scripts": [
            "cp-profile=main:main",
        ],
    },
    data_files=[
        ("config", ["example_config.ini"]),
        ("examples", ["example_users.txt"]),
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
        "Topic :: Text Processing :: Markup :: HTML",
    ],
    keywords="competitive-programming codechef profile web-scraping beautifulsoup",
    license="MIT",
    zip_safe=False,
)
