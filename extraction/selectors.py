"""
Ranked selector and pattern lists used by the extraction stages.

Lists are ordered from most to least specific; every stage stops at the first
candidate that produces a plausible value. They are tuned by editing this
module, not at runtime.
"""

import re

SITE_NAME = "CodeChef"

# Display name, most specific first
NAME_SELECTORS = [
    '.user-details-container h1',
    '.user-details h1',
    '.plr10 h1',
    'h1.h2-style',
    '.user-name',
    '.user-details-container .h2-style',
    '.user-header h1',
    '.rating .text-color',
    '.user-details .text-color',
    'h1',
    '.user-details-container .rating-number',
    '.user-details-container .text-color',
]

# Containers whose text nodes may hold the display name
PROFILE_CONTAINERS = [
    '.user-details',
    '.user-details-container',
    '.plr10',
]

# Text nodes carrying these words are field labels, not names
PROFILE_LABEL_WORDS = ['Rating', 'Contest', 'Problem']

STAR_GLYPH = '★'

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 99

RATING_SELECTORS = [
    '.rating-header .rating-number',
    '.rating-number',
]

STAR_SELECTORS = [
    '.rating-star',
]

# Fallback star label such as "3★"
STAR_LABEL_SELECTORS = [
    '.rating',
    '.user-details .rating',
]

RANK_SELECTORS = [
    '.rating-title',
    '.rating-header .rating-title',
]

COUNTRY_SELECTORS = [
    '.user-country-name',
]

INSTITUTION_SELECTORS = [
    '.user-institution',
]

# "Label: value" list items in the profile details box
DETAIL_ITEM_SELECTORS = [
    '.user-details li',
    '.user-details-container li',
]

# Problems solved
TOTAL_SOLVED_PATTERN = re.compile(r'Total\s+Problems\s+Solved:\s*(\d+)', re.IGNORECASE)

LOOSE_SOLVED_PATTERNS = [
    re.compile(r'problems?\s*solved[:\s]*(\d+)', re.IGNORECASE),
    re.compile(r'solved[:\s]*(\d+)\s*problems?', re.IGNORECASE),
    re.compile(r'(\d+)\s*problems?\s*solved', re.IGNORECASE),
    re.compile(r'total[:\s]*(\d+)\s*problems?', re.IGNORECASE),
]

# Loose matches outside (0, 2000) are ratings or ranks, not solve counts
LOOSE_SOLVED_MAX = 2000

# Contest history rows
HISTORY_ROW_SELECTORS = [
    '.rating-data-section table tbody tr',
    '.contest-participation-details tbody tr',
    '.rating-timeline tbody tr',
    '.user-contest-data tbody tr',
    'table.dataTable tbody tr',
    '.contest-history tbody tr',
    '.rating-graph-container table tbody tr',
    '.contest-details tbody tr',
    '.user-details table tbody tr',
    'table tbody tr',
    '.rating tbody tr',
    '.contests tbody tr',
]

RATING_MIN = 600
RATING_MAX = 4000
RANK_MAX = 100000

CONTEST_NAME_MIN_LENGTH = 2
CONTEST_NAME_MAX_LENGTH = 150
CELL_NAME_MAX_LENGTH = 100

# Rows or names mentioning these are page furniture
REJECTED_NAME_WORDS = ['total', 'header', 'loading']

# Script mining
SCRIPT_KEYWORDS = ['rating', 'contest']
SCRIPT_MINING_THRESHOLD = 5
OBJECT_MINING_THRESHOLD = 10

# Upcoming contests page
CONTEST_CONTAINER_SELECTORS = [
    '.dataTable tbody tr',
    '.contest-card',
    '.upcoming-contest-item',
    '[data-contest-code]',
]

CONTEST_NAME_SELECTORS = [
    '.contest-name',
    'td:first-child a',
    '.title',
    'h3',
    'h4',
    '.contest-title',
]

CONTEST_CODE_SELECTORS = [
    '[data-contest-code]',
    'td:first-child a',
    '.contest-code',
]

CONTEST_START_SELECTORS = [
    '.start-time',
    'td:nth-child(2)',
    '.contest-start',
    '.time',
]

CONTEST_END_SELECTORS = [
    '.end-time',
    'td:nth-child(3)',
    '.contest-end',
]

CONTEST_LINK_SELECTOR = 'a[href*="/contest"]'

MAX_LISTED_CONTESTS = 10
