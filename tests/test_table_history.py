import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from extraction.context import ExtractionContext
from extraction.document import parse_document
from extraction.table_history import (
    TableHistoryExtractor, fallback_name, is_header_row, sniff_date,
    sniff_rank, sniff_rating, sniff_rating_change
)

STARTERS_ROW_HTML = """
<table><tbody>
<tr><td>Starters 193 (Rated)</td><td>1604</td><td>-8</td><td>1293</td><td>2025-07-02</td></tr>
</tbody></table>
"""

HEADER_HTML = """
<table><tbody>
<tr><th>Contest Name</th><th>Rating Change</th><th>Rank</th><th>Date</th></tr>
<tr><td>Starters 190</td><td>+35</td><td>12845</td><td>2025-06-11</td></tr>
</tbody></table>
"""

WIDE_HEADER_HTML = """
<table><tbody>
<tr><th>Contest</th><th>Rating</th><th>Change</th><th>Rank</th><th>Date</th></tr>
<tr><td>Starters 191</td><td>1612</td><td>+4</td><td>900</td><td>2025-06-18</td></tr>
</tbody></table>
"""

TWO_TABLES_HTML = """
<div class="rating-data-section">
  <table><tbody>
    <tr><td>Starters 180</td><td>1580</td><td>+20</td></tr>
  </tbody></table>
</div>
<table><tbody>
  <tr><td>Some Other Table</td><td>1234</td><td>+1</td></tr>
</tbody></table>
"""


def run_extractor(html, username='alice'):
    context = ExtractionContext(username)
    added = TableHistoryExtractor().extract(parse_document(html), context)
    return added, context.entries


def test_starters_row_yields_one_entry():
    added, entries = run_extractor(STARTERS_ROW_HTML)

    assert added == 1
    entry = entries[0]
    assert entry.contest_name == 'Starters 193 (Rated)'
    assert entry.rating == 1604
    assert entry.rating_change == -8
    assert entry.rank == 1293
    assert entry.date == '2025-07-02'


def test_header_row_is_never_emitted():
    added, entries = run_extractor(HEADER_HTML)

    assert added == 1
    assert [entry.contest_name for entry in entries] == ['Starters 190']
    assert entries[0].rating_change == 35
    assert entries[0].rank == 12845


def test_wide_header_row_is_dropped_for_lack_of_data():
    added, entries = run_extractor(WIDE_HEADER_HTML)

    assert added == 1
    assert entries[0].contest_name == 'Starters 191'
    assert entries[0].rating == 1612


def test_five_digit_number_is_never_a_rating():
    html = "<table><tbody><tr><td>Long Challenge</td><td>88888</td><td>+15</td></tr></tbody></table>"
    _, entries = run_extractor(html)

    assert len(entries) == 1
    assert entries[0].rating is None
    assert entries[0].rank == 88888
    assert entries[0].rating_change == 15


def test_rating_below_bound_is_read_as_rank():
    html = "<table><tbody><tr><td>Cook-Off 99</td><td>450</td></tr></tbody></table>"
    _, entries = run_extractor(html)

    assert entries[0].rating is None
    assert entries[0].rank == 450


def test_duplicate_rows_are_admitted_once():
    row = "<tr><td>Lunchtime 77</td><td>1720</td><td>+11</td><td>2024-01-28</td></tr>"
    added, entries = run_extractor(f"<table><tbody>{row}{row}</tbody></table>")

    assert added == 1
    assert len(entries) == 1


def test_first_productive_selector_wins():
    _, entries = run_extractor(TWO_TABLES_HTML)
    assert [entry.contest_name for entry in entries] == ['Starters 180']


def test_rows_without_data_or_name_are_skipped():
    html = """
    <table><tbody>
      <tr><td>Loading contests</td><td>1500</td></tr>
      <tr><td>Only a name here</td></tr>
      <tr><td>ab</td></tr>
    </tbody></table>
    """
    added, entries = run_extractor(html)
    assert added == 0
    assert entries == []


def test_name_recovered_from_row_text_when_no_cell_qualifies():
    html = "<table><tbody><tr><td>1750</td><td>+5</td><td>(Div 3) Starters</td></tr></tbody></table>"
    _, entries = run_extractor(html)

    assert len(entries) == 1
    assert entries[0].contest_name == '(Div 3) Starters'
    assert entries[0].rating == 1750


@pytest.mark.parametrize("text,expected", [
    ("1604", (1604, True)),
    ("88888", (None, False)),
    ("599", (None, False)),
    ("Rating 2010", (2010, False)),
    ("START-193", (None, False)),
])
def test_sniff_rating(text, expected):
    assert sniff_rating(text) == expected


def test_sniff_rating_change():
    assert sniff_rating_change("-8") == (-8, True)
    assert sniff_rating_change("+120") == (120, True)
    assert sniff_rating_change("12") == (None, False)


def test_sniff_rank_and_date():
    assert sniff_rank("1293") == 1293
    assert sniff_rank("0") is None
    assert sniff_rank("100000") is None
    assert sniff_date("ended 2025-07-02") == "2025-07-02"
    assert sniff_date("02 Jul 2025") == "02 Jul 2025"
    assert sniff_date("Starters 193") is None


def test_is_header_row():
    assert is_header_row("Contest Name\tRating Change\tRank", 3)
    assert not is_header_row("Contest Name\tRating Change\tRank\tDate\tDivision", 5)
    assert not is_header_row("Starters 10\tRank\t1650", 3)
    assert not is_header_row("Starters 193\t1604\t-8", 3)


def test_fallback_name():
    assert fallback_name("1750\t+5\tStarters 12") == "Starters 12"
    assert fallback_name("7") == ""
