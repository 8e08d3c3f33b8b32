import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from bs4 import BeautifulSoup

from extraction import ProfileExtractor, extract_profile, parse_document
from utils.error_handler import DocumentParseError

FULL_PROFILE_HTML = """
<html>
<head><title>Alice Smith - CodeChef</title></head>
<body>
<div class="user-details-container">
  <header><h1 class="h2-style">Alice Smith</h1></header>
  <ul class="side-nav">
    <li><label>Country:</label> <span class="user-country-name">India</span></li>
    <li><label>Institution:</label> <span>IIT Bombay</span></li>
  </ul>
</div>
<div class="rating-header">
  <div class="rating-number">1604</div>
  <div class="rating-star"><span>&#9733;</span><span>&#9733;</span></div>
  <div class="rating-title">2 Star</div>
</div>
<section class="problems-solved"><h3>Total Problems Solved: 225</h3></section>
<div class="rating-data-section">
  <table><tbody>
    <tr><td>Starters 180</td><td>1580</td><td>+20</td><td>2025-06-01</td></tr>
    <tr><td>Starters 193 (Rated)</td><td>1604</td><td>-8</td><td>1293</td><td>2025-07-02</td></tr>
  </tbody></table>
</div>
</body>
</html>
"""

TABLE_AND_SCRIPT_HTML = """
<html><body>
<div class="rating-data-section">
  <table><tbody>
    <tr><td>Starters 193</td><td>1604</td><td>-8</td><td>2025-07-02</td></tr>
  </tbody></table>
</div>
<script>
var all_rating = [{"name":"Starters 193","rating":1604,"change":5,"date":"2025-07-02"},{"name":"Starters 150","rating":1590,"change":3,"date":"2024-09-01"}];
</script>
</body></html>
"""

TABLE_AND_RATING_CHART_HTML = """
<html><body>
<table><tbody>
  <tr><td>Starters 193</td><td>1604</td><td>-8</td><td>2025-07-02</td></tr>
</tbody></table>
<script>
var all_rating = [{"code":"START193","name":"Starters 193","rating":"1604","end_date":"2025-07-02 22:00:00"}];
</script>
</body></html>
"""


def build_busy_page():
    rows = ''.join(
        f"<tr><td>Starters {i}</td><td>{1500 + i}</td><td>+{i}</td><td>2024-0{i}-10</td></tr>"
        for i in range(1, 6)
    )
    script = '<script>var all_rating = [{"name":"Cook-Off 42","rating":1700}];</script>'
    return f"<html><body><table><tbody>{rows}</tbody></table>{script}</body></html>"


def test_full_profile():
    record = extract_profile(FULL_PROFILE_HTML, 'alice')
    data = record.to_dict()

    assert data['name'] == 'Alice Smith'
    assert data['rating'] == 1604
    assert data['stars'] == 2
    assert data['rank'] == '2 Star'
    assert data['country'] == 'India'
    assert data['institution'] == 'IIT Bombay'
    assert data['problemsSolved'] == 225
    assert data['totalContests'] == 2
    assert [h['contestName'] for h in data['history']] == ['Starters 193 (Rated)', 'Starters 180']
    assert data['history'][0] == {
        'contestName': 'Starters 193 (Rated)',
        'rating': 1604,
        'ratingChange': -8,
        'rank': 1293,
        'date': '2025-07-02',
    }


@pytest.mark.parametrize("source", [None, "", "   \n"])
def test_missing_document_raises(source):
    with pytest.raises(DocumentParseError):
        ProfileExtractor().extract(source, 'alice')


def test_empty_soup_raises():
    with pytest.raises(DocumentParseError):
        ProfileExtractor().extract(BeautifulSoup("", "lxml"), 'alice')


def test_sparse_page_gets_defaults():
    record = extract_profile("<html><body><p>hello</p></body></html>", 'alice')

    assert record.name is None
    assert record.rating == 0
    assert record.rank == 'Unrated'
    assert record.history == []
    assert record.total_contests == 0


def test_table_entry_wins_over_script_duplicate():
    record = extract_profile(TABLE_AND_SCRIPT_HTML, 'alice')

    assert [entry.contest_name for entry in record.history] == ['Starters 193', 'Starters 150']
    assert record.history[0].rating_change == -8


def test_rating_chart_does_not_repeat_table_contest():
    record = extract_profile(TABLE_AND_RATING_CHART_HTML, 'alice')

    assert [entry.contest_name for entry in record.history] == ['Starters 193']
    assert record.total_contests == 1
    assert record.history[0].rating_change == -8


def test_scripts_not_mined_when_tables_are_rich():
    record = extract_profile(build_busy_page(), 'alice')

    names = [entry.contest_name for entry in record.history]
    assert len(names) == 5
    assert 'Cook-Off 42' not in names
    assert names[0] == 'Starters 5'


def test_extraction_is_deterministic():
    extractor = ProfileExtractor()
    document = parse_document(FULL_PROFILE_HTML)

    first = extractor.extract(document, 'alice').to_dict()
    second = extractor.extract(document, 'alice').to_dict()

    assert first == second
