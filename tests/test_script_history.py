import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from extraction.context import ExtractionContext, name_key
from extraction.document import parse_document
from extraction.models import ContestHistoryEntry
from extraction.script_history import ScriptHistoryMiner, coerce_int

RATING_ARRAY_HTML = """
<html><body>
<script>
var all_rating = [{"code":"START193","name":"Starters 193","rating":"1604","end_date":"2025-07-02 22:00:00"},{"code":"START192","name":"Starters 192","rating":"1612","end_date":"2025-06-25 22:00:00"}];
</script>
</body></html>
"""

INVALID_JSON_HTML = """
<html><body>
<script>var ratingData = [{name: 'Starters 1', rating: 1500}];</script>
</body></html>
"""

OBJECT_HTML = """
<html><body>
<script>window.contestInfo = {"contestName": "Cook-Off 88", "rating": 1700, "rank": 321};</script>
</body></html>
"""

UNNAMED_HTML = """
<html><body>
<script>var rating_points = [{"rating": 1500}, {"rating": 1550}];</script>
</body></html>
"""

UNRELATED_SCRIPT_HTML = """
<html><body>
<script>var points = [{"name": "Starters 1", "score": 5}];</script>
<script src="/static/rating.js"></script>
</body></html>
"""


def mine(html, context=None):
    context = context or ExtractionContext('alice')
    added = ScriptHistoryMiner().extract(parse_document(html), context)
    return added, context.entries


def test_rating_array_is_mined_once_per_contest():
    added, entries = mine(RATING_ARRAY_HTML)

    assert added == 2
    assert [entry.contest_name for entry in entries] == ['Starters 193', 'Starters 192']
    assert entries[0].rating == 1604
    assert entries[0].date == '2025-07-02 22:00:00'
    assert entries[1].rating == 1612


def test_invalid_json_is_ignored():
    added, entries = mine(INVALID_JSON_HTML)
    assert added == 0
    assert entries == []


def test_flat_object_literal_is_mined():
    added, entries = mine(OBJECT_HTML)

    assert added == 1
    assert entries[0].contest_name == 'Cook-Off 88'
    assert entries[0].rating == 1700
    assert entries[0].rank == 321


def test_unnamed_objects_get_positional_names():
    _, entries = mine(UNNAMED_HTML)
    assert [entry.contest_name for entry in entries] == ['Contest 1', 'Contest 2']


def test_scripts_without_keywords_are_not_mined():
    added, entries = mine(UNRELATED_SCRIPT_HTML)
    assert added == 0
    assert entries == []


def test_name_already_seen_is_skipped():
    context = ExtractionContext('alice')
    context.admit(ContestHistoryEntry('cook-off   88', rating=1700))

    added, entries = mine(OBJECT_HTML, context)

    assert added == 0
    assert len(entries) == 1


def test_coerce_int():
    assert coerce_int(12) == 12
    assert coerce_int(' -8 ') == -8
    assert coerce_int('+15') == 15
    assert coerce_int(3.0) == 3
    assert coerce_int(3.5) is None
    assert coerce_int(True) is None
    assert coerce_int('12th') is None
    assert coerce_int(None) is None


def test_name_key_collapses_whitespace():
    assert name_key('  Starters   193 ') == 'starters_193'
