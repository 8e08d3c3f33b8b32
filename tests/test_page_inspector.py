import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from extraction.document import parse_document
from extraction.page_inspector import inspect_page_structure

PAGE_HTML = """
<html>
<head><title>alice | CodeChef</title></head>
<body>
<div class="rating-number">1604</div>
<p>Highest rating 1750</p>
<table class="rating-table"><tbody><tr><td>Starters 193</td><td>1604</td></tr><tr><td></td></tr></tbody></table>
<table><tbody><tr><td>x</td></tr></tbody></table>
</body>
</html>
"""


def test_inspect_page_structure():
    report = inspect_page_structure(parse_document(PAGE_HTML), 'alice')

    assert report['username'] == 'alice'
    assert report['pageTitle'] == 'alice | CodeChef'
    assert report['allTables'] == 2

    first, second = report['tableData']
    assert first['className'] == 'rating-table'
    assert first['rowCount'] == 2
    assert len(first['sampleRows']) == 1
    assert second['className'] == 'no-class'

    assert report['allClasses'] == ['rating-number', 'rating-table']
    assert 'start' in report['contestKeywords']
    assert 'rating' in report['contestKeywords']
    assert 'lunch' not in report['contestKeywords']


def test_rating_elements_are_reported():
    report = inspect_page_structure(parse_document(PAGE_HTML), 'alice')
    elements = report['ratingKeywords']

    assert len(elements) <= 10
    assert {'text': '1604', 'className': 'rating-number', 'tagName': 'div'} in elements
    assert any(e['tagName'] == 'p' and e['className'] == '' for e in elements)
