import pytest

from app.core.errors import ParseError
from app.core.json_utils import extract_json, extract_json_object, find_top_level_regions


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert extract_json('```json\n{"a": {"b": [1, 2]}}\n```') == {"a": {"b": [1, 2]}}

    def test_prose_around_object(self):
        text = 'Here is the article you asked for:\n{"headline": "Rain", "body": ["Heavy rain"]}\nHope this helps!'
        assert extract_json(text) == {"headline": "Rain", "body": ["Heavy rain"]}

    def test_largest_balanced_region_wins(self):
        text = 'draft {"a": 1} final {"bb": 2, "cc": 3}'
        assert extract_json(text) == {"bb": 2, "cc": 3}

    def test_braces_inside_strings_are_ignored(self):
        text = 'noise } {"text": "use } and { carefully", "n": 1} trailing ]'
        assert extract_json(text) == {"text": "use } and { carefully", "n": 1}

    def test_trailing_comma_and_smart_quotes_repaired(self):
        assert extract_json('{"a": 1, "b": [1, 2,],}') == {"a": 1, "b": [1, 2]}
        assert extract_json("{“a”: 1}") == {"a": 1}

    def test_array_root(self):
        assert extract_json("Result: [1, 2, 3]") == [1, 2, 3]

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "42", "{broken: }"])
    def test_unparseable_raises(self, text):
        with pytest.raises(ParseError):
            extract_json(text)


class TestExtractJsonObject:
    def test_single_object_in_list(self):
        assert extract_json_object('[{"a": 1}]') == {"a": 1}

    def test_list_without_single_object_rejected(self):
        with pytest.raises(ParseError):
            extract_json_object("[1, 2]")


def test_region_scanner_reports_each_top_level_region():
    regions = find_top_level_regions('x {"a": [1]} y [2] z')
    assert [(text_opener) for _, _, text_opener in regions] == ["{", "["]


def test_region_scanner_drops_mismatched_region():
    assert find_top_level_regions("{ ] {}") == [(4, 6, "{")]
