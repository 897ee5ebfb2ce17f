import json

from yt_chat_json import extract_initial_data, extract_json_object, extract_ytcfg


NESTED = {
    'a': {'b': [1, 2, {'c': 'd'}], 'e': {}},
    'braces': 'look { and } and {{ }',
    'quotes': 'she said "hi {"',
    'backslash': 'C:\\path\\{x}\\',
    'unicode': 'caf\u00e9 \u2603',
    'list': [[], [{}], [[{'deep': True}]]],
}


def test_extracts_nested_object_with_tricky_strings():
    text = 'var foo = {"x": 1};\nvar ytInitialData = ' + json.dumps(NESTED) + ';</script><div>{</div>'
    assert extract_json_object(text, 'ytInitialData') == NESTED


def test_extracts_without_spaces_around_assignment():
    text = 'PREFIX' + 'marker' + '=' + json.dumps(NESTED) + ';' + 'SUFFIX } }'
    assert extract_json_object(text, 'marker') == NESTED


def test_window_bracket_assignment():
    text = '<script>window["ytInitialData"] = {"continuationContents": {"k": "v"}};</script>'
    assert extract_initial_data(text) == {'continuationContents': {'k': 'v'}}


def test_unbalanced_braces_return_none():
    assert extract_json_object('var marker = {"a": {', 'marker') is None


def test_missing_marker_returns_none():
    assert extract_json_object('var other = {"a": 1};', 'marker') is None
    assert extract_json_object('', 'marker') is None
    assert extract_json_object(None, 'marker') is None


def test_invalid_json_returns_none():
    assert extract_json_object("var marker = {a: 'single'};", 'marker') is None


def test_later_occurrence_is_used_when_first_does_not_parse():
    text = 'if (marker) {call(x)} var marker = {"ok": true};'
    assert extract_json_object(text, 'marker') == {'ok': True}


def test_ytcfg_fragments_are_merged():
    html = ('<script>ytcfg.set({"INNERTUBE_API_KEY": "k"});</script>'
            '<script>ytcfg.set({"VISITOR_DATA": "v", "INNERTUBE_CONTEXT": {"client": {}}});</script>')
    assert extract_ytcfg(html) == {
        'INNERTUBE_API_KEY': 'k',
        'VISITOR_DATA': 'v',
        'INNERTUBE_CONTEXT': {'client': {}},
    }


def test_ytcfg_missing_returns_none():
    assert extract_ytcfg('<html></html>') is None
