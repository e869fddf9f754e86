# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Description: test_record_classifier.py
# -----------------------------------------------------------------------------
import json

import pytest

from record.KBRecord import KBRecord
from record.KBRecordClassifier import KBRecordClassifier, NeedsEmbedding, ParseErrorLine, PassThrough


@pytest.fixture
def classifier() -> KBRecordClassifier:
    return KBRecordClassifier()


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"dense_context": "ctx", "question": "q", "answer": "a", "text": "t"}, "ctx"),
        ({"question": "What?", "answer": "That.", "text": "t"}, "Q: What?\nA: That."),
        ({"question": "only a question", "text": "fallback"}, "fallback"),
        ({"dense_context": "", "text": "t"}, "t"),
        ({"dense_context": 42, "text": "t"}, "t"),
        ({"id": 1}, ""),
    ],
)
def test_embedding_text_priority(fields, expected):
    assert KBRecord(fields).embedding_text() == expected


def test_embedding_text_does_not_mutate_record():
    record = KBRecord({"question": "q", "answer": "a"})
    record.embedding_text()
    assert record.to_dict() == {"question": "q", "answer": "a"}


def test_record_keeps_unknown_fields_in_order():
    line = '{"zeta":1,"text":"hello","alpha":{"nested":[1,2]},"unicode":"ü"}'
    record = KBRecord(json.loads(line))
    record.set_embedding([0.1, 0.2])

    out = json.loads(record.to_json_line())
    assert list(out.keys()) == ["zeta", "text", "alpha", "unicode", "embedding"]
    assert out["alpha"] == {"nested": [1, 2]}
    assert "ü" in record.to_json_line()


def test_classify_needs_embedding(classifier):
    item = classifier.classify('{"id":"a","text":"hello world"}')
    assert isinstance(item, NeedsEmbedding)
    assert item.text == "hello world"
    assert item.record["id"] == "a"


def test_classify_already_embedded(classifier):
    item = classifier.classify('{"text":"hello","embedding":[0.1,0.2]}')
    assert isinstance(item, PassThrough)
    assert item.reason == "already_embedded"


def test_empty_embedding_list_is_not_embedded(classifier):
    item = classifier.classify('{"text":"hello","embedding":[]}')
    assert isinstance(item, NeedsEmbedding)


def test_classify_no_text(classifier):
    item = classifier.classify('{"id":7,"text":""}')
    assert isinstance(item, PassThrough)
    assert item.reason == "no_text"
    assert item.record is not None


@pytest.mark.parametrize("line", ['[1,2,3]', '"just a string"', "42", "null"])
def test_non_object_json_passes_through(classifier, line):
    item = classifier.classify(line)
    assert isinstance(item, PassThrough)
    assert item.reason == "not_object"
    assert item.record is None
    assert item.raw_line == line


@pytest.mark.parametrize("line", ["{not json", '{"a":1', '{"a":NaN}', '{"a":Infinity}', "{'a': 1}"])
def test_unparseable_lines(classifier, line):
    item = classifier.classify(line)
    assert isinstance(item, ParseErrorLine)
    assert item.raw_line == line


def test_too_deeply_nested_line_is_a_parse_error(classifier):
    line = '{"text":"x","meta":' + "[" * 100000 + "]" * 100000 + "}"
    item = classifier.classify(line)
    assert isinstance(item, ParseErrorLine)
    assert item.raw_line == line


def test_json_line_is_compact():
    record = KBRecord({"id": 1, "text": "a b"})
    record.set_embedding([0.5, -1.0])
    assert record.to_json_line() == '{"id":1,"text":"a b","embedding":[0.5,-1.0]}'
