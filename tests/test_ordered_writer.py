# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Description: test_ordered_writer.py
# -----------------------------------------------------------------------------
import json

import pytest

from batching.KBBatcher import KBBatch, KBBatchEntry
from embedding.EmbeddingErrors import ResponseShapeError
from record.KBRecord import KBRecord
from writer.KBOrderedWriter import KBOrderedWriter


def _batch(index, positions):
    return KBBatch(
        index=index,
        entries=[KBBatchEntry(position=p, record=KBRecord({"id": p, "text": f"t{p}"}), text=f"t{p}") for p in positions],
    )


def test_out_of_order_placement_is_written_in_input_order():
    writer = KBOrderedWriter()
    writer.place_raw(1, "not json")
    writer.place_passthrough(3, KBRecord({"id": 3}), '{"id":3}')
    assert writer.lines_written == 0
    assert writer.pending_count == 2

    writer.place_batch(_batch(0, [0, 2]), [[0.0, 1.0], [2.0, 3.0]])

    assert writer.is_complete()
    lines = writer.lines()
    assert lines[1] == "not json"
    assert [json.loads(lines[i])["id"] for i in (0, 2, 3)] == [0, 2, 3]
    assert json.loads(lines[2])["embedding"] == [2.0, 3.0]


def test_every_line_ends_with_newline():
    writer = KBOrderedWriter()
    writer.place_raw(0, "a")
    writer.place_raw(1, "b")
    assert writer.getvalue() == b"a\nb\n"


def test_non_object_pass_through_is_written_verbatim():
    writer = KBOrderedWriter()
    writer.place_passthrough(0, None, "[1,  2]")
    assert writer.lines() == ["[1,  2]"]


def test_duplicate_position_rejected():
    writer = KBOrderedWriter()
    writer.place_raw(0, "a")
    with pytest.raises(ValueError):
        writer.place_raw(0, "again")

    writer.place_raw(2, "c")
    with pytest.raises(ValueError):
        writer.place_raw(2, "again")


def test_vector_count_mismatch():
    writer = KBOrderedWriter()
    with pytest.raises(ResponseShapeError):
        writer.place_batch(_batch(0, [0, 1]), [[1.0]])


def test_incomplete_output_cannot_be_read_or_committed(tmp_path):
    writer = KBOrderedWriter()
    writer.place_raw(1, "b")
    with pytest.raises(RuntimeError):
        writer.getvalue()
    with pytest.raises(RuntimeError):
        writer.commit_to(tmp_path / "out.jsonl")
    assert not (tmp_path / "out.jsonl").exists()


def test_commit_writes_atomically(tmp_path):
    target = tmp_path / "nested" / "out.jsonl"
    writer = KBOrderedWriter(spool_max_memory=16)
    for i in range(100):
        writer.place_raw(i, f'{{"i":{i},"text":"ü"}}')

    writer.commit_to(target)

    data = target.read_text(encoding="utf-8").split("\n")
    assert len(data) == 101 and data[-1] == ""
    assert data[42] == '{"i":42,"text":"ü"}'
    # no temp files left next to the output
    assert [p.name for p in target.parent.iterdir()] == ["out.jsonl"]


def test_discard_closes_writer():
    writer = KBOrderedWriter()
    writer.place_raw(0, "a")
    writer.discard()
    with pytest.raises(RuntimeError):
        writer.place_raw(1, "b")
    # idempotent
    writer.discard()


def test_line_separator_inside_value_does_not_split_lines():
    writer = KBOrderedWriter()
    writer.place_passthrough(0, KBRecord({"text": "a\u2028b"}), "")
    writer.place_raw(1, "x")
    assert len(writer.lines()) == 2
