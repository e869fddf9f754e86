# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: KBRecordClassifier
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal, Optional, Union

from record.KBRecord import KBRecord

PassThroughReason = Literal["already_embedded", "no_text", "not_object"]


@dataclass(frozen=True)
class ParseErrorLine:
    """Line is not valid JSON; it is written back out verbatim."""
    raw_line: str


@dataclass(frozen=True)
class PassThrough:
    """No provider call needed. ``record`` is None when the JSON value is not an object."""
    record: Optional[KBRecord]
    raw_line: str
    reason: PassThroughReason


@dataclass(frozen=True)
class NeedsEmbedding:
    record: KBRecord
    text: str


Classified = Union[ParseErrorLine, PassThrough, NeedsEmbedding]


def _reject_constant(name: str):
    # json accepts NaN / Infinity / -Infinity; strict JSON does not
    raise ValueError(f"Invalid JSON constant: {name}")


class KBRecordClassifier:
    """Parses one raw line and decides what the pipeline does with it."""

    @staticmethod
    def parse(line: str) -> object:
        return json.loads(line, parse_constant=_reject_constant)

    def classify(self, line: str) -> Classified:
        try:
            value = self.parse(line)
        except (ValueError, RecursionError):
            # RecursionError: nesting deeper than the decoder can follow
            return ParseErrorLine(raw_line=line)

        if not isinstance(value, dict):
            return PassThrough(record=None, raw_line=line, reason="not_object")

        record = KBRecord(value)
        if record.has_embedding():
            return PassThrough(record=record, raw_line=line, reason="already_embedded")

        text = record.embedding_text()
        if not text:
            return PassThrough(record=record, raw_line=line, reason="no_text")

        return NeedsEmbedding(record=record, text=text)
